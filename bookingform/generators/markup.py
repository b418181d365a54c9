from __future__ import annotations

from typing import List

from ..flow.state import PREFERENCE_COUNT
from ..flow.summary import format_price
from ..schemas.form_config import (
    BasicInfo,
    Category,
    ChoiceSelection,
    DisplayOptions,
    FormConfig,
    Menu,
    MenuOption,
    SubMenuItem,
)
from ..utils.html import escape_html

PREFERENCE_LABELS = ("First choice", "Second choice", "Third choice")


def _required_mark(required: bool) -> str:
    return ' <span class="required">*</span>' if required else ""


def render_header(info: BasicInfo) -> str:
    parts = ['<header class="form-header">']
    if info.logo_url:
        alt = info.store_name or info.form_name
        parts.append(f'<img class="form-logo" src="{escape_html(info.logo_url)}" alt="{escape_html(alt)}">')
    parts.append(f'<h1 class="form-title">{escape_html(info.form_name)}</h1>')
    if info.store_name:
        parts.append(f'<p class="store-name">{escape_html(info.store_name)}</p>')
    parts.append("</header>")
    return "".join(parts)


def render_side_nav(config: FormConfig) -> str:
    links = [("name-field", "Your details")]
    if config.menu_structure.has_menus:
        links.append(("menu-field", "Menu"))
    links.append(("datetime-field", "Date & time"))
    links.append(("summary-field", "Summary"))
    items = "".join(
        f'<a class="side-nav-link" href="#{anchor}" data-target="{anchor}">{escape_html(label)}</a>'
        for anchor, label in links
    )
    return f'<nav class="side-nav" id="side-nav">{items}</nav>'


def render_repeat_booking() -> str:
    return (
        '<div class="repeat-booking" id="repeat-booking" hidden>'
        '<button type="button" class="repeat-booking-button" id="repeat-booking-button">'
        "Book the same as last time</button></div>"
    )


def render_contact_fields(config: FormConfig) -> str:
    max_length = config.validation_rules.name_max_length
    placeholder = "090-1234-5678" if config.validation_rules.phone_format == "japanese" else "+1 555 123 4567"
    return (
        '<div class="field" id="name-field">'
        f'<label class="field-label" for="customer-name">Name{_required_mark(True)}</label>'
        f'<input type="text" id="customer-name" class="input" maxlength="{max_length}" autocomplete="name">'
        "</div>"
        '<div class="field" id="phone-field">'
        f'<label class="field-label" for="customer-phone">Phone{_required_mark(True)}</label>'
        f'<input type="tel" id="customer-phone" class="input" placeholder="{placeholder}" autocomplete="tel">'
        "</div>"
    )


def render_choice_field(field_id: str, choice: str, title: str, selection: ChoiceSelection) -> str:
    """Render one demographic question; disabled selections produce nothing."""
    if not selection.enabled:
        return ""
    buttons = "".join(
        f'<button type="button" class="choice-button" data-choice="{choice}" '
        f'data-value="{escape_html(option.value)}">{escape_html(option.label)}</button>'
        for option in selection.options
    )
    heading = title
    if choice == "coupon" and selection.coupon_name:
        heading = f"{title}: {selection.coupon_name}"
    return (
        f'<div class="field" id="{field_id}">'
        f'<p class="field-label">{escape_html(heading)}{_required_mark(selection.required)}</p>'
        f'<div class="choice-group">{buttons}</div>'
        "</div>"
    )


def _menu_meta(item: Menu | SubMenuItem | MenuOption, display: DisplayOptions, prefix: str = "") -> str:
    parts: List[str] = []
    if display.show_price:
        parts.append(f'<span class="price">{prefix}{escape_html(format_price(item.price))}</span>')
    if display.show_duration and item.duration:
        parts.append(f'<span class="duration">{prefix}{item.duration} min</span>')
    return f'<span class="menu-meta">{"".join(parts)}</span>' if parts else ""


def _description(text: str, display: DisplayOptions) -> str:
    if not display.show_description or not text:
        return ""
    return f'<span class="menu-description">{escape_html(text)}</span>'


def render_menu(menu: Menu, display: DisplayOptions) -> str:
    menu_id = escape_html(menu.id)
    image = ""
    if menu.image:
        image = f'<img class="menu-image" src="{escape_html(menu.image)}" alt="{escape_html(menu.name)}">'
    parts = [
        f'<div class="menu-item" data-menu-id="{menu_id}">',
        f'<button type="button" class="menu-button" data-menu-id="{menu_id}">',
        image,
        f'<span class="menu-name">{escape_html(menu.name)}</span>',
        _description(menu.description, display),
        "" if menu.has_submenu else _menu_meta(menu, display),
        "</button>",
    ]
    if menu.has_submenu:
        parts.append(f'<div class="submenu-list" data-submenu-for="{menu_id}" hidden>')
        for item in menu.sub_menu_items:
            parts.append(
                f'<button type="button" class="submenu-button" data-menu-id="{menu_id}" '
                f'data-submenu-id="{escape_html(item.id)}">'
                f'<span class="menu-name">{escape_html(item.name)}</span>'
                f"{_description(item.description, display)}{_menu_meta(item, display)}</button>"
            )
        parts.append("</div>")
    elif menu.options:
        parts.append(f'<div class="option-list" data-options-for="{menu_id}" hidden>')
        for option in menu.options:
            parts.append(
                f'<button type="button" class="option-button" data-menu-id="{menu_id}" '
                f'data-option-id="{escape_html(option.id)}">'
                f'<span class="menu-name">{escape_html(option.name)}</span>'
                f"{_description(option.description, display)}{_menu_meta(option, display, '+')}</button>"
            )
        parts.append("</div>")
    parts.append("</div>")
    return "".join(parts)


def render_category(category: Category, display: DisplayOptions) -> str:
    if not category.menus:
        return ""
    menus = "".join(render_menu(menu, display) for menu in category.menus)
    heading = f'<h3 class="category-name">{escape_html(category.name)}</h3>' if category.name else ""
    return f'<section class="menu-category" data-category-id="{escape_html(category.id)}">{heading}{menus}</section>'


def render_menu_field(config: FormConfig) -> str:
    structure = config.menu_structure
    if not structure.has_menus:
        return ""
    categories = "".join(render_category(category, structure.display_options) for category in structure.categories)
    treatment = ""
    if structure.display_options.show_treatment_info:
        treatment = '<p class="treatment-info" id="treatment-info" hidden></p>'
    return (
        '<div class="field" id="menu-field">'
        f'<p class="field-label">Menu{_required_mark(True)}</p>'
        f"{categories}{treatment}"
        "</div>"
    )


def _render_calendar() -> str:
    return (
        '<div class="calendar-nav">'
        '<button type="button" class="calendar-nav-button" id="prev-month" aria-label="Previous month">&laquo;</button>'
        '<button type="button" class="calendar-nav-button" id="prev-week" aria-label="Previous week">&lsaquo;</button>'
        '<span class="calendar-range" id="calendar-range"></span>'
        '<button type="button" class="calendar-nav-button" id="next-week" aria-label="Next week">&rsaquo;</button>'
        '<button type="button" class="calendar-nav-button" id="next-month" aria-label="Next month">&raquo;</button>'
        "</div>"
        '<div class="calendar-grid" id="calendar-grid"></div>'
        '<p class="selected-datetime" id="selected-datetime"></p>'
    )


def _render_preferences() -> str:
    rows = []
    for index in range(PREFERENCE_COUNT):
        label = PREFERENCE_LABELS[index]
        rows.append(
            f'<div class="preference-row" data-index="{index}">'
            f'<p class="preference-label">{label}{_required_mark(index == 0)}</p>'
            f'<select class="input preference-date" data-index="{index}"><option value="">Date</option></select>'
            f'<select class="input preference-time" data-index="{index}"><option value="">Time</option></select>'
            "</div>"
        )
    return "".join(rows)


def render_datetime_field(config: FormConfig) -> str:
    multiple = config.calendar_settings.booking_mode == "multiple_dates"
    body = _render_preferences() if multiple else _render_calendar()
    return (
        '<div class="field datetime-field" id="datetime-field" hidden>'
        f'<p class="field-label">Preferred date &amp; time{_required_mark(True)}</p>'
        f"{body}</div>"
    )


def render_message_field() -> str:
    return (
        '<div class="field" id="message-field">'
        '<label class="field-label" for="customer-message">Message</label>'
        '<textarea id="customer-message" class="input" rows="4"></textarea>'
        "</div>"
    )


def render_summary() -> str:
    return (
        '<section class="summary" id="summary-field">'
        '<h2 class="summary-title">Booking summary</h2>'
        '<div class="summary-content" id="summary-content"></div>'
        "</section>"
    )


def render_body(config: FormConfig) -> str:
    """Markup of the form body. Only enabled optional sections are emitted."""
    sections = [
        render_header(config.basic_info),
        render_repeat_booking() if config.ui_settings.show_repeat_booking else "",
        '<div class="form-content" id="form-content">',
        render_contact_fields(config),
        render_choice_field("gender-field", "gender", "Gender", config.gender_selection),
        render_choice_field("visit-count-field", "visit_count", "Visit count", config.visit_count_selection),
        render_choice_field("coupon-field", "coupon", "Coupon", config.coupon_selection),
        render_menu_field(config),
        render_datetime_field(config),
        render_message_field(),
        render_summary(),
        '<p class="form-error" id="form-error" role="alert" hidden></p>',
        '<button type="button" class="submit-button" id="submit-button">Submit booking</button>',
        "</div>",
        '<section class="success" id="success-view" hidden>'
        "<h2>Booking complete</h2><p>Thank you for your booking.</p></section>",
    ]
    content = "".join(section for section in sections if section)
    nav = render_side_nav(config) if config.ui_settings.show_side_nav else ""
    return f'{nav}<main class="booking-form" id="booking-form">{content}</main>'


__all__ = [
    "render_header",
    "render_side_nav",
    "render_repeat_booking",
    "render_contact_fields",
    "render_choice_field",
    "render_menu",
    "render_category",
    "render_menu_field",
    "render_datetime_field",
    "render_message_field",
    "render_summary",
    "render_body",
]
