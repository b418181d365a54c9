from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..schemas.form_config import ChoiceSelection, FormConfig, Menu, MenuOption
from .validation import schedule_of
from .state import BookingState

CURRENCY_PREFIX = "¥"
DEFAULT_DURATION_MINUTES = 60


@dataclass(frozen=True)
class SummaryItem:
    key: str
    label: str
    text: str
    anchor: str


def format_price(amount: int) -> str:
    return f"{CURRENCY_PREFIX}{amount:,}"


def _answer_label(selection: ChoiceSelection, answer: Optional[str]) -> Optional[str]:
    if not selection.enabled or not answer:
        return None
    for option in selection.options:
        if option.value == answer:
            return option.label
    return None


def _selected_options(menu: Menu, state: BookingState) -> List[MenuOption]:
    return [option for option in menu.options if option.id in state.option_ids]


def _base_item(menu: Menu, state: BookingState):
    return menu.find_submenu(state.submenu_id) or menu


def totals(state: BookingState, config: FormConfig) -> Dict[str, int]:
    menu = config.menu_structure.find_menu(state.menu_id)
    if menu is None:
        return {"price": 0, "duration": 0}
    base = _base_item(menu, state)
    options = _selected_options(menu, state)
    return {
        "price": base.price + sum(option.price for option in options),
        "duration": base.duration + sum(option.duration for option in options),
    }


def _menu_text(state: BookingState, config: FormConfig) -> Optional[str]:
    menu = config.menu_structure.find_menu(state.menu_id)
    if menu is None:
        return None
    show_price = config.menu_structure.display_options.show_price
    submenu = menu.find_submenu(state.submenu_id)
    parts = [menu.name]
    if submenu is not None:
        parts.append(f"{submenu.name} ({format_price(submenu.price)})" if show_price else submenu.name)
    elif show_price:
        parts[0] = f"{menu.name} ({format_price(menu.price)})"
    for option in _selected_options(menu, state):
        parts.append(f"+ {option.name} (+{format_price(option.price)})" if show_price else f"+ {option.name}")
    return " / ".join(parts)


def derive_summary(state: BookingState, config: FormConfig) -> List[SummaryItem]:
    """Project the state onto the summary panel, skipping every unset field."""
    items: List[SummaryItem] = []
    if state.name:
        items.append(SummaryItem("name", "Name", state.name, "name-field"))
    if state.phone:
        items.append(SummaryItem("phone", "Phone", state.phone, "phone-field"))
    for key, label, selection, anchor in (
        ("gender", "Gender", config.gender_selection, "gender-field"),
        ("visit_count", "Visit", config.visit_count_selection, "visit-count-field"),
        ("coupon", "Coupon", config.coupon_selection, "coupon-field"),
    ):
        answer = _answer_label(selection, getattr(state, key))
        if answer:
            items.append(SummaryItem(key, label, answer, anchor))
    menu_text = _menu_text(state, config)
    if menu_text:
        items.append(SummaryItem("menu", "Menu", menu_text, "menu-field"))
        amounts = totals(state, config)
        if config.menu_structure.display_options.show_price:
            items.append(SummaryItem("total", "Total", format_price(amounts["price"]), "menu-field"))
    day, slot = schedule_of(state, config)
    if day or slot:
        items.append(SummaryItem("schedule", "Date", " ".join(part for part in (day, slot) if part), "datetime-field"))
    if state.message:
        items.append(SummaryItem("message", "Message", state.message, "message-field"))
    return items


def build_submission_payload(state: BookingState, config: FormConfig, submitted_at: datetime) -> Dict[str, Any]:
    """JSON body posted to the webhook endpoint."""
    menu = config.menu_structure.find_menu(state.menu_id)
    submenu = menu.find_submenu(state.submenu_id) if menu else None
    amounts = totals(state, config)
    day, slot = schedule_of(state, config)
    payload: Dict[str, Any] = {
        "form_name": config.basic_info.form_name,
        "store_name": config.basic_info.store_name,
        "name": state.name.strip(),
        "phone": state.phone.strip(),
        "gender": state.gender if config.gender_selection.enabled else None,
        "visit_count": state.visit_count if config.visit_count_selection.enabled else None,
        "coupon": state.coupon if config.coupon_selection.enabled else None,
        "menu": {"id": menu.id, "name": menu.name, "price": menu.price, "duration": menu.duration} if menu else None,
        "submenu": {"id": submenu.id, "name": submenu.name, "price": submenu.price, "duration": submenu.duration}
        if submenu
        else None,
        "options": [
            {"id": option.id, "name": option.name, "price": option.price, "duration": option.duration}
            for option in (_selected_options(menu, state) if menu else [])
        ],
        "date": day,
        "time": slot,
        "preferences": [
            {"date": item.date, "time": item.time} for item in state.preferences if item.complete
        ]
        if config.calendar_settings.booking_mode == "multiple_dates"
        else [],
        "message": state.message,
        "total_price": amounts["price"],
        "total_duration": amounts["duration"] or DEFAULT_DURATION_MINUTES,
        "submitted_at": submitted_at.isoformat(),
    }
    return payload


def format_confirmation_message(state: BookingState, config: FormConfig) -> str:
    """Human readable message sent through the LIFF session after submission."""
    lines = [f"[{config.basic_info.form_name}]"]
    for item in derive_summary(state, config):
        lines.append(f"{item.label}: {item.text}")
    return "\n".join(lines)


__all__ = [
    "CURRENCY_PREFIX",
    "SummaryItem",
    "format_price",
    "totals",
    "derive_summary",
    "build_submission_payload",
    "format_confirmation_message",
]
