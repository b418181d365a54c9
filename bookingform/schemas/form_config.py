from __future__ import annotations

from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DEFAULT_FORM_NAME = "Booking Form"
DEFAULT_THEME_COLOR = "#3B82F6"
DEFAULT_OPEN = "09:00"
DEFAULT_CLOSE = "18:00"
DEFAULT_ADVANCE_BOOKING_DAYS = 30
MAX_ADVANCE_BOOKING_DAYS = 365
MAX_AMOUNT = 1_000_000_000

HEX_COLOR_PATTERN = r"^#[0-9A-F]{6}$"
CLOCK_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"

StructureType = Literal["category_based"]
BookingMode = Literal["calendar", "multiple_dates"]
ButtonStyle = Literal["rounded", "square"]
PhoneFormat = Literal["japanese", "international"]


def _strip(value: str) -> str:
    return value.strip()


def _required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


# Text is stored trimmed and optional text is never blank, matching what the
# normalizer produces for the same input.
Text = Annotated[str, AfterValidator(_strip)]
RequiredText = Annotated[str, AfterValidator(_required)]
OptionalText = Annotated[Optional[str], AfterValidator(_blank_to_none)]
Amount = Annotated[int, Field(ge=0, le=MAX_AMOUNT)]


class _Frozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class BasicInfo(_Frozen):
    form_name: RequiredText
    store_name: Text = ""
    theme_color: str = Field(default=DEFAULT_THEME_COLOR, pattern=HEX_COLOR_PATTERN)
    logo_url: OptionalText = None
    liff_id: Text = ""


class ChoiceOption(_Frozen):
    value: RequiredText
    label: Text = ""

    @model_validator(mode="before")
    @classmethod
    def _label_defaults_to_value(cls, data):
        if isinstance(data, dict):
            label = data.get("label")
            if label is None or (isinstance(label, str) and not label.strip()):
                data = {**data, "label": data.get("value")}
        return data


class ChoiceSelection(_Frozen):
    enabled: bool = False
    required: bool = False
    options: List[ChoiceOption] = Field(min_length=1)
    coupon_name: Text = ""

    @model_validator(mode="after")
    def _check_values(self) -> "ChoiceSelection":
        values = [option.value for option in self.options]
        if len(values) != len(set(values)):
            raise ValueError("choice option values must be unique")
        return self


class SubMenuItem(_Frozen):
    id: RequiredText
    name: Text
    description: Text = ""
    price: Amount = 0
    duration: Amount = 0
    image: OptionalText = None


class MenuOption(_Frozen):
    id: RequiredText
    name: Text
    description: Text = ""
    price: Amount = 0
    duration: Amount = 0
    is_default: bool = False


class Menu(_Frozen):
    id: RequiredText
    name: Text
    description: Text = ""
    price: Amount = 0
    duration: Amount = 0
    image: OptionalText = None
    has_submenu: bool = False
    sub_menu_items: List[SubMenuItem] = Field(default_factory=list)
    options: List[MenuOption] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_refinement(self) -> "Menu":
        if self.sub_menu_items and self.options:
            raise ValueError(f"menu {self.id!r} has both submenu items and options")
        if self.has_submenu != bool(self.sub_menu_items):
            raise ValueError(f"menu {self.id!r} has_submenu does not match its submenu items")
        _ensure_unique_ids(self.sub_menu_items, f"submenu items of {self.id!r}")
        _ensure_unique_ids(self.options, f"options of {self.id!r}")
        return self

    def find_submenu(self, submenu_id: Optional[str]) -> Optional[SubMenuItem]:
        if not submenu_id:
            return None
        for item in self.sub_menu_items:
            if item.id == submenu_id:
                return item
        return None

    def find_option(self, option_id: Optional[str]) -> Optional[MenuOption]:
        if not option_id:
            return None
        for option in self.options:
            if option.id == option_id:
                return option
        return None


class Category(_Frozen):
    id: RequiredText
    name: Text = ""
    menus: List[Menu] = Field(default_factory=list)


class DisplayOptions(_Frozen):
    show_price: bool = True
    show_duration: bool = True
    show_description: bool = True
    show_treatment_info: bool = False


class MenuStructure(_Frozen):
    structure_type: StructureType = "category_based"
    categories: List[Category] = Field(default_factory=list)
    allow_cross_category_selection: bool = False
    display_options: DisplayOptions = Field(default_factory=DisplayOptions)

    @model_validator(mode="after")
    def _check_ids(self) -> "MenuStructure":
        _ensure_unique_ids(self.categories, "categories")
        _ensure_unique_ids([menu for category in self.categories for menu in category.menus], "menus")
        return self

    def find_menu(self, menu_id: Optional[str]) -> Optional[Menu]:
        if not menu_id:
            return None
        for category in self.categories:
            for menu in category.menus:
                if menu.id == menu_id:
                    return menu
        return None

    def category_of(self, menu_id: Optional[str]) -> Optional[Category]:
        for category in self.categories:
            if any(menu.id == menu_id for menu in category.menus):
                return category
        return None

    @property
    def has_menus(self) -> bool:
        return any(category.menus for category in self.categories)


class DayHours(_Frozen):
    open: str = Field(default=DEFAULT_OPEN, pattern=CLOCK_PATTERN)
    close: str = Field(default=DEFAULT_CLOSE, pattern=CLOCK_PATTERN)
    closed: bool = False


class BusinessHours(_Frozen):
    monday: DayHours = Field(default_factory=DayHours)
    tuesday: DayHours = Field(default_factory=DayHours)
    wednesday: DayHours = Field(default_factory=DayHours)
    thursday: DayHours = Field(default_factory=DayHours)
    friday: DayHours = Field(default_factory=DayHours)
    saturday: DayHours = Field(default_factory=DayHours)
    sunday: DayHours = Field(default_factory=lambda: DayHours(closed=True))

    def for_weekday(self, weekday: int) -> DayHours:
        """Return hours for ``weekday`` using ``date.weekday()`` numbering (Monday is 0)."""
        return getattr(self, WEEKDAYS[weekday])


class MultipleDatesSettings(_Frozen):
    time_interval: int = Field(default=30, ge=5, le=240)
    date_range_days: int = Field(default=30, ge=1, le=MAX_ADVANCE_BOOKING_DAYS)
    # JavaScript numbering: Sunday is 0
    exclude_weekdays: List[Annotated[int, Field(ge=0, le=6)]] = Field(default_factory=lambda: [0])
    start_time: str = Field(default=DEFAULT_OPEN, pattern=CLOCK_PATTERN)
    end_time: str = Field(default=DEFAULT_CLOSE, pattern=CLOCK_PATTERN)

    @field_validator("exclude_weekdays")
    @classmethod
    def _sort_weekdays(cls, value: List[int]) -> List[int]:
        return sorted(set(value))


class CalendarSettings(_Frozen):
    business_hours: BusinessHours = Field(default_factory=BusinessHours)
    advance_booking_days: int = Field(default=DEFAULT_ADVANCE_BOOKING_DAYS, ge=1, le=MAX_ADVANCE_BOOKING_DAYS)
    calendar_url: OptionalText = None
    booking_mode: BookingMode = "calendar"
    multiple_dates_settings: MultipleDatesSettings = Field(default_factory=MultipleDatesSettings)


class UISettings(_Frozen):
    theme_color: str = Field(default=DEFAULT_THEME_COLOR, pattern=HEX_COLOR_PATTERN)
    button_style: ButtonStyle = "rounded"
    show_repeat_booking: bool = False
    show_side_nav: bool = True


class ValidationRules(_Frozen):
    required_fields: List[Text] = Field(default_factory=lambda: ["name", "phone"])
    phone_format: PhoneFormat = "japanese"
    name_max_length: int = Field(default=50, ge=1, le=500)

    @field_validator("required_fields")
    @classmethod
    def _dedupe_fields(cls, value: List[str]) -> List[str]:
        fields: List[str] = []
        for item in value:
            if item and item not in fields:
                fields.append(item)
        return fields


def default_gender_selection() -> ChoiceSelection:
    return ChoiceSelection(
        options=[ChoiceOption(value="male", label="Male"), ChoiceOption(value="female", label="Female")]
    )


def default_visit_count_selection() -> ChoiceSelection:
    return ChoiceSelection(
        options=[ChoiceOption(value="first", label="First visit"), ChoiceOption(value="repeat", label="Returning")]
    )


def default_coupon_selection() -> ChoiceSelection:
    return ChoiceSelection(
        options=[ChoiceOption(value="use", label="Use coupon"), ChoiceOption(value="not_use", label="No coupon")]
    )


class FormConfig(_Frozen):
    """Canonical configuration of one booking form."""

    basic_info: BasicInfo
    gender_selection: ChoiceSelection = Field(default_factory=default_gender_selection)
    visit_count_selection: ChoiceSelection = Field(default_factory=default_visit_count_selection)
    coupon_selection: ChoiceSelection = Field(default_factory=default_coupon_selection)
    menu_structure: MenuStructure = Field(default_factory=MenuStructure)
    calendar_settings: CalendarSettings = Field(default_factory=CalendarSettings)
    ui_settings: UISettings = Field(default_factory=UISettings)
    validation_rules: ValidationRules = Field(default_factory=ValidationRules)
    webhook_endpoint: Text = ""

    @model_validator(mode="after")
    def _check_theme_sync(self) -> "FormConfig":
        if self.ui_settings.theme_color != self.basic_info.theme_color:
            raise ValueError("ui_settings.theme_color must equal basic_info.theme_color")
        return self


def _ensure_unique_ids(items, label: str) -> None:
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            raise ValueError(f"duplicate id {item.id!r} in {label}")
        seen.add(item.id)


__all__ = [
    "WEEKDAYS",
    "DEFAULT_FORM_NAME",
    "DEFAULT_THEME_COLOR",
    "DEFAULT_OPEN",
    "DEFAULT_CLOSE",
    "DEFAULT_ADVANCE_BOOKING_DAYS",
    "MAX_ADVANCE_BOOKING_DAYS",
    "MAX_AMOUNT",
    "BasicInfo",
    "ChoiceOption",
    "ChoiceSelection",
    "SubMenuItem",
    "MenuOption",
    "Menu",
    "Category",
    "DisplayOptions",
    "MenuStructure",
    "DayHours",
    "BusinessHours",
    "MultipleDatesSettings",
    "CalendarSettings",
    "UISettings",
    "ValidationRules",
    "FormConfig",
    "default_gender_selection",
    "default_visit_count_selection",
    "default_coupon_selection",
]
