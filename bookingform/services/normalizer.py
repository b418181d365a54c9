"""Reconcile stored booking form records into the canonical configuration.

Stored records come in three historical shapes that are freely mixed:

* canonical: ``FormConfig`` keys under ``record["config"]`` (dict or JSON
  string) or directly at the record root;
* nested legacy: fragments under alternate keys such as
  ``basic_info.show_gender_selection`` or ``business_rules.business_hours``;
* flat legacy: top-level ``title``, ``theme_color``, ``show_*`` toggles and
  an ``open_time``/``close_time`` pair.

Every canonical field has a fixed chain of candidates in ``FIELD_CHAINS``.
The first candidate whose value coerces wins; otherwise the default is used.
Supporting a new historical shape means adding candidates to the table.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..schemas.form_config import (
    DEFAULT_ADVANCE_BOOKING_DAYS,
    DEFAULT_CLOSE,
    DEFAULT_FORM_NAME,
    DEFAULT_OPEN,
    DEFAULT_THEME_COLOR,
    MAX_ADVANCE_BOOKING_DAYS,
    MAX_AMOUNT,
    WEEKDAYS,
    BasicInfo,
    FormConfig,
    default_coupon_selection,
    default_gender_selection,
    default_visit_count_selection,
)

logger = logging.getLogger(__name__)

_HEX6_RE = re.compile(r"^#?([0-9A-Fa-f]{6})$")
_HEX3_RE = re.compile(r"^#?([0-9A-Fa-f]{3})$")
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}

# Sources each shape is looked up in. The canonical and nested shapes may
# sit under ``config`` or at the root; the flat shape only exists at the root.
_SHAPE_SOURCES: Dict[str, Tuple[str, ...]] = {
    "canonical": ("config", "root"),
    "nested": ("config", "root"),
    "flat": ("root",),
}


@dataclass(frozen=True)
class Candidate:
    shape: str
    path: Tuple[str, ...]
    coerce: Optional[Callable[[Any], Any]] = None


def canonical(*path: str) -> Candidate:
    return Candidate("canonical", path)


def nested(*path: str) -> Candidate:
    return Candidate("nested", path)


def flat(*path: str, coerce: Optional[Callable[[Any], Any]] = None) -> Candidate:
    return Candidate("flat", path, coerce)


# --------------------------------------------------------------------------
# Coercion helpers. Each returns None when the raw value is unusable so the
# resolver moves on to the next candidate.
# --------------------------------------------------------------------------


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            value = str(value)
        except ValueError:
            return None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not _NUMBER_RE.match(cleaned):
            return None
        number = float(cleaned)
    else:
        return None
    return number if math.isfinite(number) else None


def _amount(value: Any) -> int:
    number = _number(value)
    if number is None or number < 0 or number > MAX_AMOUNT:
        return 0
    return int(round(number))


def _int_between(low: int, high: int) -> Callable[[Any], Optional[int]]:
    def _coerce(value: Any) -> Optional[int]:
        number = _number(value)
        if number is None or number != int(number):
            return None
        resolved = int(number)
        if resolved < low or resolved > high:
            return None
        return resolved

    return _coerce


def _one_of(*allowed: str) -> Callable[[Any], Optional[str]]:
    def _coerce(value: Any) -> Optional[str]:
        text = _text(value)
        if text is None:
            return None
        lowered = text.lower()
        return lowered if lowered in allowed else None

    return _coerce


def normalize_hex_color(value: Any) -> Optional[str]:
    text = _text(value)
    if text is None:
        return None
    match = _HEX6_RE.match(text)
    if match:
        return f"#{match.group(1).upper()}"
    match = _HEX3_RE.match(text)
    if match:
        return "#" + "".join(ch * 2 for ch in match.group(1).upper())
    return None


def normalize_clock(value: Any) -> Optional[str]:
    text = _text(value)
    if text is None:
        return None
    match = _CLOCK_RE.match(text)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def _choice_options(value: Any) -> Optional[List[dict]]:
    if not isinstance(value, list):
        return None
    options: List[dict] = []
    seen: set[str] = set()
    for item in value:
        if isinstance(item, Mapping):
            option_value = _text(item.get("value"))
            label = _text(item.get("label"))
        else:
            option_value = _text(item)
            label = None
        if option_value is None or option_value in seen:
            continue
        seen.add(option_value)
        options.append({"value": option_value, "label": label or option_value})
    return options or None


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    items: List[str] = []
    for item in value:
        text = _text(item)
        if text is not None and text not in items:
            items.append(text)
    return items


# --------------------------------------------------------------------------
# Business hours
# --------------------------------------------------------------------------


def _default_day(day: str, open_time: str = DEFAULT_OPEN, close_time: str = DEFAULT_CLOSE) -> dict:
    return {"open": open_time, "close": close_time, "closed": day == "sunday"}


def default_week() -> Dict[str, dict]:
    return {day: _default_day(day) for day in WEEKDAYS}


def _expand_pair(open_time: str, close_time: str) -> Dict[str, dict]:
    return {day: _default_day(day, open_time, close_time) for day in WEEKDAYS}


def _day_hours(entry: Any, fallback: dict) -> dict:
    if not isinstance(entry, Mapping):
        return dict(fallback)
    closed = _flag(entry.get("closed"))
    return {
        "open": normalize_clock(entry.get("open")) or fallback["open"],
        "close": normalize_clock(entry.get("close")) or fallback["close"],
        "closed": False if closed is None else closed,
    }


def _hours_pair(value: Mapping, open_key: str, close_key: str) -> Optional[Tuple[str, str]]:
    open_time = normalize_clock(value.get(open_key))
    close_time = normalize_clock(value.get(close_key))
    if open_time is None or close_time is None:
        return None
    return open_time, close_time


def normalize_business_hours(value: Any) -> Optional[Dict[str, dict]]:
    """Normalize a weekly mapping or expand a legacy single open/close pair."""
    if not isinstance(value, Mapping):
        return None
    if any(day in value for day in WEEKDAYS):
        defaults = default_week()
        return {day: _day_hours(value.get(day), defaults[day]) for day in WEEKDAYS}
    pair = _hours_pair(value, "open", "close") or _hours_pair(value, "start", "end")
    if pair is None:
        return None
    return _expand_pair(*pair)


def _flat_hours_pair(value: Any) -> Optional[Dict[str, dict]]:
    if not isinstance(value, Mapping):
        return None
    pair = _hours_pair(value, "open_time", "close_time")
    if pair is None:
        return None
    return _expand_pair(*pair)


def _multiple_dates_settings(value: Any) -> Optional[dict]:
    if not isinstance(value, Mapping):
        return None
    weekdays_raw = value.get("exclude_weekdays")
    if isinstance(weekdays_raw, list):
        exclude = sorted({day for day in (_int_between(0, 6)(item) for item in weekdays_raw) if day is not None})
    else:
        exclude = [0]
    return {
        "time_interval": _int_between(5, 240)(value.get("time_interval")) or 30,
        "date_range_days": _int_between(1, MAX_ADVANCE_BOOKING_DAYS)(value.get("date_range_days")) or 30,
        "exclude_weekdays": exclude,
        "start_time": normalize_clock(value.get("start_time")) or DEFAULT_OPEN,
        "end_time": normalize_clock(value.get("end_time")) or DEFAULT_CLOSE,
    }


# --------------------------------------------------------------------------
# Menus
# --------------------------------------------------------------------------


def _unique_id(base: str, used: set[str]) -> str:
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def _submenu_item(raw: Mapping, index: int, used: set[str]) -> dict:
    return {
        "id": _unique_id(_text(raw.get("id")) or f"submenu-{index + 1}", used),
        "name": _text(raw.get("name")) or "",
        "description": _text(raw.get("description")) or "",
        "price": _amount(raw.get("price")),
        "duration": _amount(raw.get("duration")),
        "image": _text(raw.get("image")),
    }


def _menu_option(raw: Mapping, index: int, used: set[str]) -> dict:
    return {
        "id": _unique_id(_text(raw.get("id")) or f"option-{index + 1}", used),
        "name": _text(raw.get("name")) or "",
        "description": _text(raw.get("description")) or "",
        "price": _amount(raw.get("price")),
        "duration": _amount(raw.get("duration")),
        "is_default": _flag(raw.get("is_default")) or False,
    }


def _menu(raw: Mapping, category_index: int, index: int, used_menu_ids: set[str]) -> dict:
    used_children: set[str] = set()
    sub_raw = raw.get("sub_menu_items")
    submenus = [
        _submenu_item(item, idx, used_children)
        for idx, item in enumerate(sub_raw if isinstance(sub_raw, list) else [])
        if isinstance(item, Mapping)
    ]
    used_options: set[str] = set()
    options_raw = raw.get("options")
    options = [
        _menu_option(item, idx, used_options)
        for idx, item in enumerate(options_raw if isinstance(options_raw, list) else [])
        if isinstance(item, Mapping)
    ]

    # Submenus and options are exclusive refinements; the flag picks the winner.
    explicit = _flag(raw.get("has_submenu"))
    has_submenu = bool(submenus) if explicit is None else explicit and bool(submenus)
    if has_submenu:
        options = []
    else:
        submenus = []

    return {
        "id": _unique_id(_text(raw.get("id")) or f"menu-{category_index + 1}-{index + 1}", used_menu_ids),
        "name": _text(raw.get("name")) or "",
        "description": _text(raw.get("description")) or "",
        "price": _amount(raw.get("price")),
        "duration": _amount(raw.get("duration")),
        "image": _text(raw.get("image")),
        "has_submenu": has_submenu,
        "sub_menu_items": submenus,
        "options": options,
    }


def normalize_categories(value: Any) -> Optional[List[dict]]:
    if not isinstance(value, list):
        return None
    used_category_ids: set[str] = set()
    used_menu_ids: set[str] = set()
    categories: List[dict] = []
    for category_index, raw in enumerate(value):
        if not isinstance(raw, Mapping):
            continue
        menus_raw = raw.get("menus")
        menus = [
            _menu(item, category_index, index, used_menu_ids)
            for index, item in enumerate(menus_raw if isinstance(menus_raw, list) else [])
            if isinstance(item, Mapping)
        ]
        categories.append(
            {
                "id": _unique_id(_text(raw.get("id")) or f"category-{category_index + 1}", used_category_ids),
                "name": _text(raw.get("name")) or _text(raw.get("label")) or "",
                "menus": menus,
            }
        )
    return categories


def _bare_menus(value: Any) -> Optional[List[dict]]:
    if not isinstance(value, list):
        return None
    return normalize_categories([{"id": "category-1", "name": "", "menus": value}])


# --------------------------------------------------------------------------
# Field chains
# --------------------------------------------------------------------------

FIELD_CHAINS: Dict[str, Tuple[Candidate, ...]] = {
    "basic_info.form_name": (
        canonical("basic_info", "form_name"),
        flat("form_name"),
        flat("title"),
    ),
    "basic_info.store_name": (
        canonical("basic_info", "store_name"),
        flat("store_name"),
    ),
    "basic_info.logo_url": (
        canonical("basic_info", "logo_url"),
        flat("logo_url"),
    ),
    "basic_info.liff_id": (
        canonical("basic_info", "liff_id"),
        nested("line_settings", "liff_id"),
        flat("liff_id"),
    ),
    "theme_color": (
        canonical("basic_info", "theme_color"),
        canonical("ui_settings", "theme_color"),
        flat("theme_color"),
    ),
    "gender_selection.enabled": (
        canonical("gender_selection", "enabled"),
        nested("basic_info", "show_gender_selection"),
        flat("show_gender_selection"),
    ),
    "gender_selection.required": (canonical("gender_selection", "required"),),
    "gender_selection.options": (canonical("gender_selection", "options"),),
    "gender_selection.coupon_name": (canonical("gender_selection", "coupon_name"),),
    "visit_count_selection.enabled": (
        canonical("visit_count_selection", "enabled"),
        nested("ui_settings", "show_visit_count"),
        flat("show_visit_count"),
    ),
    "visit_count_selection.required": (canonical("visit_count_selection", "required"),),
    "visit_count_selection.options": (canonical("visit_count_selection", "options"),),
    "visit_count_selection.coupon_name": (canonical("visit_count_selection", "coupon_name"),),
    "coupon_selection.enabled": (
        canonical("coupon_selection", "enabled"),
        nested("ui_settings", "show_coupon_selection"),
        flat("show_coupon_selection"),
    ),
    "coupon_selection.required": (canonical("coupon_selection", "required"),),
    "coupon_selection.options": (canonical("coupon_selection", "options"),),
    "coupon_selection.coupon_name": (
        canonical("coupon_selection", "coupon_name"),
        flat("coupon_name"),
    ),
    "menu_structure.structure_type": (canonical("menu_structure", "structure_type"),),
    "menu_structure.categories": (
        canonical("menu_structure", "categories"),
        flat("categories"),
        flat("menus", coerce=_bare_menus),
    ),
    "menu_structure.allow_cross_category_selection": (
        canonical("menu_structure", "allow_cross_category_selection"),
    ),
    "menu_structure.display_options.show_price": (
        canonical("menu_structure", "display_options", "show_price"),
    ),
    "menu_structure.display_options.show_duration": (
        canonical("menu_structure", "display_options", "show_duration"),
    ),
    "menu_structure.display_options.show_description": (
        canonical("menu_structure", "display_options", "show_description"),
    ),
    "menu_structure.display_options.show_treatment_info": (
        canonical("menu_structure", "display_options", "show_treatment_info"),
    ),
    "calendar_settings.business_hours": (
        canonical("calendar_settings", "business_hours"),
        nested("business_rules", "business_hours"),
        flat("business_hours"),
        flat(coerce=_flat_hours_pair),
    ),
    "calendar_settings.advance_booking_days": (
        canonical("calendar_settings", "advance_booking_days"),
        nested("business_rules", "advance_booking_days"),
        flat("advance_booking_days"),
    ),
    "calendar_settings.calendar_url": (
        canonical("calendar_settings", "calendar_url"),
        flat("calendar_url"),
    ),
    "calendar_settings.booking_mode": (canonical("calendar_settings", "booking_mode"),),
    "calendar_settings.multiple_dates_settings": (
        canonical("calendar_settings", "multiple_dates_settings"),
    ),
    "ui_settings.button_style": (
        canonical("ui_settings", "button_style"),
        flat("button_style"),
    ),
    "ui_settings.show_repeat_booking": (
        canonical("ui_settings", "show_repeat_booking"),
        flat("show_repeat_booking"),
    ),
    "ui_settings.show_side_nav": (
        canonical("ui_settings", "show_side_nav"),
        flat("show_side_nav"),
    ),
    "validation_rules.required_fields": (canonical("validation_rules", "required_fields"),),
    "validation_rules.phone_format": (canonical("validation_rules", "phone_format"),),
    "validation_rules.name_max_length": (canonical("validation_rules", "name_max_length"),),
    "webhook_endpoint": (
        canonical("webhook_endpoint"),
        canonical("gas_endpoint"),
        flat("gas_endpoint"),
    ),
}


def _dig(source: Any, path: Tuple[str, ...]) -> Any:
    cursor = source
    for key in path:
        if not isinstance(cursor, Mapping):
            return None
        cursor = cursor.get(key)
    return cursor


def _parse_config(value: Any) -> dict:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    return dict(value) if isinstance(value, Mapping) else {}


class FieldResolver:
    """Resolve canonical fields against the tagged sources of one record."""

    def __init__(self, record: Mapping[str, Any]) -> None:
        self._sources = {"config": _parse_config(record.get("config")), "root": record}
        self.fallbacks: List[str] = []

    def resolve(self, field: str, coerce: Callable[[Any], Any], default: Any) -> Any:
        for candidate in FIELD_CHAINS[field]:
            resolve_value = candidate.coerce or coerce
            for source_name in _SHAPE_SOURCES[candidate.shape]:
                raw = _dig(self._sources[source_name], candidate.path)
                if raw is None:
                    continue
                value = resolve_value(raw)
                if value is not None:
                    return value
        self.fallbacks.append(field)
        return default() if callable(default) else default


def _coerce_record(record: Any) -> dict:
    if isinstance(record, FormConfig):
        return record.model_dump(mode="json")
    if isinstance(record, (str, bytes)):
        try:
            record = json.loads(record)
        except ValueError:
            return {}
    if isinstance(record, Mapping):
        return dict(record)
    return {}


def _selection(resolver: FieldResolver, name: str, defaults: dict) -> dict:
    return {
        "enabled": resolver.resolve(f"{name}.enabled", _flag, False),
        "required": resolver.resolve(f"{name}.required", _flag, False),
        "options": resolver.resolve(f"{name}.options", _choice_options, lambda: list(defaults["options"])),
        "coupon_name": resolver.resolve(f"{name}.coupon_name", _text, ""),
    }


def _build_config_data(resolver: FieldResolver) -> dict:
    theme_color = resolver.resolve("theme_color", normalize_hex_color, DEFAULT_THEME_COLOR)
    display = "menu_structure.display_options"
    return {
        "basic_info": {
            "form_name": resolver.resolve("basic_info.form_name", _text, DEFAULT_FORM_NAME),
            "store_name": resolver.resolve("basic_info.store_name", _text, ""),
            "theme_color": theme_color,
            "logo_url": resolver.resolve("basic_info.logo_url", _text, None),
            "liff_id": resolver.resolve("basic_info.liff_id", _text, ""),
        },
        "gender_selection": _selection(
            resolver, "gender_selection", default_gender_selection().model_dump(mode="json")
        ),
        "visit_count_selection": _selection(
            resolver, "visit_count_selection", default_visit_count_selection().model_dump(mode="json")
        ),
        "coupon_selection": _selection(
            resolver, "coupon_selection", default_coupon_selection().model_dump(mode="json")
        ),
        "menu_structure": {
            "structure_type": resolver.resolve(
                "menu_structure.structure_type", _one_of("category_based"), "category_based"
            ),
            "categories": resolver.resolve("menu_structure.categories", normalize_categories, list),
            "allow_cross_category_selection": resolver.resolve(
                "menu_structure.allow_cross_category_selection", _flag, False
            ),
            "display_options": {
                "show_price": resolver.resolve(f"{display}.show_price", _flag, True),
                "show_duration": resolver.resolve(f"{display}.show_duration", _flag, True),
                "show_description": resolver.resolve(f"{display}.show_description", _flag, True),
                "show_treatment_info": resolver.resolve(f"{display}.show_treatment_info", _flag, False),
            },
        },
        "calendar_settings": {
            "business_hours": resolver.resolve(
                "calendar_settings.business_hours", normalize_business_hours, default_week
            ),
            "advance_booking_days": resolver.resolve(
                "calendar_settings.advance_booking_days",
                _int_between(1, MAX_ADVANCE_BOOKING_DAYS),
                DEFAULT_ADVANCE_BOOKING_DAYS,
            ),
            "calendar_url": resolver.resolve("calendar_settings.calendar_url", _text, None),
            "booking_mode": resolver.resolve(
                "calendar_settings.booking_mode", _one_of("calendar", "multiple_dates"), "calendar"
            ),
            "multiple_dates_settings": resolver.resolve(
                "calendar_settings.multiple_dates_settings",
                _multiple_dates_settings,
                lambda: _multiple_dates_settings({}),
            ),
        },
        "ui_settings": {
            "theme_color": theme_color,
            "button_style": resolver.resolve("ui_settings.button_style", _one_of("rounded", "square"), "rounded"),
            "show_repeat_booking": resolver.resolve("ui_settings.show_repeat_booking", _flag, False),
            "show_side_nav": resolver.resolve("ui_settings.show_side_nav", _flag, True),
        },
        "validation_rules": {
            "required_fields": resolver.resolve(
                "validation_rules.required_fields", _string_list, lambda: ["name", "phone"]
            ),
            "phone_format": resolver.resolve(
                "validation_rules.phone_format", _one_of("japanese", "international"), "japanese"
            ),
            "name_max_length": resolver.resolve(
                "validation_rules.name_max_length", _int_between(1, 500), 50
            ),
        },
        "webhook_endpoint": resolver.resolve("webhook_endpoint", _text, ""),
    }


def normalize_form(record: Any) -> FormConfig:
    """Return the canonical configuration for a stored record of any historical shape.

    Never raises for JSON-compatible input. Normalizing the result again
    returns an equal configuration.
    """
    resolver = FieldResolver(_coerce_record(record))
    data = _build_config_data(resolver)
    if resolver.fallbacks:
        logger.debug(
            "Normalizer used defaults for %d field(s)",
            len(resolver.fallbacks),
            extra={"data": {"fields": resolver.fallbacks}},
        )
    try:
        return FormConfig.model_validate(data)
    except ValidationError:
        logger.exception("Normalized record failed validation; using default configuration")
        return default_form_config()


def default_form_config(form_name: str = DEFAULT_FORM_NAME) -> FormConfig:
    return FormConfig(basic_info=BasicInfo(form_name=_text(form_name) or DEFAULT_FORM_NAME))


__all__ = [
    "Candidate",
    "FIELD_CHAINS",
    "FieldResolver",
    "normalize_form",
    "normalize_business_hours",
    "normalize_categories",
    "normalize_hex_color",
    "normalize_clock",
    "default_week",
    "default_form_config",
]
