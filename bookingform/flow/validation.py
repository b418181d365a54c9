from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..schemas.form_config import ChoiceSelection, FormConfig
from .state import BookingState

# Steps run top to bottom; the first failing step is reported.
VALIDATION_ORDER: Tuple[str, ...] = (
    "name",
    "phone",
    "name_length",
    "gender",
    "visit_count",
    "coupon",
    "menu",
    "schedule",
)

MESSAGES: Dict[str, str] = {
    "name": "Please enter your name.",
    "phone": "Please enter a valid phone number.",
    "name_length": "Please keep your name within {max_length} characters.",
    "gender": "Please select your gender.",
    "visit_count": "Please select your visit count.",
    "coupon": "Please choose whether to use a coupon.",
    "menu": "Please select a menu.",
    "schedule": "Please choose a date and time.",
}

# Input field each step scrolls back to
STEP_FIELDS: Dict[str, str] = {
    "name": "name-field",
    "phone": "phone-field",
    "name_length": "name-field",
    "gender": "gender-field",
    "visit_count": "visit-count-field",
    "coupon": "coupon-field",
    "menu": "menu-field",
    "schedule": "datetime-field",
}

PHONE_STRIP_PATTERN = r"[\s\-()]"
PHONE_PATTERNS: Dict[str, str] = {
    "japanese": r"^0\d{9,10}$",
    "international": r"^\+?\d{7,15}$",
}


@dataclass(frozen=True)
class ValidationIssue:
    step: str
    field: str
    message: str


def is_valid_phone(phone: str, phone_format: str) -> bool:
    digits = re.sub(PHONE_STRIP_PATTERN, "", phone)
    return re.match(PHONE_PATTERNS[phone_format], digits) is not None


def _selection_missing(selection: ChoiceSelection, answer: Optional[str]) -> bool:
    return selection.enabled and selection.required and not answer


def schedule_of(state: BookingState, config: FormConfig) -> Tuple[Optional[str], Optional[str]]:
    if config.calendar_settings.booking_mode == "multiple_dates":
        first = state.preferences[0]
        return first.date, first.time
    return state.date, state.time


def _failing(step: str, state: BookingState, config: FormConfig) -> bool:
    rules = config.validation_rules
    if step == "name":
        return not state.name.strip()
    if step == "phone":
        return not is_valid_phone(state.phone, rules.phone_format)
    if step == "name_length":
        return len(state.name.strip()) > rules.name_max_length
    if step == "gender":
        return _selection_missing(config.gender_selection, state.gender)
    if step == "visit_count":
        return _selection_missing(config.visit_count_selection, state.visit_count)
    if step == "coupon":
        return _selection_missing(config.coupon_selection, state.coupon)
    if step == "menu":
        menu = config.menu_structure.find_menu(state.menu_id)
        if menu is None:
            return True
        return menu.has_submenu and menu.find_submenu(state.submenu_id) is None
    if step == "schedule":
        day, slot = schedule_of(state, config)
        return not (day and slot)
    raise ValueError(f"Unknown validation step: {step}")


def validate(state: BookingState, config: FormConfig) -> Optional[ValidationIssue]:
    """Return the first violation in submission order, or None when the state can be submitted."""
    for step in VALIDATION_ORDER:
        if _failing(step, state, config):
            message = MESSAGES[step].format(max_length=config.validation_rules.name_max_length)
            return ValidationIssue(step=step, field=STEP_FIELDS[step], message=message)
    return None


__all__ = [
    "VALIDATION_ORDER",
    "MESSAGES",
    "STEP_FIELDS",
    "PHONE_STRIP_PATTERN",
    "PHONE_PATTERNS",
    "ValidationIssue",
    "is_valid_phone",
    "schedule_of",
    "validate",
]
