"""Pure transitions of the booking wizard.

Every user action maps to one function ``(state, config, ...) -> state``.
Transitions never mutate their input and ignore actions that do not apply
to the current state (unknown ids, unselectable cells, locked phases).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Mapping, Optional

from ..schemas.form_config import ChoiceSelection, FormConfig, Menu
from .calendar import AvailabilityPredicate, always_available, build_time_slots, is_cell_selectable
from .state import PREFERENCE_COUNT, BookingState, Phase, Preference, week_start_for
from .summary import build_submission_payload
from .validation import ValidationIssue, schedule_of, validate

REPEAT_BOOKING_MAX_AGE = timedelta(days=7)

TEXT_FIELDS = ("name", "phone", "message")
CHOICE_FIELDS = ("gender", "visit_count", "coupon")


def _derive_phase(state: BookingState, config: FormConfig) -> Phase:
    menu = config.menu_structure.find_menu(state.menu_id)
    if menu is None:
        return Phase.IDLE
    if menu.has_submenu and menu.find_submenu(state.submenu_id) is None:
        return Phase.MENU_CHOSEN
    day, slot = schedule_of(state, config)
    if day and slot:
        return Phase.READY_TO_SUBMIT
    if day:
        return Phase.DATE_CHOSEN
    return Phase.SUBMENU_CHOSEN if menu.has_submenu else Phase.MENU_CHOSEN


def settle(state: BookingState, config: FormConfig) -> BookingState:
    if state.locked:
        return state
    return state.evolve(phase=_derive_phase(state, config))


def active_menu(state: BookingState, config: FormConfig) -> Optional[Menu]:
    return config.menu_structure.find_menu(state.menu_id)


def calendar_visible(state: BookingState, config: FormConfig) -> bool:
    menu = active_menu(state, config)
    if menu is None:
        return False
    return not menu.has_submenu or menu.find_submenu(state.submenu_id) is not None


def _cleared_schedule() -> Dict[str, Any]:
    return {
        "date": None,
        "time": None,
        "preferences": tuple(Preference() for _ in range(PREFERENCE_COUNT)),
    }


def select_menu(state: BookingState, config: FormConfig, menu_id: str) -> BookingState:
    """Activate a top-level menu, or deselect it when it is already active."""
    if state.locked:
        return state
    menu = config.menu_structure.find_menu(menu_id)
    if menu is None:
        return state
    if state.menu_id == menu.id:
        changes: Dict[str, Any] = {"menu_id": None, "submenu_id": None, "option_ids": ()}
    else:
        defaults = tuple(option.id for option in menu.options if option.is_default)
        changes = {"menu_id": menu.id, "submenu_id": None, "option_ids": defaults}
    changes.update(_cleared_schedule())
    return settle(state.evolve(error=None, **changes), config)


def select_submenu(state: BookingState, config: FormConfig, submenu_id: str) -> BookingState:
    if state.locked:
        return state
    menu = active_menu(state, config)
    if menu is None or menu.find_submenu(submenu_id) is None:
        return state
    return settle(state.evolve(submenu_id=submenu_id, error=None), config)


def toggle_option(state: BookingState, config: FormConfig, option_id: str) -> BookingState:
    if state.locked:
        return state
    menu = active_menu(state, config)
    if menu is None or menu.find_option(option_id) is None:
        return state
    selected = set(state.option_ids)
    selected.symmetric_difference_update({option_id})
    ordered = tuple(option.id for option in menu.options if option.id in selected)
    return settle(state.evolve(option_ids=ordered, error=None), config)


def _choice_selection(config: FormConfig, field: str) -> ChoiceSelection:
    return getattr(config, f"{field}_selection")


def set_field(state: BookingState, config: FormConfig, field: str, value: Optional[str]) -> BookingState:
    """Update a free-text input or a demographic answer."""
    if state.locked:
        return state
    if field in TEXT_FIELDS:
        return settle(state.evolve(error=None, **{field: value or ""}), config)
    if field in CHOICE_FIELDS:
        selection = _choice_selection(config, field)
        if not selection.enabled:
            return state
        if value and value not in {option.value for option in selection.options}:
            return state
        return settle(state.evolve(error=None, **{field: value or None}), config)
    raise ValueError(f"Unknown booking field: {field}")


def _day_has_selectable_slot(
    config: FormConfig, day: date, today: date, predicate: AvailabilityPredicate
) -> bool:
    slots = build_time_slots(config.calendar_settings.business_hours)
    return any(is_cell_selectable(config, day, slot, today, predicate) for slot in slots)


def select_date(
    state: BookingState,
    config: FormConfig,
    day: date,
    predicate: AvailabilityPredicate = always_available,
) -> BookingState:
    if state.locked or not calendar_visible(state, config):
        return state
    if not _day_has_selectable_slot(config, day, state.today_date, predicate):
        return state
    return settle(state.evolve(date=day.isoformat(), time=None, error=None), config)


def select_time(
    state: BookingState,
    config: FormConfig,
    slot: str,
    predicate: AvailabilityPredicate = always_available,
) -> BookingState:
    if state.locked or not state.date or not calendar_visible(state, config):
        return state
    day = date.fromisoformat(state.date)
    if not is_cell_selectable(config, day, slot, state.today_date, predicate):
        return state
    return settle(state.evolve(time=slot, error=None), config)


def select_slot(
    state: BookingState,
    config: FormConfig,
    day: date,
    slot: str,
    predicate: AvailabilityPredicate = always_available,
) -> BookingState:
    """Pick one calendar cell; unselectable cells leave the state unchanged."""
    if state.locked or not calendar_visible(state, config):
        return state
    if not is_cell_selectable(config, day, slot, state.today_date, predicate):
        return state
    return settle(state.evolve(date=day.isoformat(), time=slot, error=None), config)


def set_preference(
    state: BookingState,
    config: FormConfig,
    index: int,
    day: Optional[str] = None,
    slot: Optional[str] = None,
) -> BookingState:
    if state.locked or not calendar_visible(state, config):
        return state
    if not 0 <= index < PREFERENCE_COUNT:
        raise IndexError(f"Preference index out of range: {index}")
    preferences = list(state.preferences)
    preferences[index] = Preference(date=day or None, time=slot or None)
    return settle(state.evolve(preferences=tuple(preferences), error=None), config)


def _move_week(state: BookingState, config: FormConfig, target: date) -> BookingState:
    earliest = week_start_for(state.today_date)
    monday = max(week_start_for(target), earliest)
    changes: Dict[str, Any] = {"week_start": monday.isoformat()}
    if state.date:
        selected = date.fromisoformat(state.date)
        if not monday <= selected <= monday + timedelta(days=6):
            changes.update(date=None, time=None)
    return settle(state.evolve(**changes), config)


def navigate_week(state: BookingState, config: FormConfig, delta: int) -> BookingState:
    if state.locked:
        return state
    return _move_week(state, config, state.week_start_date + timedelta(days=7 * delta))


def navigate_month(state: BookingState, config: FormConfig, delta: int) -> BookingState:
    """Jump to the week containing the first day of the month ``delta`` months away."""
    if state.locked:
        return state
    current = state.week_start_date
    month_index = current.year * 12 + (current.month - 1) + delta
    target = date(month_index // 12, month_index % 12 + 1, 1)
    return _move_week(state, config, target)


@dataclass(frozen=True)
class SubmitOutcome:
    state: BookingState
    payload: Optional[Dict[str, Any]] = None
    issue: Optional[ValidationIssue] = None


def submit(state: BookingState, config: FormConfig, submitted_at: datetime) -> SubmitOutcome:
    """Validate and, on success, move to ``submitting`` with the webhook payload.

    Validation failures keep the current phase and record the message on the state.
    """
    if state.locked:
        return SubmitOutcome(state)
    issue = validate(state, config)
    if issue is not None:
        return SubmitOutcome(state.evolve(error=issue.message), issue=issue)
    payload = build_submission_payload(state, config, submitted_at)
    return SubmitOutcome(state.evolve(phase=Phase.SUBMITTING, error=None), payload=payload)


def complete_submission(state: BookingState) -> BookingState:
    # Delivery is best-effort; the terminal view is shown whatever the outcome.
    if state.phase != Phase.SUBMITTING:
        return state
    return state.evolve(phase=Phase.SUBMITTED)


def snapshot_selection(state: BookingState, saved_at: datetime) -> Dict[str, Any]:
    """Selection stored for the repeat-booking shortcut."""
    return {
        "menu_id": state.menu_id,
        "submenu_id": state.submenu_id,
        "option_ids": list(state.option_ids),
        "gender": state.gender,
        "visit_count": state.visit_count,
        "coupon": state.coupon,
        "saved_at": saved_at.isoformat(),
    }


def restore_selection(
    state: BookingState, config: FormConfig, saved: Mapping[str, Any], now: datetime
) -> BookingState:
    """Re-apply a stored selection younger than seven days."""
    if state.locked:
        return state
    try:
        saved_at = datetime.fromisoformat(str(saved.get("saved_at")))
    except ValueError:
        return state
    if now - saved_at > REPEAT_BOOKING_MAX_AGE:
        return state
    restored = state
    menu_id = saved.get("menu_id")
    if menu_id and menu_id != state.menu_id:
        restored = select_menu(restored, config, menu_id)
    if saved.get("submenu_id"):
        restored = select_submenu(restored, config, saved["submenu_id"])
    menu = active_menu(restored, config)
    if menu is not None and isinstance(saved.get("option_ids"), list):
        option_ids = tuple(option.id for option in menu.options if option.id in saved["option_ids"])
        restored = settle(restored.evolve(option_ids=option_ids), config)
    for field in CHOICE_FIELDS:
        if saved.get(field):
            restored = set_field(restored, config, field, saved[field])
    return restored


__all__ = [
    "REPEAT_BOOKING_MAX_AGE",
    "settle",
    "active_menu",
    "calendar_visible",
    "select_menu",
    "select_submenu",
    "toggle_option",
    "set_field",
    "select_date",
    "select_time",
    "select_slot",
    "set_preference",
    "navigate_week",
    "navigate_month",
    "SubmitOutcome",
    "submit",
    "complete_submission",
    "snapshot_selection",
    "restore_selection",
]
