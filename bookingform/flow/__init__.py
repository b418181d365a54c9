"""Reference model of the booking wizard that runs inside compiled forms."""

from .calendar import (
    AvailabilityPredicate,
    CalendarWeek,
    always_available,
    build_calendar,
    build_time_slots,
    is_cell_selectable,
    preference_dates,
    preference_times,
)
from .state import SLOT_MINUTES, BookingState, Phase, Preference
from .summary import build_submission_payload, derive_summary, format_confirmation_message
from .transitions import (
    SubmitOutcome,
    calendar_visible,
    complete_submission,
    navigate_month,
    navigate_week,
    restore_selection,
    select_date,
    select_menu,
    select_slot,
    select_submenu,
    select_time,
    set_field,
    set_preference,
    snapshot_selection,
    submit,
    toggle_option,
)
from .validation import VALIDATION_ORDER, ValidationIssue, validate

__all__ = [
    "AvailabilityPredicate",
    "CalendarWeek",
    "always_available",
    "build_calendar",
    "build_time_slots",
    "is_cell_selectable",
    "preference_dates",
    "preference_times",
    "SLOT_MINUTES",
    "BookingState",
    "Phase",
    "Preference",
    "build_submission_payload",
    "derive_summary",
    "format_confirmation_message",
    "SubmitOutcome",
    "calendar_visible",
    "complete_submission",
    "navigate_month",
    "navigate_week",
    "restore_selection",
    "select_date",
    "select_menu",
    "select_slot",
    "select_submenu",
    "select_time",
    "set_field",
    "set_preference",
    "snapshot_selection",
    "submit",
    "toggle_option",
    "VALIDATION_ORDER",
    "ValidationIssue",
    "validate",
]
