from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, List, Optional

from ..schemas.form_config import WEEKDAYS, BusinessHours, FormConfig, MultipleDatesSettings
from .state import SLOT_MINUTES, week_start_for

# (date, "HH:MM") -> bool. Replace with a real availability source when one exists.
AvailabilityPredicate = Callable[[date, str], bool]


def always_available(day: date, slot: str) -> bool:
    return True


def clock_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_clock(value: int) -> str:
    return f"{value // 60:02d}:{value % 60:02d}"


def opening_window(hours: BusinessHours) -> Optional[tuple[int, int]]:
    open_days = [hours.for_weekday(index) for index in range(len(WEEKDAYS))]
    open_days = [day for day in open_days if not day.closed]
    if not open_days:
        return None
    start = min(clock_to_minutes(day.open) for day in open_days)
    end = max(clock_to_minutes(day.close) for day in open_days)
    if end <= start:
        return None
    return start, end


def build_time_slots(hours: BusinessHours) -> List[str]:
    """Half-hour row labels from the earliest opening to the latest closing."""
    window = opening_window(hours)
    if window is None:
        return []
    start, end = window
    return [minutes_to_clock(minute) for minute in range(start, end, SLOT_MINUTES)]


def is_cell_selectable(
    config: FormConfig,
    day: date,
    slot: str,
    today: date,
    predicate: AvailabilityPredicate = always_available,
) -> bool:
    settings = config.calendar_settings
    if day < today:
        return False
    if (day - today).days > settings.advance_booking_days:
        return False
    hours = settings.business_hours.for_weekday(day.weekday())
    if hours.closed:
        return False
    minute = clock_to_minutes(slot)
    if minute < clock_to_minutes(hours.open) or minute >= clock_to_minutes(hours.close):
        return False
    return bool(predicate(day, slot))


@dataclass(frozen=True)
class CalendarCell:
    date: str
    time: str
    selectable: bool


@dataclass(frozen=True)
class CalendarWeek:
    week_start: str
    days: List[str]
    slots: List[str]
    rows: List[List[CalendarCell]]

    def cell(self, day: str, slot: str) -> Optional[CalendarCell]:
        for row in self.rows:
            for cell in row:
                if cell.date == day and cell.time == slot:
                    return cell
        return None


def build_calendar(
    config: FormConfig,
    week_start: date,
    today: date,
    predicate: AvailabilityPredicate = always_available,
) -> CalendarWeek:
    monday = week_start_for(week_start)
    days = [monday + timedelta(days=offset) for offset in range(7)]
    slots = build_time_slots(config.calendar_settings.business_hours)
    rows = [
        [
            CalendarCell(day.isoformat(), slot, is_cell_selectable(config, day, slot, today, predicate))
            for day in days
        ]
        for slot in slots
    ]
    return CalendarWeek(monday.isoformat(), [day.isoformat() for day in days], slots, rows)


def _js_weekday(day: date) -> int:
    # Sunday is 0, matching the browser's Date.getDay()
    return (day.weekday() + 1) % 7


def preference_dates(settings: MultipleDatesSettings, today: date) -> List[str]:
    """Candidate dates for the preferred-date pickers, starting tomorrow."""
    excluded = set(settings.exclude_weekdays)
    candidates = (today + timedelta(days=offset) for offset in range(1, settings.date_range_days + 1))
    return [day.isoformat() for day in candidates if _js_weekday(day) not in excluded]


def preference_times(settings: MultipleDatesSettings) -> List[str]:
    start = clock_to_minutes(settings.start_time)
    end = clock_to_minutes(settings.end_time)
    return [minutes_to_clock(minute) for minute in range(start, end, settings.time_interval)]


__all__ = [
    "AvailabilityPredicate",
    "always_available",
    "clock_to_minutes",
    "minutes_to_clock",
    "opening_window",
    "build_time_slots",
    "is_cell_selectable",
    "CalendarCell",
    "CalendarWeek",
    "build_calendar",
    "preference_dates",
    "preference_times",
]
