from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple

SLOT_MINUTES = 30
PREFERENCE_COUNT = 3


class Phase(str, Enum):
    IDLE = "idle"
    MENU_CHOSEN = "menu_chosen"
    SUBMENU_CHOSEN = "submenu_chosen"
    DATE_CHOSEN = "date_chosen"
    READY_TO_SUBMIT = "ready_to_submit"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


LOCKED_PHASES = (Phase.SUBMITTING, Phase.SUBMITTED)


@dataclass(frozen=True)
class Preference:
    date: Optional[str] = None
    time: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.date and self.time)


def _empty_preferences() -> Tuple[Preference, ...]:
    return tuple(Preference() for _ in range(PREFERENCE_COUNT))


def week_start_for(day: date) -> date:
    """Return the Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


@dataclass(frozen=True)
class BookingState:
    """Serializable snapshot of one customer's progress through the wizard.

    Dates are ISO ``YYYY-MM-DD`` strings and times ``HH:MM`` so the snapshot
    matches what the embedded runtime keeps in the browser.
    """

    today: str
    week_start: str
    phase: Phase = Phase.IDLE
    name: str = ""
    phone: str = ""
    gender: Optional[str] = None
    visit_count: Optional[str] = None
    coupon: Optional[str] = None
    menu_id: Optional[str] = None
    submenu_id: Optional[str] = None
    option_ids: Tuple[str, ...] = ()
    date: Optional[str] = None
    time: Optional[str] = None
    preferences: Tuple[Preference, ...] = field(default_factory=_empty_preferences)
    message: str = ""
    error: Optional[str] = None

    @classmethod
    def start(cls, today: date) -> "BookingState":
        return cls(today=today.isoformat(), week_start=week_start_for(today).isoformat())

    @property
    def today_date(self) -> date:
        return date.fromisoformat(self.today)

    @property
    def week_start_date(self) -> date:
        return date.fromisoformat(self.week_start)

    @property
    def locked(self) -> bool:
        return self.phase in LOCKED_PHASES

    def evolve(self, **changes: Any) -> "BookingState":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["phase"] = self.phase.value
        data["option_ids"] = list(self.option_ids)
        data["preferences"] = [asdict(item) for item in self.preferences]
        return data


__all__ = [
    "SLOT_MINUTES",
    "PREFERENCE_COUNT",
    "Phase",
    "LOCKED_PHASES",
    "Preference",
    "BookingState",
    "week_start_for",
]
