from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from bookingform.flow import (
    BookingState,
    Phase,
    build_calendar,
    build_time_slots,
    calendar_visible,
    complete_submission,
    derive_summary,
    format_confirmation_message,
    is_cell_selectable,
    navigate_month,
    navigate_week,
    preference_dates,
    preference_times,
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
    validate,
)
from bookingform.flow.validation import MESSAGES
from bookingform.services.normalizer import normalize_form

# 2024-05-06 is a Monday
TODAY = date(2024, 5, 6)
SUBMITTED_AT = datetime(2024, 5, 6, 12, 0, 0)


def _config(**overrides):
    record = {
        "title": "Cut Reservation",
        "store_name": "Salon A",
        "categories": [
            {
                "id": "c1",
                "name": "Hair",
                "menus": [
                    {
                        "id": "menu-a",
                        "name": "Cut",
                        "price": 3000,
                        "duration": 60,
                        "options": [
                            {"id": "o1", "name": "Shampoo", "price": 500, "duration": 15},
                            {"id": "o2", "name": "Treatment", "price": 800, "duration": 20},
                        ],
                    },
                    {
                        "id": "menu-b",
                        "name": "Perm",
                        "has_submenu": True,
                        "sub_menu_items": [
                            {"id": "s1", "name": "Short", "price": 5000, "duration": 90},
                            {"id": "s2", "name": "Long", "price": 7000, "duration": 120},
                        ],
                    },
                    {
                        "id": "menu-c",
                        "name": "Color",
                        "price": 6000,
                        "options": [{"id": "gloss", "name": "Gloss", "price": 1000, "is_default": True}],
                    },
                ],
            }
        ],
    }
    record.update(overrides)
    return normalize_form(record)


def _contact(state, config):
    state = set_field(state, config, "name", "Hanako")
    return set_field(state, config, "phone", "090-1234-5678")


def test_switching_menus_clears_options_and_hides_calendar_until_submenu() -> None:
    config = _config()
    state = BookingState.start(TODAY)

    state = select_menu(state, config, "menu-a")
    state = toggle_option(state, config, "o2")
    state = toggle_option(state, config, "o1")
    assert state.phase == Phase.MENU_CHOSEN
    assert state.option_ids == ("o1", "o2")
    assert calendar_visible(state, config)

    state = select_slot(state, config, date(2024, 5, 7), "10:00")
    assert state.phase == Phase.READY_TO_SUBMIT

    state = select_menu(state, config, "menu-b")
    assert state.menu_id == "menu-b"
    assert state.option_ids == ()
    assert state.date is None and state.time is None
    assert state.phase == Phase.MENU_CHOSEN
    assert not calendar_visible(state, config)
    assert select_slot(state, config, date(2024, 5, 7), "10:00") == state

    state = select_submenu(state, config, "s1")
    assert state.phase == Phase.SUBMENU_CHOSEN
    assert calendar_visible(state, config)


def test_reselecting_active_menu_deselects_it() -> None:
    config = _config()
    state = select_menu(BookingState.start(TODAY), config, "menu-a")
    state = select_menu(state, config, "menu-a")

    assert state.menu_id is None
    assert state.phase == Phase.IDLE


def test_selecting_menu_preselects_default_options() -> None:
    config = _config()
    state = select_menu(BookingState.start(TODAY), config, "menu-c")

    assert state.option_ids == ("gloss",)


def test_unknown_ids_are_ignored() -> None:
    config = _config()
    state = BookingState.start(TODAY)

    assert select_menu(state, config, "missing") == state
    chosen = select_menu(state, config, "menu-a")
    assert select_submenu(chosen, config, "s1") == chosen
    assert toggle_option(chosen, config, "missing") == chosen


def test_submenu_change_keeps_date() -> None:
    config = _config()
    state = select_menu(BookingState.start(TODAY), config, "menu-b")
    state = select_submenu(state, config, "s1")
    state = select_slot(state, config, date(2024, 5, 8), "11:30")
    state = select_submenu(state, config, "s2")

    assert (state.date, state.time) == ("2024-05-08", "11:30")
    assert state.phase == Phase.READY_TO_SUBMIT


def test_cells_beyond_booking_window_are_unselectable() -> None:
    config = _config()
    far_day = TODAY + timedelta(days=40)

    assert not is_cell_selectable(config, far_day, "10:00", TODAY, lambda day, slot: True)
    assert is_cell_selectable(config, TODAY + timedelta(days=30), "10:00", TODAY)
    assert not is_cell_selectable(config, TODAY + timedelta(days=31), "10:00", TODAY)

    week = build_calendar(config, far_day, TODAY, lambda day, slot: True)
    assert not any(cell.selectable for row in week.rows for cell in row)

    state = select_menu(BookingState.start(TODAY), config, "menu-a")
    assert select_slot(state, config, far_day, "10:00", lambda day, slot: True) == state


def test_closed_days_past_days_and_hours_are_unselectable() -> None:
    config = _config(business_hours={"monday": {"open": "10:00", "close": "15:00"}})

    assert not is_cell_selectable(config, TODAY - timedelta(days=1), "10:00", TODAY)
    assert not is_cell_selectable(config, date(2024, 5, 12), "10:00", TODAY)
    assert not is_cell_selectable(config, date(2024, 5, 13), "09:00", TODAY)
    assert not is_cell_selectable(config, date(2024, 5, 13), "15:00", TODAY)
    assert is_cell_selectable(config, date(2024, 5, 13), "14:30", TODAY)
    assert not is_cell_selectable(config, date(2024, 5, 14), "10:00", TODAY, lambda day, slot: slot != "10:00")


def test_time_slots_span_business_hours() -> None:
    slots = build_time_slots(_config().calendar_settings.business_hours)

    assert slots[0] == "09:00"
    assert slots[-1] == "17:30"
    assert len(slots) == 18


def test_select_date_then_time() -> None:
    config = _config()
    state = select_menu(BookingState.start(TODAY), config, "menu-a")
    state = select_date(state, config, date(2024, 5, 9))
    assert state.phase == Phase.DATE_CHOSEN

    assert select_time(state, config, "20:00") == state
    state = select_time(state, config, "13:00")
    assert state.phase == Phase.READY_TO_SUBMIT
    assert select_date(state, config, date(2024, 5, 12)) == state


def test_missing_schedule_fails_validation_without_payload() -> None:
    config = _config()
    state = _contact(BookingState.start(TODAY), config)
    state = select_menu(state, config, "menu-a")

    outcome = submit(state, config, SUBMITTED_AT)

    assert outcome.payload is None
    assert outcome.issue.step == "schedule"
    assert outcome.issue.field == "datetime-field"
    assert outcome.state.phase == Phase.MENU_CHOSEN
    assert outcome.state.error == MESSAGES["schedule"]


def test_validation_reports_first_failure_in_order() -> None:
    config = _config(
        config={"gender_selection": {"enabled": True, "required": True}, "validation_rules": {"name_max_length": 5}}
    )
    state = BookingState.start(TODAY)
    assert validate(state, config).step == "name"

    state = set_field(state, config, "name", "Hanako Yamada")
    state = set_field(state, config, "phone", "123")
    assert validate(state, config).step == "phone"

    state = set_field(state, config, "phone", "090 1234 5678")
    issue = validate(state, config)
    assert issue.step == "name_length"
    assert issue.message == "Please keep your name within 5 characters."

    state = set_field(state, config, "name", "Hana")
    assert validate(state, config).step == "gender"

    state = set_field(state, config, "gender", "female")
    assert validate(state, config).step == "menu"

    state = select_menu(state, config, "menu-b")
    assert validate(state, config).step == "menu"

    state = select_submenu(state, config, "s2")
    assert validate(state, config).step == "schedule"

    state = select_slot(state, config, date(2024, 5, 10), "16:00")
    assert validate(state, config) is None


def test_name_length_counts_characters_not_code_units() -> None:
    config = _config(config={"validation_rules": {"name_max_length": 5}})
    state = set_field(BookingState.start(TODAY), config, "phone", "090-1234-5678")

    state = set_field(state, config, "name", "\U0001F338" * 5)
    assert validate(state, config).step == "menu"

    state = set_field(state, config, "name", "\U0001F338" * 6)
    assert validate(state, config).step == "name_length"


def test_choice_answers_must_be_enabled_and_known() -> None:
    config = _config(show_gender_selection=True)
    state = BookingState.start(TODAY)

    assert set_field(state, config, "gender", "unknown") == state
    assert set_field(state, config, "visit_count", "first") == state
    assert set_field(state, config, "gender", "male").gender == "male"
    with pytest.raises(ValueError):
        set_field(state, config, "email", "x@example.com")


def test_successful_submission_locks_the_flow() -> None:
    config = _config()
    state = _contact(BookingState.start(TODAY), config)
    state = select_menu(state, config, "menu-a")
    state = toggle_option(state, config, "o1")
    state = select_slot(state, config, date(2024, 5, 7), "10:00")

    outcome = submit(state, config, SUBMITTED_AT)

    assert outcome.issue is None
    assert outcome.state.phase == Phase.SUBMITTING
    payload = outcome.payload
    assert payload["form_name"] == "Cut Reservation"
    assert payload["name"] == "Hanako"
    assert payload["menu"]["id"] == "menu-a"
    assert [option["id"] for option in payload["options"]] == ["o1"]
    assert payload["total_price"] == 3500
    assert payload["total_duration"] == 75
    assert (payload["date"], payload["time"]) == ("2024-05-07", "10:00")
    assert payload["submitted_at"] == "2024-05-06T12:00:00"

    locked = outcome.state
    assert select_menu(locked, config, "menu-b") == locked
    assert submit(locked, config, SUBMITTED_AT).payload is None

    done = complete_submission(locked)
    assert done.phase == Phase.SUBMITTED
    assert set_field(done, config, "name", "Other") == done


def test_summary_skips_unset_fields() -> None:
    config = _config()
    state = BookingState.start(TODAY)
    assert derive_summary(state, config) == []

    state = set_field(state, config, "name", "Hanako")
    assert [item.key for item in derive_summary(state, config)] == ["name"]

    state = select_menu(set_field(state, config, "phone", "09012345678"), config, "menu-a")
    state = toggle_option(state, config, "o1")
    items = {item.key: item for item in derive_summary(state, config)}
    assert items["menu"].text == "Cut (¥3,000) / + Shampoo (+¥500)"
    assert items["total"].text == "¥3,500"
    assert "schedule" not in items

    message = format_confirmation_message(state, config)
    assert message.splitlines()[0] == "[Cut Reservation]"
    assert "Name: Hanako" in message


def test_week_navigation_clears_selection_outside_week() -> None:
    config = _config()
    state = select_menu(BookingState.start(TODAY), config, "menu-a")
    state = select_slot(state, config, date(2024, 5, 7), "10:00")

    earlier = navigate_week(state, config, -1)
    assert earlier.week_start == "2024-05-06"
    assert earlier.date == "2024-05-07"

    later = navigate_week(state, config, 1)
    assert later.week_start == "2024-05-13"
    assert later.date is None and later.time is None
    assert later.phase == Phase.MENU_CHOSEN


def test_month_navigation_jumps_to_first_week_of_month() -> None:
    config = _config()
    state = BookingState.start(TODAY)

    assert navigate_month(state, config, 1).week_start == "2024-05-27"
    assert navigate_month(state, config, -1).week_start == "2024-05-06"


def test_multiple_dates_mode_uses_first_preference() -> None:
    config = _config(config={"calendar_settings": {"booking_mode": "multiple_dates"}})
    settings = config.calendar_settings.multiple_dates_settings

    dates = preference_dates(settings, TODAY)
    assert dates[0] == "2024-05-07"
    assert "2024-05-12" not in dates
    assert len(dates) == 26
    assert preference_times(settings)[:2] == ["09:00", "09:30"]

    state = _contact(select_menu(BookingState.start(TODAY), config, "menu-a"), config)
    state = set_preference(state, config, 1, "2024-05-08", "10:00")
    assert validate(state, config).step == "schedule"

    state = set_preference(state, config, 0, "2024-05-07", "11:00")
    assert state.phase == Phase.READY_TO_SUBMIT
    payload = submit(state, config, SUBMITTED_AT).payload
    assert (payload["date"], payload["time"]) == ("2024-05-07", "11:00")
    assert len(payload["preferences"]) == 2

    with pytest.raises(IndexError):
        set_preference(state, config, 3, "2024-05-07", "11:00")


def test_repeat_booking_restores_recent_selection_only() -> None:
    config = _config(show_gender_selection=True)
    previous = select_menu(BookingState.start(TODAY), config, "menu-b")
    previous = select_submenu(previous, config, "s2")
    previous = set_field(previous, config, "gender", "female")
    saved = snapshot_selection(previous, datetime(2024, 5, 1, 9, 0))

    restored = restore_selection(BookingState.start(TODAY), config, saved, datetime(2024, 5, 6, 9, 0))
    assert restored.menu_id == "menu-b"
    assert restored.submenu_id == "s2"
    assert restored.gender == "female"
    assert restored.phase == Phase.SUBMENU_CHOSEN

    fresh = BookingState.start(TODAY)
    assert restore_selection(fresh, config, saved, datetime(2024, 5, 9, 9, 0)) == fresh
