from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError

from bookingform.schemas.form_config import (
    WEEKDAYS,
    BasicInfo,
    BusinessHours,
    CalendarSettings,
    Category,
    ChoiceOption,
    ChoiceSelection,
    DayHours,
    DisplayOptions,
    FormConfig,
    Menu,
    MenuOption,
    MenuStructure,
    MultipleDatesSettings,
    SubMenuItem,
    UISettings,
    ValidationRules,
)
from bookingform.services.normalizer import (
    default_form_config,
    normalize_business_hours,
    normalize_clock,
    normalize_form,
    normalize_hex_color,
)


def _canonical_config() -> FormConfig:
    return FormConfig(
        basic_info=BasicInfo(
            form_name="Spring Cut",
            store_name="Salon Aoyama",
            theme_color="#10B981",
            logo_url="https://example.com/logo.png",
            liff_id="1234567890-abcdefgh",
        ),
        gender_selection=ChoiceSelection(
            enabled=True,
            required=True,
            options=[ChoiceOption(value="female", label="Female"), ChoiceOption(value="other", label="Other")],
        ),
        visit_count_selection=ChoiceSelection(
            enabled=False,
            options=[ChoiceOption(value="first", label="First visit")],
        ),
        coupon_selection=ChoiceSelection(
            enabled=True,
            options=[ChoiceOption(value="use", label="Use")],
            coupon_name="Spring 10%",
        ),
        menu_structure=MenuStructure(
            categories=[
                Category(
                    id="cut",
                    name="Cut",
                    menus=[
                        Menu(
                            id="basic-cut",
                            name="Basic cut",
                            price=4000,
                            duration=45,
                            options=[MenuOption(id="shampoo", name="Shampoo", price=500, duration=10, is_default=True)],
                        ),
                        Menu(
                            id="perm",
                            name="Perm",
                            has_submenu=True,
                            sub_menu_items=[
                                SubMenuItem(id="short", name="Short", price=8000, duration=90),
                                SubMenuItem(id="long", name="Long", price=10000, duration=120),
                            ],
                        ),
                    ],
                )
            ],
            allow_cross_category_selection=True,
            display_options=DisplayOptions(show_duration=False, show_treatment_info=True),
        ),
        calendar_settings=CalendarSettings(
            business_hours=BusinessHours(
                monday=DayHours(closed=True),
                saturday=DayHours(open="10:00", close="20:00"),
                sunday=DayHours(open="10:00", close="17:00"),
            ),
            advance_booking_days=60,
            calendar_url="https://calendar.example.com",
            booking_mode="multiple_dates",
            multiple_dates_settings=MultipleDatesSettings(
                time_interval=60, date_range_days=14, exclude_weekdays=[0, 1], start_time="10:00", end_time="19:00"
            ),
        ),
        ui_settings=UISettings(theme_color="#10B981", button_style="square", show_repeat_booking=True),
        validation_rules=ValidationRules(
            required_fields=["name", "phone", "gender"], phone_format="international", name_max_length=30
        ),
        webhook_endpoint="https://script.google.com/macros/s/abc/exec",
    )


def test_title_only_record_gets_full_defaults() -> None:
    config = normalize_form({"title": "Cut Reservation"})

    assert config.basic_info.form_name == "Cut Reservation"
    assert config.basic_info.theme_color == "#3B82F6"
    assert config.ui_settings.theme_color == "#3B82F6"
    assert config.menu_structure.categories == []
    assert config.gender_selection.enabled is False
    assert config.visit_count_selection.enabled is False
    assert config.coupon_selection.enabled is False

    hours = config.calendar_settings.business_hours
    for day in WEEKDAYS:
        entry = getattr(hours, day)
        assert entry.open == "09:00"
        assert entry.close == "18:00"
        assert entry.closed is (day == "sunday")


def test_canonical_config_is_a_fixed_point() -> None:
    config = _canonical_config()
    dumped = config.model_dump(mode="json")

    assert normalize_form(config) == config
    assert normalize_form(dumped) == config
    assert normalize_form({"config": dumped}) == config
    assert normalize_form({"config": json.dumps(dumped)}) == config


def test_canonical_text_and_lists_are_stored_in_normalized_form() -> None:
    config = FormConfig(
        basic_info=BasicInfo(form_name="A ", store_name=" Salon", logo_url=""),
        gender_selection=ChoiceSelection(options=[ChoiceOption(value="x", label="")], coupon_name="Spring"),
        calendar_settings=CalendarSettings(
            calendar_url="  ",
            multiple_dates_settings=MultipleDatesSettings(exclude_weekdays=[6, 1, 6]),
        ),
        validation_rules=ValidationRules(required_fields=["name", " phone ", "name"]),
    )

    assert config.basic_info.form_name == "A"
    assert config.basic_info.store_name == "Salon"
    assert config.basic_info.logo_url is None
    assert config.gender_selection.options[0].label == "x"
    assert config.calendar_settings.calendar_url is None
    assert config.calendar_settings.multiple_dates_settings.exclude_weekdays == [1, 6]
    assert config.validation_rules.required_fields == ["name", "phone"]
    assert normalize_form(config) == config
    assert normalize_form(config.model_dump(mode="json")) == config


def test_configs_the_normalizer_cannot_produce_are_rejected() -> None:
    with pytest.raises(ValidationError):
        ChoiceSelection(enabled=True, options=[])
    with pytest.raises(ValidationError):
        ChoiceSelection(options=[ChoiceOption(value="a"), ChoiceOption(value="a", label="Again")])
    with pytest.raises(ValidationError):
        BasicInfo(form_name="   ")
    with pytest.raises(ValidationError):
        MultipleDatesSettings(exclude_weekdays=[7])
    with pytest.raises(ValidationError):
        Menu(id="m", name="M", price=10**12)


def test_normalize_is_idempotent_for_legacy_records() -> None:
    records = [
        {},
        {"title": "Cut Reservation"},
        {
            "title": "Salon",
            "theme_color": "#abc",
            "show_gender_selection": True,
            "open_time": "10:00",
            "close_time": "19:00",
            "categories": [
                {
                    "name": "Cut",
                    "menus": [{"name": "Basic", "price": "3,000", "options": [{"name": "Treatment", "price": 500}]}],
                }
            ],
            "gas_endpoint": "https://hook.example.com",
        },
        {
            "config": {
                "basic_info": {"form_name": "Nested", "show_gender_selection": "true"},
                "business_rules": {"business_hours": {"start": "8:30", "end": "17:00"}, "advance_booking_days": "14"},
                "line_settings": {"liff_id": "  liff-1  "},
            }
        },
        {"menus": [{"name": "Color", "has_submenu": True, "sub_menu_items": [{"name": "Short"}, {"name": "Long"}]}]},
    ]
    for record in records:
        first = normalize_form(record)
        assert normalize_form(first) == first
        assert normalize_form(first.model_dump(mode="json")) == first


def test_flat_nested_and_canonical_shapes_are_equivalent() -> None:
    flat_record = {
        "title": "Cut Reservation",
        "store_name": "Salon A",
        "theme_color": "#10b981",
        "show_gender_selection": True,
        "show_visit_count": False,
        "liff_id": "1234567890-abc",
        "business_hours": {"open": "10:00", "close": "20:00"},
        "advance_booking_days": 14,
        "gas_endpoint": "https://hook.example.com",
    }
    nested_record = {
        "config": {
            "basic_info": {
                "form_name": "Cut Reservation",
                "store_name": "Salon A",
                "theme_color": "#10B981",
                "show_gender_selection": True,
            },
            "line_settings": {"liff_id": "1234567890-abc"},
            "business_rules": {"business_hours": {"open": "10:00", "close": "20:00"}, "advance_booking_days": 14},
            "ui_settings": {"show_visit_count": False},
            "gas_endpoint": "https://hook.example.com",
        }
    }
    from_flat = normalize_form(flat_record)
    from_nested = normalize_form(nested_record)
    from_canonical = normalize_form({"config": from_flat.model_dump(mode="json")})

    assert from_flat == from_nested == from_canonical
    assert from_flat.gender_selection.enabled is True
    assert from_flat.calendar_settings.advance_booking_days == 14
    assert from_flat.calendar_settings.business_hours.saturday.close == "20:00"
    assert from_flat.webhook_endpoint == "https://hook.example.com"


def test_explicit_false_beats_lower_priority_true() -> None:
    canonical_false = normalize_form({"config": {"gender_selection": {"enabled": False}}, "show_gender_selection": True})
    nested_false = normalize_form({"basic_info": {"show_gender_selection": False}, "show_gender_selection": True})

    assert canonical_false.gender_selection.enabled is False
    assert nested_false.gender_selection.enabled is False


def test_theme_color_is_mirrored_from_either_location() -> None:
    ui_only = normalize_form({"config": {"ui_settings": {"theme_color": "#ff0000"}}})
    both = normalize_form({"config": {"basic_info": {"theme_color": "#00ff00"}, "ui_settings": {"theme_color": "#ff0000"}}})

    assert ui_only.basic_info.theme_color == ui_only.ui_settings.theme_color == "#FF0000"
    assert both.basic_info.theme_color == both.ui_settings.theme_color == "#00FF00"


def test_unusable_values_fall_back_to_defaults() -> None:
    config = normalize_form(
        {"theme_color": "blue", "advance_booking_days": 0, "button_style": "pill", "open_time": "25:00", "close_time": "x"}
    )

    assert config.basic_info.theme_color == "#3B82F6"
    assert config.calendar_settings.advance_booking_days == 30
    assert config.ui_settings.button_style == "rounded"
    assert config.calendar_settings.business_hours.monday.open == "09:00"


def test_single_open_close_pair_expands_to_week() -> None:
    config = normalize_form({"open_time": "10:00", "close_time": "19:30"})
    hours = config.calendar_settings.business_hours

    for day in WEEKDAYS:
        entry = getattr(hours, day)
        assert (entry.open, entry.close) == ("10:00", "19:30")
    assert hours.sunday.closed is True
    assert hours.monday.closed is False


def test_partial_weekly_hours_fill_missing_days() -> None:
    hours = normalize_business_hours(
        {
            "monday": {"open": "9:30", "close": "17:00"},
            "sunday": {"closed": False, "open": "10:00", "close": "15:00"},
        }
    )

    assert hours["monday"] == {"open": "09:30", "close": "17:00", "closed": False}
    assert hours["tuesday"] == {"open": "09:00", "close": "18:00", "closed": False}
    assert hours["sunday"] == {"open": "10:00", "close": "15:00", "closed": False}


def test_missing_and_duplicate_ids_are_filled() -> None:
    config = normalize_form(
        {
            "categories": [
                {"id": "c", "menus": [{"id": "m", "name": "A"}, {"id": "m", "name": "B"}, {"name": "C"}]},
                {"id": "c", "label": "Color", "menus": [{"name": "D", "options": [{"name": "x"}, {"name": "y"}]}]},
            ]
        }
    )
    categories = config.menu_structure.categories

    assert [category.id for category in categories] == ["c", "c-2"]
    assert categories[1].name == "Color"
    assert [menu.id for menu in categories[0].menus] == ["m", "m-2", "menu-1-3"]
    assert categories[1].menus[0].id == "menu-2-1"
    assert [option.id for option in categories[1].menus[0].options] == ["option-1", "option-2"]


def test_submenus_and_options_are_exclusive() -> None:
    config = normalize_form(
        {
            "menus": [
                {"id": "color", "has_submenu": True, "sub_menu_items": [], "options": [{"name": "x"}]},
                {"id": "perm", "sub_menu_items": [{"name": "Short"}], "options": [{"name": "y"}]},
                {"id": "cut", "has_submenu": False, "sub_menu_items": [{"name": "Short"}], "options": [{"name": "z"}]},
            ]
        }
    )
    color = config.menu_structure.find_menu("color")
    perm = config.menu_structure.find_menu("perm")
    cut = config.menu_structure.find_menu("cut")

    assert color.has_submenu is False and [option.name for option in color.options] == ["x"]
    assert perm.has_submenu is True and perm.options == [] and perm.sub_menu_items[0].id == "submenu-1"
    assert cut.has_submenu is False and cut.sub_menu_items == [] and [option.name for option in cut.options] == ["z"]


def test_prices_are_coerced_to_non_negative_integers() -> None:
    config = normalize_form(
        {"menus": [{"id": "a", "price": "-500"}, {"id": "b", "price": "abc"}, {"id": "c", "price": 1500.0}, {"id": "d", "price": "1,200"}]}
    )
    prices = [menu.price for menu in config.menu_structure.categories[0].menus]

    assert prices == [0, 0, 1500, 1200]


def test_oversized_numbers_fall_back_instead_of_raising() -> None:
    for price in ("9" * 400, 10**400, 1e308 * 10):
        config = normalize_form({"title": "X", "categories": [{"menus": [{"name": "m", "price": price}]}]})
        assert config.menu_structure.categories[0].menus[0].price == 0

    config = normalize_form({"advance_booking_days": "1" + "0" * 400, "config": {"validation_rules": {"name_max_length": 10**400}}})

    assert config.calendar_settings.advance_booking_days == 30
    assert config.validation_rules.name_max_length == 50


def test_config_json_string_is_parsed() -> None:
    config = normalize_form({"config": json.dumps({"basic_info": {"form_name": "From JSON"}})})

    assert config.basic_info.form_name == "From JSON"


def test_garbage_input_never_raises() -> None:
    for record in (None, "not json", [1, 2, 3], 42, {"config": "{broken"}, {"categories": "nope"}):
        config = normalize_form(record)
        assert config == default_form_config()


def test_fallbacks_are_logged_at_debug(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="bookingform.services.normalizer")

    normalize_form({"title": "Cut Reservation"})

    records = [record for record in caplog.records if record.name == "bookingform.services.normalizer"]
    assert records
    assert "basic_info.store_name" in records[0].data["fields"]
    assert "basic_info.form_name" not in records[0].data["fields"]


def test_value_normalizers() -> None:
    assert normalize_hex_color("#abc") == "#AABBCC"
    assert normalize_hex_color("10b981") == "#10B981"
    assert normalize_hex_color("red") is None
    assert normalize_clock("9:05") == "09:05"
    assert normalize_clock("18:00:00") == "18:00"
    assert normalize_clock("24:00") is None
