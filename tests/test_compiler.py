from __future__ import annotations

import logging

import pytest
from bs4 import BeautifulSoup

from bookingform.exceptions import CompilerContractError
from bookingform.generators import compile_form, extract_embedded_config, validate_booking_html
from bookingform.generators.runtime import DEFAULT_AVAILABILITY_JS
from bookingform.services.normalizer import normalize_form
from bookingform.services.rendering import render_form_document


def _record(**overrides) -> dict:
    record = {
        "title": "Cut Reservation",
        "store_name": "Salon A",
        "theme_color": "#10b981",
        "categories": [
            {
                "id": "hair",
                "name": "Hair",
                "menus": [
                    {
                        "id": "cut",
                        "name": "Cut",
                        "price": 3000,
                        "duration": 60,
                        "description": "Shampoo & blow dry",
                        "options": [{"id": "gloss", "name": "Gloss", "price": 1000}],
                    },
                    {
                        "id": "perm",
                        "name": "Perm",
                        "sub_menu_items": [{"id": "short", "name": "Short", "price": 8000}],
                    },
                ],
            }
        ],
    }
    record.update(overrides)
    return record


def test_compilation_is_deterministic() -> None:
    config = normalize_form(_record())

    first = compile_form(config, liff_sdk_url="https://sdk.example.com/sdk.js").document()
    second = compile_form(config.model_dump(mode="json"), liff_sdk_url="https://sdk.example.com/sdk.js").document()

    assert first == second
    assert render_form_document(_record()) == render_form_document(_record())


def test_embedded_config_round_trips() -> None:
    config = normalize_form(_record())
    html = compile_form(config).document()

    assert extract_embedded_config(html) == config.model_dump(mode="json")
    assert normalize_form({"config": extract_embedded_config(html)}) == config


def test_compiled_document_passes_validation() -> None:
    html = render_form_document(_record())
    report = validate_booking_html(html)

    assert report["passed"], report["errors"]
    assert {rule["id"] for rule in report["rules"]} >= {"viewport", "config_block", "runtime_script"}


def test_validation_flags_missing_blocks() -> None:
    report = validate_booking_html("<html><head><title>x</title></head><body></body></html>")

    assert not report["passed"]
    assert "config_block" in report["errors"]
    assert "viewport" in report["errors"]


def test_disabled_sections_are_omitted() -> None:
    disabled = compile_form(normalize_form(_record())).markup
    enabled = compile_form(normalize_form(_record(show_gender_selection=True, show_coupon_selection=True))).markup

    assert 'id="gender-field"' not in disabled
    assert 'id="coupon-field"' not in disabled
    assert 'id="gender-field"' in enabled
    assert 'id="coupon-field"' in enabled
    assert 'id="visit-count-field"' not in enabled


def test_menu_field_omitted_without_menus() -> None:
    compiled = compile_form(normalize_form({"title": "Cut Reservation"}))

    assert 'id="menu-field"' not in compiled.markup
    assert 'id="datetime-field"' in compiled.markup


def test_menu_markup_reflects_refinements() -> None:
    soup = BeautifulSoup(compile_form(normalize_form(_record())).markup, "html.parser")

    assert [button["data-menu-id"] for button in soup.select(".menu-button")] == ["cut", "perm"]
    assert soup.select_one('.submenu-list[data-submenu-for="perm"]') is not None
    assert soup.select_one('.option-list[data-options-for="cut"]') is not None
    assert soup.select_one(".submenu-button")["data-submenu-id"] == "short"
    assert "¥3,000" in soup.select_one('.menu-button[data-menu-id="cut"]').get_text()


def test_user_text_is_escaped() -> None:
    hostile = "</script><script>alert(1)</script>"
    record = _record(title=hostile, store_name='Salon "A" & <b>')
    html = render_form_document(record)

    assert "<script>alert(1)" not in html
    assert html.count("</script>") == 3
    assert "&lt;/script&gt;" in html
    assert "Salon &quot;A&quot; &amp; &lt;b&gt;" in html
    assert extract_embedded_config(html)["basic_info"]["form_name"] == hostile


def test_placeholder_names_in_author_text_stay_literal() -> None:
    html = render_form_document(_record(title="Cut __BODY__", store_name="__TITLE__ __VIEWPORT__"))
    soup = BeautifulSoup(html, "html.parser")

    assert soup.title.string == "Cut __BODY__"
    assert soup.select_one(".store-name").get_text() == "__TITLE__ __VIEWPORT__"
    assert html.count('<main class="booking-form"') == 1


def test_config_json_has_no_markup_characters() -> None:
    compiled = compile_form(normalize_form(_record(title="A < B > C & \u2028 D")))

    for character in ("<", ">", "&", "\u2028"):
        assert character not in compiled.config_json


def test_theme_and_button_style_reach_stylesheet() -> None:
    compiled = compile_form(normalize_form(_record(button_style="square")))

    assert "--theme: #10B981;" in compiled.stylesheet
    assert "--button-radius: 6px;" in compiled.stylesheet


def test_multiple_dates_mode_renders_preference_pickers() -> None:
    compiled = compile_form(normalize_form(_record(config={"calendar_settings": {"booking_mode": "multiple_dates"}})))

    assert compiled.markup.count('class="input preference-date"') == 3
    assert 'id="calendar-grid"' not in compiled.markup


def test_availability_script_is_replaceable() -> None:
    default = compile_form(normalize_form(_record()))
    custom = compile_form(
        normalize_form(_record()),
        availability_script="window.bookingAvailability = function (date, time) { return time !== '12:00'; };",
    )

    assert default.availability_script == DEFAULT_AVAILABILITY_JS
    assert "time !== '12:00'" in custom.availability_script
    assert default.runtime_script == custom.runtime_script

    soup = BeautifulSoup(custom.document(), "html.parser")
    assert "time !== '12:00'" in soup.find("script", id="booking-availability").string


def test_availability_script_cannot_close_its_element() -> None:
    compiled = compile_form(normalize_form(_record()), availability_script="var x = '</script>';")

    assert "</script>" not in compiled.availability_script


def test_runtime_script_embeds_flow_constants() -> None:
    compiled = compile_form(normalize_form(_record()), liff_sdk_url="https://sdk.example.com/sdk.js")

    assert '"validation_order":["name","phone","name_length"' in compiled.runtime_script
    assert '"https://sdk.example.com/sdk.js"' in compiled.runtime_script
    assert "</" not in compiled.runtime_script


def test_runtime_measures_name_length_in_code_points() -> None:
    compiled = compile_form(normalize_form(_record()))

    assert "Array.from(state.name.trim()).length > rules.name_max_length" in compiled.runtime_script


def test_non_canonical_mapping_is_rejected(caplog) -> None:
    caplog.set_level(logging.ERROR, logger="bookingform.generators.compiler")

    with pytest.raises(CompilerContractError) as excinfo:
        compile_form({"title": "Cut Reservation"})

    assert excinfo.value.error_type == "compiler_contract"
    assert any(record.name == "bookingform.generators.compiler" for record in caplog.records)


def test_mismatched_theme_colours_are_rejected() -> None:
    data = normalize_form(_record()).model_dump(mode="json")
    data["ui_settings"]["theme_color"] = "#000000"

    with pytest.raises(CompilerContractError):
        compile_form(data)
