from __future__ import annotations

import json

import pytest

from bookingform.cli.compile_cli import main
from bookingform.services.rendering import render_form_document

RECORD = {
    "title": "Cut Reservation",
    "theme_color": "#10b981",
    "menus": [{"id": "cut", "name": "Cut", "price": 3000}],
}


def _write_record(tmp_path, record=RECORD):
    path = tmp_path / "record.json"
    path.write_text(json.dumps(record), encoding="utf-8")
    return path


def test_cli_writes_the_published_document(tmp_path) -> None:
    record_path = _write_record(tmp_path)
    output = tmp_path / "out" / "form.html"

    exit_code = main([str(record_path), "-o", str(output)])

    assert exit_code == 0
    assert output.read_text(encoding="utf-8") == render_form_document(RECORD)


def test_cli_uses_availability_script(tmp_path) -> None:
    record_path = _write_record(tmp_path)
    script = tmp_path / "availability.js"
    script.write_text("window.bookingAvailability = function () { return false; };", encoding="utf-8")
    output = tmp_path / "form.html"

    main([str(record_path), "-o", str(output), "--availability-script", str(script)])

    document = output.read_text(encoding="utf-8")
    assert "return false;" in document
    assert document == render_form_document(RECORD, availability_script=script.read_text(encoding="utf-8"))


def test_cli_prints_normalized_config(tmp_path, capsys) -> None:
    record_path = _write_record(tmp_path)

    exit_code = main([str(record_path), "--normalized"])

    assert exit_code == 0
    config = json.loads(capsys.readouterr().out)
    assert config["basic_info"]["form_name"] == "Cut Reservation"
    assert config["ui_settings"]["theme_color"] == "#10B981"


def test_cli_validate_reports_pass(tmp_path, capsys) -> None:
    record_path = _write_record(tmp_path)

    exit_code = main([str(record_path), "--validate"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert out.startswith("Overall: PASS")
    assert "- config_block: PASS" in out


def test_cli_rejects_missing_and_invalid_files(tmp_path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    with pytest.raises(SystemExit):
        main([str(tmp_path / "missing.json")])
    with pytest.raises(SystemExit):
        main([str(broken)])
