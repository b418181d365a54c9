from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional, Sequence

from ..generators.booking_html import validate_booking_html
from ..services.normalizer import normalize_form
from ..services.rendering import render_form_document


def _render_report(report: dict) -> str:
    overall = "PASS" if report.get("passed") else "FAIL"
    lines = [f"Overall: {overall}"]
    for rule in report.get("rules", []):
        status = "PASS" if rule.get("passed") else "FAIL"
        lines.append(f"- {rule.get('id')}: {status} - {rule.get('description')}")
    return "\n".join(lines)


def _read_text(path: Path) -> str:
    if not path.exists() or not path.is_file():
        raise SystemExit(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Compile a stored booking form record into a standalone HTML document.")
    parser.add_argument("record", help="Path to the stored record JSON file")
    parser.add_argument("-o", "--output", help="Where to write the document (defaults to stdout)")
    parser.add_argument(
        "--availability-script",
        help="JavaScript file defining window.bookingAvailability(date, time)",
    )
    parser.add_argument(
        "--normalized",
        action="store_true",
        help="Print the normalized configuration instead of compiling",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the compiled document and print a report",
    )
    args = parser.parse_args(argv)

    try:
        record = json.loads(_read_text(Path(args.record)))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON in {args.record}: {exc}") from exc

    if args.normalized:
        print(json.dumps(normalize_form(record).model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    availability = _read_text(Path(args.availability_script)) if args.availability_script else None
    document = render_form_document(record, availability_script=availability)

    if args.output:
        target = Path(args.output)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(document, encoding="utf-8")
    elif not args.validate:
        print(document)

    if args.validate:
        report = validate_booking_html(document)
        print(_render_report(report))
        return 0 if report.get("passed") else 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
