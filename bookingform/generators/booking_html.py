from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Optional

from bs4 import BeautifulSoup

from .runtime import AVAILABILITY_SCRIPT_ID, CONFIG_SCRIPT_ID, RUNTIME_SCRIPT_ID

_VIEWPORT_TOKENS = {"width=device-width", "initial-scale=1"}


@dataclass(frozen=True)
class DocumentRule:
    id: str
    description: str
    check: Callable[[BeautifulSoup], bool]


def _check_viewport(soup: BeautifulSoup) -> bool:
    viewport = soup.find("meta", attrs={"name": "viewport"})
    if viewport is None:
        return False
    tokens = {item.strip().lower() for item in (viewport.get("content") or "").split(",")}
    return _VIEWPORT_TOKENS.issubset(tokens)


def _check_title(soup: BeautifulSoup) -> bool:
    title = soup.find("title")
    return title is not None and bool(title.get_text(strip=True))


def _config_block(soup: BeautifulSoup):
    return soup.find("script", id=CONFIG_SCRIPT_ID, attrs={"type": "application/json"})


def _check_config_block(soup: BeautifulSoup) -> bool:
    block = _config_block(soup)
    if block is None:
        return False
    json.loads(block.string or "")
    return True


def _check_single_script(script_id: str) -> Callable[[BeautifulSoup], bool]:
    def _check(soup: BeautifulSoup) -> bool:
        return len(soup.find_all("script", id=script_id)) == 1

    return _check


def _check_no_remote_config(soup: BeautifulSoup) -> bool:
    runtime = soup.find("script", id=RUNTIME_SCRIPT_ID)
    if runtime is None:
        return False
    return "fetch(" not in (runtime.string or "").split("function deliver", 1)[0]


def _check_form_root(soup: BeautifulSoup) -> bool:
    return soup.find(id="booking-form") is not None and soup.find(id="submit-button") is not None


DOCUMENT_RULES = [
    DocumentRule("viewport", "Viewport meta must include mobile settings", _check_viewport),
    DocumentRule("title", "Document must have a non-empty title", _check_title),
    DocumentRule("config_block", "Configuration must be embedded as a parseable JSON block", _check_config_block),
    DocumentRule(
        "availability_script",
        "Availability predicate must live in its own script block",
        _check_single_script(AVAILABILITY_SCRIPT_ID),
    ),
    DocumentRule("runtime_script", "Runtime script must be embedded once", _check_single_script(RUNTIME_SCRIPT_ID)),
    DocumentRule(
        "no_remote_config",
        "Runtime must not fetch configuration over the network",
        _check_no_remote_config,
    ),
    DocumentRule("form_root", "Form container and submit button must be present", _check_form_root),
]


def validate_booking_html(html: str) -> dict:
    """Check the shape of a compiled booking document against ``DOCUMENT_RULES``."""
    soup = BeautifulSoup(html or "", "html.parser")
    results = []
    for rule in DOCUMENT_RULES:
        passed = False
        try:
            passed = bool(rule.check(soup))
        except Exception:
            passed = False
        results.append({"id": rule.id, "description": rule.description, "passed": passed})
    errors = [item["id"] for item in results if not item["passed"]]
    return {"passed": not errors, "errors": errors, "rules": results}


def extract_embedded_config(html: str) -> Optional[dict]:
    """Parse the configuration block back out of a compiled document."""
    soup = BeautifulSoup(html or "", "html.parser")
    block = _config_block(soup)
    if block is None or block.string is None:
        return None
    return json.loads(block.string)


__all__ = ["DOCUMENT_RULES", "DocumentRule", "validate_booking_html", "extract_embedded_config"]
