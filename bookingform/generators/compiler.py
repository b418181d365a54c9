"""Compile a canonical form configuration into a standalone HTML document."""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from ..config import get_settings
from ..exceptions import CompilerContractError
from ..schemas.form_config import FormConfig
from ..utils.html import escape_html, inject_body_scripts, inline_css, json_for_script
from .markup import render_body
from .runtime import (
    AVAILABILITY_SCRIPT_ID,
    CONFIG_SCRIPT_ID,
    RUNTIME_SCRIPT_ID,
    build_availability_script,
    build_runtime_script,
)
from .styles import build_stylesheet

logger = logging.getLogger(__name__)

VIEWPORT_CONTENT = "width=device-width, initial-scale=1, viewport-fit=cover, maximum-scale=1"

DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="__VIEWPORT__">
<title>__TITLE__</title>
</head>
<body>
__BODY__
</body>
</html>
"""

_PLACEHOLDER_RE = re.compile(r"__(VIEWPORT|TITLE|BODY)__")


@dataclass(frozen=True)
class CompiledForm:
    """The three co-located artifacts of one compiled form."""

    title: str
    markup: str
    stylesheet: str
    config_json: str
    availability_script: str
    runtime_script: str

    def scripts(self) -> str:
        return (
            f'<script type="application/json" id="{CONFIG_SCRIPT_ID}">{self.config_json}</script>\n'
            f'<script id="{AVAILABILITY_SCRIPT_ID}">\n{self.availability_script}\n</script>\n'
            f'<script id="{RUNTIME_SCRIPT_ID}">\n{self.runtime_script}\n</script>\n'
        )

    def document(self) -> str:
        values = {"VIEWPORT": VIEWPORT_CONTENT, "TITLE": escape_html(self.title), "BODY": self.markup}
        # One pass: placeholder names inside author text stay literal.
        html = _PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], DOCUMENT_TEMPLATE)
        html = inline_css(html, self.stylesheet)
        return inject_body_scripts(html, self.scripts())

    def digest(self) -> str:
        return hashlib.sha256(self.document().encode("utf-8")).hexdigest()


def _ensure_config(config: Union[FormConfig, Mapping[str, Any]]) -> FormConfig:
    if isinstance(config, FormConfig):
        return config
    try:
        return FormConfig.model_validate(config)
    except ValidationError as exc:
        error = CompilerContractError(f"Compiler received a non-canonical configuration: {exc.error_count()} error(s)")
        logger.exception(
            "Compiler contract violation",
            extra={"data": {"trace_id": error.trace_id, "errors": exc.errors(include_url=False)}},
        )
        raise error from exc


def compile_form(
    config: Union[FormConfig, Mapping[str, Any]],
    *,
    availability_script: Optional[str] = None,
    liff_sdk_url: Optional[str] = None,
) -> CompiledForm:
    """Compile a normalized configuration.

    The compiler does no legacy handling: mappings must already be canonical
    or ``CompilerContractError`` is raised. Output is byte-identical for equal
    configurations.
    """
    form = _ensure_config(config)
    sdk_url = liff_sdk_url or get_settings().liff_sdk_url
    return CompiledForm(
        title=form.basic_info.form_name,
        markup=render_body(form),
        stylesheet=build_stylesheet(form.ui_settings),
        config_json=json_for_script(form.model_dump(mode="json")),
        availability_script=build_availability_script(availability_script),
        runtime_script=build_runtime_script(sdk_url),
    )


__all__ = ["VIEWPORT_CONTENT", "CompiledForm", "compile_form"]
