from __future__ import annotations

from typing import Any, Optional

from ..generators.compiler import CompiledForm, compile_form
from .normalizer import normalize_form


def compile_record(record: Any, *, availability_script: Optional[str] = None) -> CompiledForm:
    return compile_form(normalize_form(record), availability_script=availability_script)


def render_form_document(record: Any, *, availability_script: Optional[str] = None) -> str:
    """Normalize a stored record and compile it into the published document.

    Editor preview, deploy and the CLI all go through this function.
    """
    return compile_record(record, availability_script=availability_script).document()


__all__ = ["compile_record", "render_form_document"]
