from __future__ import annotations

import html as _html
import json
import re
from typing import Any, Optional


_HEAD_CLOSE_RE = re.compile(r"</head>", re.IGNORECASE)
_HEAD_OPEN_RE = re.compile(r"<head[^>]*>", re.IGNORECASE)
_HTML_OPEN_RE = re.compile(r"<html[^>]*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body>", re.IGNORECASE)

# Characters that could end a <script> element or a JS string literal.
_SCRIPT_UNSAFE = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_SCRIPT_UNSAFE_RE = re.compile("[<>&\u2028\u2029]")


def escape_html(value: Optional[object]) -> str:
    """Escape text for element content and quoted attribute values."""
    if value is None:
        return ""
    return _html.escape(str(value), quote=True)


def json_for_script(value: Any) -> str:
    """Serialize ``value`` as JSON that is safe inside a <script> element."""
    encoded = json.dumps(value, ensure_ascii=True, separators=(",", ":"), sort_keys=False)
    return _SCRIPT_UNSAFE_RE.sub(lambda match: _SCRIPT_UNSAFE[match.group(0)], encoded)


def _insert_into_head(html: str, block: str) -> str:
    if not html:
        return block

    head_close_match = _HEAD_CLOSE_RE.search(html)
    if head_close_match:
        insert_at = head_close_match.start()
        return f"{html[:insert_at]}{block}{html[insert_at:]}"

    head_open_match = _HEAD_OPEN_RE.search(html)
    if head_open_match:
        insert_at = head_open_match.end()
        return f"{html[:insert_at]}{block}{html[insert_at:]}"

    html_open_match = _HTML_OPEN_RE.search(html)
    if html_open_match:
        insert_at = html_open_match.end()
        head_block = f"<head>{block}</head>"
        return f"{html[:insert_at]}{head_block}{html[insert_at:]}"

    return f"{block}{html}"


def inline_css(html: str, css: Optional[str]) -> str:
    """Inline CSS into HTML by injecting a <style> tag."""
    if css is None or not str(css).strip():
        return html
    style_block = f"<style>\n{css.strip()}\n</style>"
    return _insert_into_head(html, style_block)


def inject_body_scripts(html: str, scripts: str) -> str:
    """Append script tags right before </body>."""
    if not scripts:
        return html
    if not html:
        return scripts
    body_close_match = _BODY_CLOSE_RE.search(html)
    if body_close_match:
        insert_at = body_close_match.start()
        return f"{html[:insert_at]}{scripts}{html[insert_at:]}"
    return f"{html}{scripts}"


__all__ = [
    "escape_html",
    "json_for_script",
    "inline_css",
    "inject_body_scripts",
]
