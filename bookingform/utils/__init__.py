from .html import escape_html, inject_body_scripts, inline_css, json_for_script

__all__ = ["escape_html", "inject_body_scripts", "inline_css", "json_for_script"]
