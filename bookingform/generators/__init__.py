from .booking_html import extract_embedded_config, validate_booking_html
from .compiler import CompiledForm, compile_form

__all__ = ["CompiledForm", "compile_form", "validate_booking_html", "extract_embedded_config"]
