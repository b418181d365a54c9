from __future__ import annotations

from uuid import uuid4


def new_trace_id() -> str:
    return uuid4().hex


class TrackedError(Exception):
    def __init__(self, message: str, *, error_type: str, trace_id: str | None = None) -> None:
        self.error_type = error_type
        self.trace_id = trace_id or new_trace_id()
        super().__init__(message)

    def with_trace(self) -> str:
        return f"{self.args[0]} (trace_id={self.trace_id})"


class CompilerContractError(TrackedError):
    """Raised when the compiler receives a configuration that was not normalized."""

    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="compiler_contract", trace_id=trace_id)


class PublishError(TrackedError):
    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="publish", trace_id=trace_id)


class FormNotFoundError(LookupError):
    def __init__(self, form_id: str) -> None:
        self.form_id = form_id
        super().__init__(f"Form not found: {form_id}")


__all__ = [
    "new_trace_id",
    "TrackedError",
    "CompilerContractError",
    "PublishError",
    "FormNotFoundError",
]
