from __future__ import annotations

import hashlib
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from ..config import get_settings
from ..exceptions import PublishError

logger = logging.getLogger(__name__)

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")
HASH_PREFIX_LENGTH = 12


@dataclass(frozen=True)
class PublishResult:
    path: str
    public_url: str
    content_hash: str


class FormPublisher(Protocol):
    def publish(self, store_id: str, form_id: str, document: str) -> PublishResult: ...

    def unpublish(self, store_id: str, form_id: str) -> None: ...


def content_hash(document: str) -> str:
    return hashlib.sha256(document.encode("utf-8")).hexdigest()


def is_valid_segment(value: str) -> bool:
    """True when ``value`` can be used as a store or form directory name."""
    return bool(value) and _SEGMENT_RE.fullmatch(value) is not None


def _segment(value: str, label: str) -> str:
    if not is_valid_segment(value):
        raise PublishError(f"Invalid {label}: {value!r}")
    return value


class LocalPublisher:
    """Publishes documents to ``<output_dir>/<store_id>/<form_id>/<hash>.html``.

    Publishing removes every older version of the same form.
    """

    def __init__(self, output_dir: Optional[str] = None, public_base_url: Optional[str] = None) -> None:
        settings = get_settings()
        self.output_dir = Path(output_dir or settings.output_dir)
        self.public_base_url = (public_base_url if public_base_url is not None else settings.public_base_url).rstrip("/")

    def form_directory(self, store_id: str, form_id: str) -> Path:
        return self.output_dir / _segment(store_id, "store_id") / _segment(form_id, "form_id")

    def public_url(self, store_id: str, form_id: str, filename: str) -> str:
        return f"{self.public_base_url}/forms/{store_id}/{form_id}/{filename}"

    def publish(self, store_id: str, form_id: str, document: str) -> PublishResult:
        directory = self.form_directory(store_id, form_id)
        digest = content_hash(document)
        filename = f"{digest[:HASH_PREFIX_LENGTH]}.html"
        target = directory / filename
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target.write_text(document, encoding="utf-8")
            for stale in directory.glob("*.html"):
                if stale.name != filename:
                    stale.unlink()
        except OSError as exc:
            error = PublishError(f"Failed to publish form {form_id}: {exc}")
            logger.error(
                "Publish failed",
                extra={"data": {"form_id": form_id, "trace_id": error.trace_id}},
            )
            raise error from exc
        logger.info(
            "Published form",
            extra={"data": {"store_id": store_id, "form_id": form_id, "path": str(target)}},
        )
        return PublishResult(
            path=str(target),
            public_url=self.public_url(store_id, form_id, filename),
            content_hash=digest,
        )

    def unpublish(self, store_id: str, form_id: str) -> None:
        directory = self.form_directory(store_id, form_id)
        if not directory.exists():
            return
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            raise PublishError(f"Failed to unpublish form {form_id}: {exc}") from exc
        logger.info("Unpublished form", extra={"data": {"store_id": store_id, "form_id": form_id}})


__all__ = ["PublishResult", "FormPublisher", "LocalPublisher", "content_hash", "is_valid_segment"]
