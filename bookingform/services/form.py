from __future__ import annotations

import copy
import uuid
from typing import Any, List, Optional

from sqlalchemy.orm import Session as DbSession

from ..db.models import BookingForm
from ..exceptions import FormNotFoundError
from ..schemas.form_config import FormConfig
from .normalizer import default_form_config, normalize_form
from .publisher import is_valid_segment


def build_default_record(title: str) -> dict:
    """Stored payload for a freshly created form."""
    config = default_form_config(title)
    return {"title": config.basic_info.form_name, "config": config.model_dump(mode="json")}


class FormService:
    def __init__(self, db: DbSession) -> None:
        self.db = db

    def list_by_store(self, store_id: str) -> List[BookingForm]:
        return (
            self.db.query(BookingForm)
            .filter(BookingForm.store_id == store_id)
            .order_by(BookingForm.created_at.asc(), BookingForm.id.asc())
            .all()
        )

    def get_by_id(self, form_id: str) -> Optional[BookingForm]:
        return self.db.get(BookingForm, form_id)

    def require(self, form_id: str) -> BookingForm:
        record = self.get_by_id(form_id)
        if record is None:
            raise FormNotFoundError(form_id)
        return record

    def create(self, store_id: str, title: str, payload: Optional[dict] = None) -> BookingForm:
        resolved_store = (store_id or "").strip()
        if not resolved_store:
            raise ValueError("store_id is required")
        if not is_valid_segment(resolved_store):
            raise ValueError("store_id may only contain letters, digits, '-' and '_'")
        stored = copy.deepcopy(payload) if payload else build_default_record(title)
        record = BookingForm(
            id=uuid.uuid4().hex,
            store_id=resolved_store,
            title=normalize_form(stored).basic_info.form_name,
            payload=stored,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def update_payload(self, form_id: str, payload: dict[str, Any]) -> BookingForm:
        """Replace the stored record as sent by the editor, whatever its shape."""
        record = self.require(form_id)
        record.payload = copy.deepcopy(payload)
        record.title = normalize_form(payload).basic_info.form_name
        self.db.flush()
        return record

    def normalized_config(self, form_id: str) -> FormConfig:
        return normalize_form(self.require(form_id).payload)


__all__ = ["FormService", "build_default_record"]
