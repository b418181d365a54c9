from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class FormCreate(BaseModel):
    title: str = Field(min_length=1)
    payload: Optional[Dict[str, Any]] = None


class FormUpdate(BaseModel):
    payload: Dict[str, Any]


class FormResponse(BaseModel):
    id: str
    store_id: str
    title: str
    status: str
    public_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FormRecordResponse(FormResponse):
    payload: Dict[str, Any]


class FormListResponse(BaseModel):
    forms: List[FormResponse]
    total: int


class PreviewRequest(BaseModel):
    record: Dict[str, Any] = Field(default_factory=dict)
    availability_script: Optional[str] = None


class DeployResponse(BaseModel):
    form_id: str
    status: str
    public_url: Optional[str] = None
    content_hash: Optional[str] = None
    deployed_at: Optional[datetime] = None


__all__ = [
    "FormCreate",
    "FormUpdate",
    "FormResponse",
    "FormRecordResponse",
    "FormListResponse",
    "PreviewRequest",
    "DeployResponse",
]
