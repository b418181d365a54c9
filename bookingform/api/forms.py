from __future__ import annotations

import logging
from typing import Generator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session as DbSession

from ..db.models import BookingForm
from ..db.utils import get_db
from ..exceptions import CompilerContractError, FormNotFoundError, PublishError
from ..schemas.form import (
    DeployResponse,
    FormCreate,
    FormListResponse,
    FormRecordResponse,
    FormResponse,
    FormUpdate,
)
from ..services.deploy import DeployService
from ..services.form import FormService
from ..services.publisher import FormPublisher, LocalPublisher
from ..services.rendering import render_form_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["forms"])


def _get_db_session() -> Generator[DbSession, None, None]:
    with get_db() as session:
        yield session


def get_publisher() -> FormPublisher:
    return LocalPublisher()


def _status(record: BookingForm) -> str:
    return getattr(record.status, "value", record.status) or "draft"


def _form_payload(record: BookingForm) -> FormResponse:
    return FormResponse(
        id=record.id,
        store_id=record.store_id,
        title=record.title,
        status=_status(record),
        public_url=record.public_url,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _record_payload(record: BookingForm) -> FormRecordResponse:
    return FormRecordResponse(**_form_payload(record).model_dump(), payload=record.payload or {})


def _require_form(service: FormService, form_id: str) -> BookingForm:
    try:
        return service.require(form_id)
    except FormNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Form not found") from exc


def _contract_failure(exc: CompilerContractError) -> HTTPException:
    return HTTPException(status_code=500, detail=exc.with_trace())


@router.post("/stores/{store_id}/forms", status_code=201)
def create_form(
    store_id: str,
    payload: FormCreate,
    db: DbSession = Depends(_get_db_session),
) -> FormRecordResponse:
    service = FormService(db)
    try:
        record = service.create(store_id, payload.title, payload.payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    db.commit()
    return _record_payload(record)


@router.get("/stores/{store_id}/forms")
def list_forms(
    store_id: str,
    db: DbSession = Depends(_get_db_session),
) -> FormListResponse:
    records = FormService(db).list_by_store(store_id)
    return FormListResponse(forms=[_form_payload(record) for record in records], total=len(records))


@router.get("/forms/{form_id}")
def get_form(
    form_id: str,
    db: DbSession = Depends(_get_db_session),
) -> FormRecordResponse:
    return _record_payload(_require_form(FormService(db), form_id))


@router.put("/forms/{form_id}")
def update_form(
    form_id: str,
    payload: FormUpdate,
    db: DbSession = Depends(_get_db_session),
) -> FormRecordResponse:
    service = FormService(db)
    _require_form(service, form_id)
    record = service.update_payload(form_id, payload.payload)
    db.commit()
    return _record_payload(record)


@router.get("/forms/{form_id}/config")
def get_form_config(
    form_id: str,
    db: DbSession = Depends(_get_db_session),
) -> dict:
    service = FormService(db)
    _require_form(service, form_id)
    return service.normalized_config(form_id).model_dump(mode="json")


@router.get("/forms/{form_id}/preview", response_class=HTMLResponse)
def preview_form(
    form_id: str,
    db: DbSession = Depends(_get_db_session),
) -> HTMLResponse:
    record = _require_form(FormService(db), form_id)
    try:
        html = render_form_document(record.payload)
    except CompilerContractError as exc:
        raise _contract_failure(exc) from exc
    return HTMLResponse(content=html)


@router.post("/forms/{form_id}/deploy")
def deploy_form(
    form_id: str,
    db: DbSession = Depends(_get_db_session),
    publisher: FormPublisher = Depends(get_publisher),
) -> DeployResponse:
    service = DeployService(db, publisher)
    try:
        outcome = service.deploy(form_id)
    except FormNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Form not found") from exc
    except PublishError as exc:
        db.rollback()
        logger.error("Deploy failed", extra={"data": {"form_id": form_id, "trace_id": exc.trace_id}})
        raise HTTPException(status_code=502, detail=exc.with_trace()) from exc
    except CompilerContractError as exc:
        raise _contract_failure(exc) from exc
    db.commit()
    return DeployResponse(
        form_id=outcome.form.id,
        status=_status(outcome.form),
        public_url=outcome.result.public_url,
        content_hash=outcome.result.content_hash,
        deployed_at=outcome.deploy.created_at,
    )


@router.delete("/forms/{form_id}/deploy")
def undeploy_form(
    form_id: str,
    db: DbSession = Depends(_get_db_session),
    publisher: FormPublisher = Depends(get_publisher),
) -> DeployResponse:
    service = DeployService(db, publisher)
    try:
        record = service.undeploy(form_id)
    except FormNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Form not found") from exc
    except PublishError as exc:
        db.rollback()
        raise HTTPException(status_code=502, detail=exc.with_trace()) from exc
    db.commit()
    return DeployResponse(form_id=record.id, status=_status(record))


__all__ = ["router", "get_publisher"]
