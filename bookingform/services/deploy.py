from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session as DbSession

from ..db.models import BookingForm, FormDeploy, FormStatus
from .form import FormService
from .publisher import FormPublisher, LocalPublisher, PublishResult
from .rendering import render_form_document

logger = logging.getLogger(__name__)


@dataclass
class DeployOutcome:
    form: BookingForm
    deploy: FormDeploy
    result: PublishResult


class DeployService:
    """Normalize, compile and publish stored forms."""

    def __init__(self, db: DbSession, publisher: Optional[FormPublisher] = None) -> None:
        self.db = db
        self.publisher = publisher or LocalPublisher()
        self._forms = FormService(db)

    def deploy(self, form_id: str, *, availability_script: Optional[str] = None) -> DeployOutcome:
        form = self._forms.require(form_id)
        document = render_form_document(form.payload, availability_script=availability_script)
        result = self.publisher.publish(form.store_id, form.id, document)
        deploy = FormDeploy(
            form_id=form.id,
            content_hash=result.content_hash,
            path=result.path,
            public_url=result.public_url,
        )
        self.db.add(deploy)
        form.status = FormStatus.PUBLISHED
        form.public_url = result.public_url
        self.db.flush()
        logger.info(
            "Deployed form",
            extra={"data": {"form_id": form.id, "content_hash": result.content_hash}},
        )
        return DeployOutcome(form=form, deploy=deploy, result=result)

    def undeploy(self, form_id: str) -> BookingForm:
        form = self._forms.require(form_id)
        self.publisher.unpublish(form.store_id, form.id)
        form.status = FormStatus.DRAFT
        form.public_url = None
        self.db.flush()
        return form


__all__ = ["DeployOutcome", "DeployService"]
