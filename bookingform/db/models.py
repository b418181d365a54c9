from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from .base import Base


class FormStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class BookingForm(Base):
    """A stored booking form record. ``payload`` keeps the raw, possibly legacy, shape."""

    __tablename__ = "booking_forms"

    id = Column(String, primary_key=True)
    store_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    status = Column(
        SAEnum(FormStatus, name="form_status", values_callable=_enum_values),
        nullable=False,
        default=FormStatus.DRAFT,
    )
    public_url = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    deploys = relationship(
        "FormDeploy",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FormDeploy.id",
    )

    __table_args__ = (Index("idx_booking_forms_store_id", "store_id"),)


class FormDeploy(Base):
    __tablename__ = "form_deploys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(String, ForeignKey("booking_forms.id", ondelete="CASCADE"), nullable=False)
    content_hash = Column(String(64), nullable=False)
    path = Column(String, nullable=False)
    public_url = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)

    form = relationship("BookingForm", back_populates="deploys")

    __table_args__ = (Index("idx_form_deploys_form_id", "form_id"),)


__all__ = ["FormStatus", "BookingForm", "FormDeploy"]
