from __future__ import annotations

from .base import Base
from .database import Database, get_database
from .models import BookingForm, FormDeploy  # noqa: F401  registers tables on Base.metadata


def init_db(database: Database | None = None) -> None:
    db_instance = database or get_database()
    Base.metadata.create_all(bind=db_instance.engine)


__all__ = ["init_db"]
