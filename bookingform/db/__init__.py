from .database import Database, get_database, reset_database
from .migrations import init_db
from .models import BookingForm, FormDeploy, FormStatus
from .utils import get_db

__all__ = [
    "Database",
    "get_database",
    "reset_database",
    "init_db",
    "BookingForm",
    "FormDeploy",
    "FormStatus",
    "get_db",
]
