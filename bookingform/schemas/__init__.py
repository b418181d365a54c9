from .form import (
    DeployResponse,
    FormCreate,
    FormListResponse,
    FormRecordResponse,
    FormResponse,
    FormUpdate,
    PreviewRequest,
)
from .form_config import FormConfig

__all__ = [
    "DeployResponse",
    "FormCreate",
    "FormListResponse",
    "FormRecordResponse",
    "FormResponse",
    "FormUpdate",
    "PreviewRequest",
    "FormConfig",
]
