from .deploy import DeployOutcome, DeployService
from .form import FormService, build_default_record
from .normalizer import default_form_config, normalize_form
from .publisher import FormPublisher, LocalPublisher, PublishResult
from .rendering import compile_record, render_form_document

__all__ = [
    "DeployOutcome",
    "DeployService",
    "FormService",
    "build_default_record",
    "default_form_config",
    "normalize_form",
    "FormPublisher",
    "LocalPublisher",
    "PublishResult",
    "compile_record",
    "render_form_document",
]
