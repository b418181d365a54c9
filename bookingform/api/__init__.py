from .forms import router as forms_router
from .preview import router as preview_router

__all__ = ["forms_router", "preview_router"]
