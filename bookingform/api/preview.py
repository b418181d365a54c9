from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse, HTMLResponse

from ..config import get_settings
from ..exceptions import CompilerContractError
from ..schemas.form import PreviewRequest
from ..services.rendering import render_form_document

router = APIRouter(tags=["preview"])


def _resolve_output_dir() -> Path:
    return Path(get_settings().output_dir).expanduser().resolve()


def _safe_resolve(base_dir: Path, *parts: str) -> Path:
    candidate = base_dir.joinpath(*parts).resolve()
    if candidate != base_dir and base_dir not in candidate.parents:
        raise HTTPException(status_code=400, detail="Invalid path")
    return candidate


@router.post("/api/preview", response_class=HTMLResponse)
def preview_unsaved(payload: PreviewRequest) -> HTMLResponse:
    """Compile a record that has not been saved yet, exactly as deploy would."""
    try:
        html = render_form_document(payload.record, availability_script=payload.availability_script)
    except CompilerContractError as exc:
        raise HTTPException(status_code=500, detail=exc.with_trace()) from exc
    return HTMLResponse(content=html)


@router.get("/forms/{store_id}/{form_id}/{filename}")
def serve_published(store_id: str, form_id: str, filename: str):
    if not filename.endswith(".html"):
        raise HTTPException(status_code=404, detail="File not found")
    file_path = _safe_resolve(_resolve_output_dir(), store_id, form_id, filename)
    if file_path.exists() and file_path.is_file():
        return FileResponse(file_path, media_type="text/html")
    raise HTTPException(status_code=404, detail="File not found")


__all__ = ["router"]
