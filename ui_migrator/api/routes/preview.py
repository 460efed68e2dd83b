"""Single-component preview endpoint."""

from fastapi import APIRouter, HTTPException

from ..models import PreviewRequest, PreviewResponse
from ...errors import MigrationError
from ...orchestrator import preview_component

router = APIRouter()


@router.post("", response_model=PreviewResponse)
def preview(request: PreviewRequest):
    """Extract, analyze, transform and validate posted source text without writing."""
    try:
        result = preview_component(request.source_text, request.file_name)
    except MigrationError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())
    return PreviewResponse(**result)
