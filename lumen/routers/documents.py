"""Document import API endpoints."""

import tempfile

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile

from lumen.dependencies import CurrentProfile, get_current_profile
from lumen.rate_limit import limiter
from lumen.schemas.document import DocumentImportResponse
from lumen.services.documents import extract_text
from lumen.services.notes import get_note_service

router = APIRouter(prefix="/api/v1/documents", tags=["Documents"])


@router.post("/import", response_model=DocumentImportResponse)
@limiter.limit("20/minute")
async def import_document(
    request: Request,
    file: UploadFile,
    profile: CurrentProfile = Depends(get_current_profile),
) -> DocumentImportResponse:
    """Extract the text of an uploaded document for a new note."""
    filename = file.filename or "document"
    with tempfile.TemporaryDirectory(prefix="lumen-import-") as tmp_dir:
        try:
            stored_path, _size = await get_note_service().store_file(file, directory=tmp_dir)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from None
        content = extract_text(stored_path, file.content_type)

    return DocumentImportResponse(filename=filename, content=content)
