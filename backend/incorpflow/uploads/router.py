"""Upload API endpoints for the registration upload area

POST /uploads stores a file and returns attachment metadata; the client then
references it from a registration slot (PUT /registrations/{id}). Files are
read and deleted by their ``{category}/{file}`` path.
"""

import logging
import mimetypes
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from ..config import get_settings
from ..dependencies import get_storage
from ..domain.documents import ensure_valid_upload, validate_storage_path
from ..domain.documents.ports.object_storage_port import ObjectStoragePort
from ..infrastructure.storage.timed_storage import TimedBlobStore
from .schemas import FileDeletedResponse, UploadedFileResponse, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])


def get_blob_store(
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
) -> TimedBlobStore:
    return TimedBlobStore(storage, get_settings().BLOB_TIMEOUT_SECONDS)


BlobStore = Annotated[TimedBlobStore, Depends(get_blob_store)]


def _checked_path(path: str) -> str:
    ok, error = validate_storage_path(path)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    return path.strip("/")


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: Annotated[UploadFile, File(...)],
    blobs: BlobStore,
):
    """Store one file in the upload area

    Validation:
    - Filename sanity checks
    - MIME type allow-list (images, PDF, Word, Excel, plain text)
    - File size (max 10MB by default, configurable via MAX_UPLOAD_SIZE_BYTES)

    Example:
        curl -X POST http://localhost:8000/api/uploads -F "file=@receipt.pdf"
    """
    content = await file.read()
    safe_filename = ensure_valid_upload(
        file.filename or "",
        file.content_type,
        len(content),
        get_settings().MAX_UPLOAD_SIZE_BYTES,
    )

    stored = await blobs.store(content, safe_filename, file.content_type)
    logger.info(
        f"Uploaded {safe_filename}: storage_key={stored.storage_key}, size={stored.size_bytes}",
        extra={"storage_key": stored.storage_key},
    )

    return UploadResponse(
        file=UploadedFileResponse(
            id=stored.file_id,
            name=safe_filename,
            mime_type=stored.mime_type,
            size_bytes=stored.size_bytes,
            url=stored.url,
            storage_path=stored.storage_key,
            uploaded_at=stored.uploaded_at,
        )
    )


@router.get("/file", summary="Download a file from the upload area")
async def get_file(path: Annotated[str, Query(min_length=1)], blobs: BlobStore):
    storage_key = _checked_path(path)
    try:
        stream = await blobs.retrieve(storage_key)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    media_type = mimetypes.guess_type(storage_key)[0] or "application/octet-stream"
    return StreamingResponse(stream, media_type=media_type)


@router.delete("/file", response_model=FileDeletedResponse)
async def delete_file(path: Annotated[str, Query(min_length=1)], blobs: BlobStore):
    """Delete a file by path (404 if it does not exist)

    Registrations that still reference the file keep their attachment
    metadata; prefer DELETE /registrations/{id}/attachments/{attachment_id}.
    """
    storage_key = _checked_path(path)
    if not await blobs.delete(storage_key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileDeletedResponse()
