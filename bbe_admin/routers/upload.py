import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from bbe_admin.core.logging import log_error, log_success
from bbe_admin.core.services import get_blob_storage
from bbe_admin.integrations.blob_storage import (
    BlobStorageClient,
    BlobStorageError,
    BlobValidationError,
)
from bbe_admin.routers.auth import require_api_session

router = APIRouter(prefix="/api", tags=["upload"])

logger = logging.getLogger(__name__)


@router.post("/upload")
async def upload_file(
    file: UploadFile = File(...),
    old_url: Optional[str] = Form(None, alias="oldUrl"),
    session: Dict[str, Any] = Depends(require_api_session),
    blob: BlobStorageClient = Depends(get_blob_storage),
):
    content = await file.read()
    try:
        result = await blob.upload(file.filename or "upload", content, file.content_type, old_url=old_url)
    except BlobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BlobStorageError as e:
        log_error(logger, f"Upload failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload file")

    log_success(logger, f"uploaded {result.get('pathname')}")
    return result


@router.delete("/upload")
async def delete_file(
    url: str,
    session: Dict[str, Any] = Depends(require_api_session),
    blob: BlobStorageClient = Depends(get_blob_storage),
):
    try:
        await blob.delete(url)
    except BlobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BlobStorageError as e:
        log_error(logger, f"Delete failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete file")
    return {"success": True}
