"""
Signed file downloads.
"""
from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from src.lib.blob_store import BlobNotFoundError, get_blob_store


router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{token}")
def download_file(token: str):
    """Serve a stored document; the token is the signed part of a download URL."""
    store = get_blob_store()
    try:
        blob = store.open_signed(token)
        path = store.file_path(blob.path)
    except BlobNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found or link expired",
        )
    return FileResponse(path, media_type=blob.content_type)
