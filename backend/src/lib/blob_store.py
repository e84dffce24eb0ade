"""
Filesystem blob store for uploaded documents.

Objects are addressed by a relative path under settings.upload_dir. Downloads
go through signed, expiring URLs (`/files/{token}`) so stored paths are never
exposed directly.
"""
import mimetypes
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional
from uuid import uuid4

from jwt.exceptions import InvalidTokenError

from src.lib.jwt import FILE_DOWNLOAD_PURPOSE, create_purpose_token, verify_token
from src.lib.logging import get_logger
from src.lib.settings import settings

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class BlobNotFoundError(Exception):
    """Path does not resolve to a stored object."""


@dataclass(frozen=True)
class StoredBlob:
    path: str
    content_type: str
    size: int


class LocalBlobStore:
    """Stores objects as files under a root directory."""

    def __init__(
        self,
        root: Optional[str] = None,
        base_url: Optional[str] = None,
        signed_url_ttl_seconds: Optional[int] = None,
    ):
        self.root = Path(root or settings.upload_dir).resolve()
        self.base_url = (base_url or settings.app_base_url).rstrip("/")
        self.signed_url_ttl_seconds = signed_url_ttl_seconds or settings.signed_url_ttl_seconds

    def build_path(self, prefix: str, filename: str = "", content_type: str = "") -> str:
        """Unique object path under `prefix`, keeping the upload's extension."""
        suffix = Path(filename).suffix.lower()
        if not suffix and content_type:
            suffix = mimetypes.guess_extension(content_type) or ""
        return f"{prefix.strip('/')}/{uuid4().hex}{suffix}"

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise BlobNotFoundError(path)
        return target

    def upload(self, path: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> StoredBlob:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info(
            "Blob stored",
            extra={"path": path, "content_type": content_type, "size": len(data)},
        )
        return StoredBlob(path=path, content_type=content_type or DEFAULT_CONTENT_TYPE, size=len(data))

    def delete(self, path: str) -> bool:
        """Remove `path`; False when there was nothing to remove."""
        try:
            target = self._resolve(path)
        except BlobNotFoundError:
            return False
        if not target.is_file():
            return False
        target.unlink()
        logger.info("Blob deleted", extra={"path": path})
        return True

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except BlobNotFoundError:
            return False

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise BlobNotFoundError(path)
        return target.read_bytes()

    def file_path(self, path: str) -> Path:
        target = self._resolve(path)
        if not target.is_file():
            raise BlobNotFoundError(path)
        return target

    def download_url(self, path: str, content_type: Optional[str] = None) -> str:
        """Signed URL for `path`, valid for signed_url_ttl_seconds."""
        token = create_purpose_token(
            subject=path,
            purpose=FILE_DOWNLOAD_PURPOSE,
            expires_delta=timedelta(seconds=self.signed_url_ttl_seconds),
            content_type=content_type or mimetypes.guess_type(path)[0] or DEFAULT_CONTENT_TYPE,
        )
        return f"{self.base_url}/files/{token}"

    def open_signed(self, token: str) -> StoredBlob:
        """
        Resolve a signed download token.

        Raises:
            BlobNotFoundError: token invalid, expired, or object missing
        """
        try:
            payload = verify_token(token, purpose=FILE_DOWNLOAD_PURPOSE)
        except InvalidTokenError as e:
            raise BlobNotFoundError("invalid download token") from e

        path = payload["sub"]
        target = self.file_path(path)
        return StoredBlob(
            path=path,
            content_type=payload.get("content_type") or DEFAULT_CONTENT_TYPE,
            size=target.stat().st_size,
        )


_blob_store: Optional[LocalBlobStore] = None


def get_blob_store() -> LocalBlobStore:
    global _blob_store
    if _blob_store is None:
        _blob_store = LocalBlobStore()
    return _blob_store
