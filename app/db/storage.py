"""
app/db/storage.py

Purpose: Object storage on GridFS

- Stores uploaded files (profile images, KYC documents, ticket attachments)
  under path-like names
- Issues tokenized download URLs served by the files router
- Resolves and streams stored objects
"""

import io
import secrets
from typing import Any, AsyncIterator, Dict, Optional
from urllib.parse import quote

from motor.motor_asyncio import AsyncIOMotorGridFSBucket
from pymongo import DESCENDING

from app.core.config import settings
from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.core.logging import get_logger
from app.db.mongo import get_database

logger = get_logger(__name__)


class ObjectStorage:
    """
    Path-addressed object store backed by a GridFS bucket.
    Re-uploading a path keeps older revisions; reads use the newest one.
    """

    def __init__(self, bucket_name: Optional[str] = None):
        self.bucket_name = bucket_name or settings.STORAGE_BUCKET_NAME
        self._bucket: Optional[AsyncIOMotorGridFSBucket] = None

    @property
    def bucket(self) -> AsyncIOMotorGridFSBucket:
        if self._bucket is None:
            self._bucket = AsyncIOMotorGridFSBucket(get_database(), bucket_name=self.bucket_name)
        return self._bucket

    @property
    def files(self):
        return get_database()[f"{self.bucket_name}.files"]

    def build_download_url(self, path: str, token: str) -> str:
        return f"{settings.APP_URL}{settings.API_PREFIX}/files/{quote(path)}?token={token}"

    async def upload_bytes(
        self,
        path: str,
        content: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Uploads an object and returns its download URL.

        Raises:
            ValidationError: If the content is empty or too large
        """
        if not content:
            raise ValidationError("Uploaded file is empty", details={"path": path})

        if len(content) > settings.max_upload_bytes:
            raise ValidationError(
                f"File exceeds the {settings.MAX_UPLOAD_SIZE_MB} MB upload limit",
                details={"path": path, "size": len(content)}
            )

        token = secrets.token_urlsafe(24)
        file_metadata = {
            **(metadata or {}),
            "contentType": content_type or "application/octet-stream",
            "downloadToken": token,
        }

        file_id = await self.bucket.upload_from_stream(
            path,
            io.BytesIO(content),
            metadata=file_metadata,
        )

        logger.info(f"Stored object {path} ({len(content)} bytes, id={file_id})")
        return self.build_download_url(path, token)

    async def _find_latest(self, path: str) -> Dict[str, Any]:
        document = await self.files.find_one({"filename": path}, sort=[("uploadDate", DESCENDING)])
        if document is None:
            raise ResourceNotFoundError("File not found", details={"path": path})
        return document

    async def get_download_url(self, path: str) -> str:
        """
        Returns the download URL of the newest revision stored at `path`.
        """
        document = await self._find_latest(path)
        token = (document.get("metadata") or {}).get("downloadToken", "")
        return self.build_download_url(path, token)

    async def open_object(self, path: str, token: Optional[str]) -> Dict[str, Any]:
        """
        Resolves an object for download.

        Returns:
            Dict with content_type, length and an async chunk iterator

        Raises:
            ResourceNotFoundError: If the path is unknown or the token does
            not match (a wrong token is indistinguishable from a missing file)
        """
        document = await self._find_latest(path)
        metadata = document.get("metadata") or {}

        if not token or not secrets.compare_digest(token, metadata.get("downloadToken", "")):
            raise ResourceNotFoundError("File not found", details={"path": path})

        grid_out = await self.bucket.open_download_stream(document["_id"])

        async def chunks() -> AsyncIterator[bytes]:
            while True:
                chunk = await grid_out.readchunk()
                if not chunk:
                    break
                yield chunk

        return {
            "content_type": metadata.get("contentType", "application/octet-stream"),
            "length": document.get("length", 0),
            "chunks": chunks(),
        }

    async def delete_object(self, path: str) -> bool:
        """
        Deletes every revision stored at `path`.
        """
        deleted = 0
        async for document in self.files.find({"filename": path}, {"_id": 1}):
            await self.bucket.delete(document["_id"])
            deleted += 1

        if deleted:
            logger.info(f"Deleted object {path} ({deleted} revisions)")
        return deleted > 0


# Global storage instance
_storage: Optional[ObjectStorage] = None


def get_storage() -> ObjectStorage:
    """Get or create the global object storage instance."""
    global _storage
    if _storage is None:
        _storage = ObjectStorage()
    return _storage


def reset_storage():
    """Drop the cached bucket (called when the database connection closes)."""
    global _storage
    _storage = None
