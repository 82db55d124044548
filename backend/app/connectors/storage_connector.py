"""
Supabase Storage Connector
Handles all interactions with the file storage bucket

Author: TM3
Date: 2025-10-17
"""
import logging
from typing import Dict, List, Optional, Any

from app.core.config import settings
from app.core.database import get_supabase

logger = logging.getLogger(__name__)

CACHE_CONTROL_SECONDS = "3600"


def translate_upload_error(message: str, path: str, content_type: Optional[str]) -> Optional[str]:
    """Readable message for storage errors a client can act on, else None"""
    if 'already exists' in message:
        return f"File already exists at path: {path}"
    if 'Bucket not found' in message:
        return "Storage bucket not found. Please check configuration."
    if 'Payload too large' in message:
        return "File size exceeds storage limits"
    if 'Invalid file type' in message or 'mime type' in message or 'not supported' in message:
        return f"File type not allowed by storage policy. Detected MIME type: {content_type}"
    return None


class StorageConnector:
    """
    Connector for the Supabase Storage bucket

    Handles:
    - Downloading and uploading objects
    - Removing objects
    - Public URLs
    - Bucket info and listing (health checks)
    """

    def __init__(self, client=None, bucket: str = None):
        """
        Initialize storage connector

        Args:
            client: Supabase client (defaults to the shared service client)
            bucket: Bucket name (defaults to STORAGE_BUCKET)
        """
        self._client = client
        self.bucket = bucket or settings.STORAGE_BUCKET

        if not self.bucket:
            raise ValueError("Storage bucket not configured. Set STORAGE_BUCKET")

    @property
    def client(self):
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def download(self, path: str) -> bytes:
        """
        Download an object

        Raises:
            RuntimeError: "Storage download failed: ..."
        """
        try:
            data = self._bucket().download(path)
        except Exception as e:
            raise RuntimeError(f"Storage download failed: {e}") from e

        if not data:
            raise RuntimeError(f"Storage download failed: no data returned for {path}")

        return data

    def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = True
    ) -> str:
        """
        Upload an object

        Args:
            path: Storage path inside the bucket
            data: Object bytes
            content_type: MIME type stored with the object
            upsert: Overwrite an existing object at path

        Returns:
            The storage path

        Raises:
            RuntimeError: "Storage upload failed for <path>: ..." or a
                          translated message for known storage errors
        """
        try:
            self._bucket().upload(
                path,
                data,
                file_options={
                    "content-type": content_type,
                    "cache-control": CACHE_CONTROL_SECONDS,
                    "upsert": "true" if upsert else "false",
                }
            )
        except Exception as e:
            message = translate_upload_error(str(e), path, content_type)
            if message:
                raise RuntimeError(message) from e
            raise RuntimeError(f"Storage upload failed for {path}: {e}") from e

        logger.debug(f"Uploaded {len(data)} bytes to {self.bucket}/{path}")
        return path

    def remove(self, paths: List[str]) -> None:
        """Remove objects; empty paths are ignored"""
        paths = [path for path in paths if path]
        if not paths:
            return

        try:
            self._bucket().remove(paths)
        except Exception as e:
            raise RuntimeError(f"Storage remove failed: {e}") from e

    def public_url(self, path: str) -> str:
        """Public URL of an object"""
        return self._bucket().get_public_url(path)

    def list(self, prefix: str = "") -> List[Dict[str, Any]]:
        """List objects under a prefix"""
        try:
            return self._bucket().list(prefix)
        except Exception as e:
            raise RuntimeError(f"Storage list failed: {e}") from e

    def bucket_info(self) -> Dict[str, Any]:
        """
        Bucket configuration

        Returns:
            Dict with name, public, file_size_limit and allowed_mime_types
        """
        try:
            bucket = self.client.storage.get_bucket(self.bucket)
        except Exception as e:
            raise RuntimeError(f"Storage bucket lookup failed: {e}") from e

        return {
            'name': getattr(bucket, 'name', self.bucket),
            'public': getattr(bucket, 'public', None),
            'file_size_limit': getattr(bucket, 'file_size_limit', None),
            'allowed_mime_types': getattr(bucket, 'allowed_mime_types', None),
        }
