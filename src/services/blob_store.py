"""
S3-compatible object storage for user-uploaded images.

Works against AWS S3, MinIO or Supabase Storage's S3 endpoint. Objects are
written into a public bucket and addressed by `storage_public_url/<path>`.
"""
import logging
from functools import lru_cache
from io import BytesIO

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.config import get_settings
from services.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class UploadFailedError(ExternalServiceError):
    """Raised when the object store rejects or fails an upload."""

    code = "upload_failed"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__("Image upload failed")


class BlobStore:
    """Thin put/get-url wrapper over a boto3 S3 client. Calls are blocking."""

    def __init__(
        self,
        bucket: str,
        public_url: str,
        endpoint_url: str | None = None,
        access_key: str = "",
        secret_key: str = "",
        region: str = "us-east-1",
    ) -> None:
        self._bucket = bucket
        self._public_url = public_url.rstrip("/")
        self._s3 = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            config=Config(signature_version="s3v4"),
            region_name=region,
        )

    def public_url_for(self, path: str) -> str:
        """Public URL of an object path."""
        return f"{self._public_url}/{path}"

    def put(self, path: str, data: bytes, content_type: str) -> str:
        """
        Upload bytes to `path`, overwriting any existing object.

        Returns:
            The public URL of the stored object.

        Raises:
            UploadFailedError: If the upload fails.
        """
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=path,
                Body=BytesIO(data),
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload of %s to bucket %s failed: %s", path, self._bucket, e)
            raise UploadFailedError(path) from e

        logger.debug("Uploaded %d bytes to %s", len(data), path)
        return self.public_url_for(path)


@lru_cache
def get_blob_store() -> BlobStore:
    """Get the process-wide BlobStore built from settings."""
    settings = get_settings()
    return BlobStore(
        bucket=settings.storage_bucket,
        public_url=settings.storage_public_url,
        endpoint_url=settings.storage_endpoint_url,
        access_key=settings.storage_access_key,
        secret_key=settings.storage_secret_key,
        region=settings.storage_region,
    )
