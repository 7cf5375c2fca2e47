"""
Remote store clients for guest photos.

Supports Cloudflare R2 (S3-compatible) and an in-memory mock for local
development. Google Drive lives in `drive.py`. Every client implements the
`RemoteStore` protocol from `core.uploads.orchestrator`, and every connector
implements `RemoteStoreConnector`.

Mock mode keeps objects in memory, enabling API testing without
provisioning any storage account.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ...core.uploads.errors import RemoteStoreError
from ...core.uploads.models import UploadConfig, UploadResult

logger = logging.getLogger(__name__)

R2_ACCESS_KEY_SETTING = "R2_ACCESS_KEY_ID"
R2_SECRET_KEY_SETTING = "R2_SECRET_ACCESS_KEY"
R2_BUCKET_SETTING = "R2_BUCKET_NAME"


class StorageError(RemoteStoreError):
    """Raised when storage operations fail."""
    pass


class StorageAuthError(StorageError):
    """Raised when a storage session cannot be established."""
    pass


# ---------------------------------------------------------------------------
# Cloudflare R2 (S3-compatible)
# ---------------------------------------------------------------------------

@dataclass
class R2Options:
    """
    Connection options for R2 that are not credentials.

    `public_base_url` is the bucket's public (or custom domain) URL; when
    set, view links are built from it. R2 has no per-object view link
    otherwise.
    """
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region
    public_base_url: Optional[str] = None


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. The parent container id is
    the bucket name and the object name is the key.

    boto3 is synchronous, so each call runs in a worker thread. boto3
    clients are thread-safe, which lets one client serve every upload
    of a submission concurrently.
    """

    def __init__(self, s3_client, public_base_url: Optional[str] = None) -> None:
        self._s3_client = s3_client
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None

    async def create_object(
        self,
        name: str,
        parent_id: str,
        media_type: str,
        content: bytes,
    ) -> UploadResult:
        """Put one object into the bucket named by `parent_id`."""
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=parent_id,
                Key=name,
                Body=content,
                ContentType=media_type,
            )
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"bucket": parent_id, "key": name, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}") from e

        logger.debug(
            "Uploaded object",
            extra={"bucket": parent_id, "key": name, "size_bytes": len(content)}
        )

        return UploadResult(id=name, name=name, web_view_link=self._view_link(name))

    def _view_link(self, key: str) -> Optional[str]:
        if not self._public_base_url:
            return None
        return f"{self._public_base_url}/{key}"


class R2Connector:
    """Creates an R2 client from the configured access keys."""

    def __init__(self, options: R2Options) -> None:
        self._options = options

    async def connect(self, config: UploadConfig) -> R2StorageClient:
        """
        Build a boto3 S3 client for R2.

        We import boto3 here (not at module level) because the mock and
        Drive backends don't need it.
        """
        import boto3
        from botocore.config import Config

        # R2 requires v4 signatures and path-style addressing
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        try:
            s3_client = boto3.client(
                's3',
                endpoint_url=self._options.endpoint_url,
                aws_access_key_id=config.credentials[R2_ACCESS_KEY_SETTING],
                aws_secret_access_key=config.credentials[R2_SECRET_KEY_SETTING],
                region_name=self._options.region,
                config=boto_config,
            )
        except Exception as e:
            raise StorageAuthError(f"Could not create R2 client: {e}") from e

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.parent_container_id,
                "endpoint": self._options.endpoint_url,
            }
        )

        return R2StorageClient(s3_client, public_base_url=self._options.public_base_url)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Acts as both connector and session: `connect` returns the client
    itself, so objects uploaded by one request remain visible to the next.
    View links are mock URIs.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self) -> None:
        # {object_id: (parent_id, name, media_type, content)}
        self._objects: dict[str, tuple[str, str, str, bytes]] = {}
        self._next_id = 1
        logger.info("Initialized mock storage client (in-memory)")

    async def connect(self, config: UploadConfig) -> "MockStorageClient":
        return self

    async def create_object(
        self,
        name: str,
        parent_id: str,
        media_type: str,
        content: bytes,
    ) -> UploadResult:
        """Store object in memory."""
        object_id = f"mock-{self._next_id:06d}"
        self._next_id += 1
        self._objects[object_id] = (parent_id, name, media_type, content)

        logger.debug(
            "Stored object in mock storage",
            extra={
                "object_id": object_id,
                "object_name": name,
                "size_bytes": len(content),
            }
        )

        return UploadResult(
            id=object_id,
            name=name,
            web_view_link=f"mock://storage/{parent_id}/{object_id}",
        )

    def list_objects(self, parent_id: Optional[str] = None) -> list[str]:
        """Names of stored objects, optionally limited to one parent."""
        return [
            name for parent, name, _, _ in self._objects.values()
            if parent_id is None or parent == parent_id
        ]

    def get_object(self, object_id: str) -> bytes:
        """Retrieve object content from memory."""
        if object_id not in self._objects:
            raise StorageError(f"Object not found: {object_id}")

        return self._objects[object_id][3]


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_connector(
    backend: str,
    r2_options: Optional[R2Options] = None,
):
    """
    Create the connector for the configured storage backend.

    Args:
        backend: "drive", "r2" or "mock"
        r2_options: R2 endpoint options (required for "r2")

    Returns:
        RemoteStoreConnector implementation (Drive, R2 or Mock)
    """
    if backend == "mock":
        return MockStorageClient()

    if backend == "r2":
        if r2_options is None:
            raise ValueError("r2_options is required for the r2 backend")
        return R2Connector(r2_options)

    if backend == "drive":
        from .drive import DriveConnector
        return DriveConnector()

    raise ValueError(f"Unknown storage backend: {backend}")
