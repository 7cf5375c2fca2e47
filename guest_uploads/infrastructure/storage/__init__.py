"""
Remote store integrations for guest photos.

Supports Google Drive (service account), R2 via the S3-compatible API,
and an in-memory mock for local development without credentials.
"""

from .client import (
    MockStorageClient,
    R2Connector,
    R2Options,
    R2StorageClient,
    StorageAuthError,
    StorageError,
    create_storage_connector,
)

__all__ = [
    "MockStorageClient",
    "R2Connector",
    "R2Options",
    "R2StorageClient",
    "StorageAuthError",
    "StorageError",
    "create_storage_connector",
]
