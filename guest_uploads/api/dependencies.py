"""
FastAPI dependency injection.

Dependencies provide the configuration, the store connector and the
submission handler to route handlers. Routes never build their own, which
keeps them easy to override in tests via `app.dependency_overrides`.
"""

import logging
from typing import Annotated

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.uploads.models import UploadConfig
from ..core.uploads.orchestrator import RemoteStoreConnector
from ..infrastructure.storage.client import create_storage_connector
from .handler import UploadHandler

logger = logging.getLogger(__name__)

# Global mock instance (shared across requests for local inspection)
_mock_storage_client = None


def get_upload_config(
    settings: Annotated[Settings, Depends(get_settings)],
) -> UploadConfig:
    """Store configuration for the selected backend."""
    return settings.to_upload_config()


def get_storage_connector(
    settings: Annotated[Settings, Depends(get_settings)],
) -> RemoteStoreConnector:
    """
    Provide the connector for the configured storage backend.

    In mock mode, we reuse the same in-memory client across requests
    so that uploaded photos persist during the development session.
    """
    global _mock_storage_client

    if settings.storage_backend == "mock":
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_connector("mock")
            logger.info("Created shared mock storage client for session")
        return _mock_storage_client

    connector = create_storage_connector(settings.storage_backend, settings.r2_options())
    logger.debug(
        "Created storage connector",
        extra={"backend": settings.storage_backend}
    )
    return connector


def get_upload_handler(
    settings: Annotated[Settings, Depends(get_settings)],
    config: Annotated[UploadConfig, Depends(get_upload_config)],
    connector: Annotated[RemoteStoreConnector, Depends(get_storage_connector)],
) -> UploadHandler:
    """Submission handler wired with the configured store."""
    return UploadHandler(
        config=config,
        connector=connector,
        include_view_links=settings.include_view_links,
        chunk_size=settings.decode_chunk_size,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_settings)]
UploadConfigDep = Annotated[UploadConfig, Depends(get_upload_config)]
UploadHandlerDep = Annotated[UploadHandler, Depends(get_upload_handler)]
