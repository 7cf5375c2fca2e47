"""
Upload orchestration.

Takes a decoded submission and pushes every file to the remote store at
once. The join is all-or-nothing: the first failed upload fails the whole
submission, and nothing about the uploads that did succeed is reported.

There is no rollback. Sibling uploads are not cancelled when one fails, so
files can still appear in the store for a submission reported as failed.
"""

import asyncio
import logging
import time
from typing import Callable, Protocol

from .errors import (
    AuthenticationError,
    ConfigurationError,
    RemoteStoreError,
    UploadError,
)
from .models import (
    DecodedForm,
    FileRecord,
    SubmissionOutcome,
    UploadConfig,
    UploadResult,
    UploadTarget,
    build_object_name,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class RemoteStore(Protocol):
    """
    An authenticated session with the remote store.

    Implementations must be safe to call concurrently: the orchestrator
    issues one `create_object` per file without waiting in between.
    Whatever `create_object` raises is reported as that file's
    `UploadError`.
    """

    async def create_object(
        self,
        name: str,
        parent_id: str,
        media_type: str,
        content: bytes,
    ) -> UploadResult:
        """Create one object and return its id, name and view link."""
        ...


class RemoteStoreConnector(Protocol):
    """Establishes a `RemoteStore` session from configuration."""

    async def connect(self, config: UploadConfig) -> RemoteStore:
        """Authenticate and return a session. Raises RemoteStoreError on failure."""
        ...


def current_timestamp_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class UploadOrchestrator:
    """
    Uploads the files of one submission.

    The orchestrator holds only its dependencies; everything about a
    particular submission lives in the arguments to `upload`.
    """

    def __init__(
        self,
        config: UploadConfig,
        connector: RemoteStoreConnector,
        clock: Callable[[], int] = current_timestamp_ms,
    ) -> None:
        self._config = config
        self._connector = connector
        self._clock = clock

    def plan(self, form: DecodedForm, timestamp_ms: int) -> list[UploadTarget]:
        """Upload targets for every file, all sharing one request timestamp."""
        return [
            UploadTarget(
                parent_id=self._config.parent_container_id,
                object_name=build_object_name(form.guest_name, timestamp_ms, record.filename),
            )
            for record in form.files
        ]

    async def upload(self, form: DecodedForm) -> SubmissionOutcome:
        """
        Upload every file in the form.

        Raises:
            ConfigurationError: Credentials or container id are missing.
                Raised before any network call.
            AuthenticationError: The store session could not be established.
            UploadError: At least one file failed to upload.
        """
        missing = self._config.missing_fields()
        if missing:
            logger.error(
                "Missing store configuration",
                extra={"missing_fields": missing}
            )
            raise ConfigurationError(missing)

        logger.info("Authenticating with remote store")
        try:
            store = await self._connector.connect(self._config)
        except RemoteStoreError as e:
            logger.error(
                "Remote store authentication failed",
                extra={"error": str(e)}
            )
            raise AuthenticationError(str(e)) from e
        logger.info("Authentication successful")

        # One timestamp for the whole request keeps the names correlated
        targets = self.plan(form, self._clock())

        logger.info("Uploading files", extra={"file_count": len(form.files)})
        results = await asyncio.gather(*(
            self._upload_one(store, index, record, target)
            for index, (record, target) in enumerate(zip(form.files, targets))
        ))

        logger.info("All files uploaded successfully", extra={"file_count": len(results)})
        return SubmissionOutcome.success(list(results))

    async def _upload_one(
        self,
        store: RemoteStore,
        index: int,
        record: FileRecord,
        target: UploadTarget,
    ) -> UploadResult:
        logger.info(
            "Uploading file",
            extra={
                "index": index + 1,
                "upload_filename": record.filename,
                "object_name": target.object_name,
                "size_bytes": record.size,
            }
        )

        try:
            result = await store.create_object(
                name=target.object_name,
                parent_id=target.parent_id,
                media_type=record.media_type,
                content=record.content,
            )
        except Exception as e:
            logger.error(
                "Error uploading file",
                extra={
                    "index": index + 1,
                    "upload_filename": record.filename,
                    "error": str(e),
                }
            )
            raise UploadError(str(e), filename=record.filename, index=index) from e

        logger.info(
            "File uploaded successfully",
            extra={"index": index + 1, "object_id": result.id, "object_name": result.name}
        )
        return result
