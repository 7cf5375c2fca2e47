"""
Submission handler.

The HTTP-shaped entry point for photo submissions. It takes a proxy-style
event (method, headers, body, base64 flag), runs the decoder and the
orchestrator, and turns the outcome into a status code and JSON body.

It does not depend on a web framework: the FastAPI route and the serverless
`lambda_handler` both build a `FunctionEvent` and return whatever
`UploadHandler.handle` produces.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from ..core.uploads.decoder import DEFAULT_CHUNK_SIZE, decode, find_header
from ..core.uploads.errors import ConfigurationError, SubmissionError
from ..core.uploads.models import SubmissionOutcome, SubmissionState, UploadConfig
from ..core.uploads.orchestrator import RemoteStoreConnector, UploadOrchestrator

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

SUCCESS_MESSAGE = "Photos uploaded successfully!"
METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed"
CONFIGURATION_ERROR_MESSAGE = "Server configuration error. Please check environment variables."
UPLOAD_FAILED_MESSAGE = "Failed to upload photos. Please try again."


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

@dataclass
class FunctionEvent:
    """An HTTP request as delivered by a proxy-style runtime."""
    http_method: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Union[bytes, str, None] = None
    is_base64_encoded: bool = False

    @classmethod
    def from_dict(cls, event: dict[str, Any]) -> "FunctionEvent":
        """Build from a Netlify/API Gateway style event dict."""
        return cls(
            http_method=event.get("httpMethod") or "",
            headers=dict(event.get("headers") or {}),
            body=event.get("body"),
            is_base64_encoded=bool(event.get("isBase64Encoded", False)),
        )


@dataclass
class FunctionResponse:
    """Status, headers and serialized body returned to the runtime."""
    status_code: int
    headers: dict[str, str]
    body: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": self.body,
        }


class UploadSuccessResponse(BaseModel):
    """Body returned when every photo was uploaded."""
    message: str = SUCCESS_MESSAGE
    files_uploaded: int = Field(serialization_alias="filesUploaded")
    view_links: Optional[list[Optional[str]]] = Field(
        default=None,
        serialization_alias="viewLinks",
    )


class ErrorResponse(BaseModel):
    """Body returned for every failure."""
    error: str
    details: Optional[str] = None


def json_response(status_code: int, model: BaseModel) -> FunctionResponse:
    headers = {**CORS_HEADERS, "Content-Type": "application/json"}
    return FunctionResponse(
        status_code=status_code,
        headers=headers,
        body=model.model_dump_json(by_alias=True, exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------

class UploadHandler:
    """
    Handles one photo submission per call.

    Holds only configuration and the store connector; all request state
    lives inside `handle`.
    """

    def __init__(
        self,
        config: UploadConfig,
        connector: RemoteStoreConnector,
        include_view_links: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._orchestrator = UploadOrchestrator(config, connector)
        self._include_view_links = include_view_links
        self._chunk_size = chunk_size

    async def handle(self, event: FunctionEvent) -> FunctionResponse:
        method = event.http_method.upper()

        if method == "OPTIONS":
            return FunctionResponse(status_code=200, headers=dict(CORS_HEADERS), body="")

        if method != "POST":
            return json_response(405, ErrorResponse(error=METHOD_NOT_ALLOWED_MESSAGE))

        logger.info("Upload function called")
        outcome = await self.process(event)

        if outcome.succeeded:
            return json_response(200, UploadSuccessResponse(
                files_uploaded=outcome.files_uploaded,
                view_links=outcome.view_links if self._include_view_links else None,
            ))

        if isinstance(outcome.error, ConfigurationError):
            return json_response(500, ErrorResponse(error=CONFIGURATION_ERROR_MESSAGE))

        return json_response(500, ErrorResponse(
            error=UPLOAD_FAILED_MESSAGE,
            details=outcome.error.message,
        ))

    async def process(self, event: FunctionEvent) -> SubmissionOutcome:
        """
        Decode and upload one submission.

        Walks Idle -> Decoding -> Decoded -> Uploading -> Succeeded. Any
        failure moves straight to Failed and ends the request; nothing is
        retried.
        """
        state = SubmissionState.IDLE
        try:
            state = self._transition(state, SubmissionState.DECODING)
            form = await decode(
                event.body,
                find_header(event.headers, "content-type"),
                is_base64=event.is_base64_encoded,
                chunk_size=self._chunk_size,
            )
            state = self._transition(state, SubmissionState.DECODED)

            logger.info(
                "Submission received",
                extra={
                    "guest_name": form.guest_name,
                    "guest_email": form.fields.get("guestEmail", ""),
                    "guest_message": form.fields.get("message", ""),
                    "file_count": len(form.files),
                }
            )

            state = self._transition(state, SubmissionState.UPLOADING)
            outcome = await self._orchestrator.upload(form)
            self._transition(state, SubmissionState.SUCCEEDED)
            return outcome

        except SubmissionError as e:
            self._transition(state, SubmissionState.FAILED)
            logger.error(
                "Upload error",
                extra={"error_kind": e.kind, "error": e.message},
                exc_info=e,
            )
            return SubmissionOutcome.failure(e)

        except Exception as e:
            self._transition(state, SubmissionState.FAILED)
            logger.error(
                "Unexpected upload error",
                extra={"error": str(e)},
                exc_info=e,
            )
            return SubmissionOutcome.failure(SubmissionError(str(e)))

    def _transition(self, current: SubmissionState, new: SubmissionState) -> SubmissionState:
        logger.debug(
            "Submission state change",
            extra={"from_state": current.value, "to_state": new.value}
        )
        return new


# ---------------------------------------------------------------------------
# Serverless entry point
# ---------------------------------------------------------------------------

@lru_cache()
def get_default_handler() -> UploadHandler:
    """Handler built from process settings, once per process."""
    from ..config.settings import get_settings
    from ..infrastructure.storage.client import create_storage_connector

    settings = get_settings()
    return UploadHandler(
        config=settings.to_upload_config(),
        connector=create_storage_connector(settings.storage_backend, settings.r2_options()),
        include_view_links=settings.include_view_links,
        chunk_size=settings.decode_chunk_size,
    )


def lambda_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Synchronous entry point for proxy-style serverless runtimes."""
    response = asyncio.run(get_default_handler().handle(FunctionEvent.from_dict(event)))
    return response.to_dict()
