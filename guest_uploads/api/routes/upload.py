"""
Photo submission endpoint.

The route is a thin adapter: it reads the raw request into a
`FunctionEvent`, lets the submission handler do the work, and copies the
handler's status, headers and body into the HTTP response. It accepts
every method so that unsupported ones get the JSON 405 body instead of
FastAPI's default.
"""

import logging

from fastapi import APIRouter, Request, Response

from ..dependencies import UploadHandlerDep
from ..handler import FunctionEvent

logger = logging.getLogger(__name__)

router = APIRouter()

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


@router.api_route(
    "/upload",
    methods=ALL_METHODS,
    summary="Upload guest photos",
    description=(
        "Multipart form with optional guestName, guestEmail and message "
        "fields and one or more photo files."
    ),
    responses={
        200: {"description": "Photos uploaded"},
        405: {"description": "Method not allowed"},
        500: {"description": "Configuration, decoding or upload failure"},
    },
)
async def upload_photos(request: Request, handler: UploadHandlerDep) -> Response:
    """Run one submission through the handler."""
    event = FunctionEvent(
        http_method=request.method,
        headers=dict(request.headers),
        body=await request.body(),
        is_base64_encoded=False,
    )

    result = await handler.handle(event)

    logger.debug(
        "Upload request handled",
        extra={"method": request.method, "status_code": result.status_code}
    )

    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers,
    )
