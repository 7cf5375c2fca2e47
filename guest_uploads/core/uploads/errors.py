"""
Error taxonomy for the submission pipeline.

Every failure a submission can hit is one of these kinds. The HTTP layer
collapses them all into a 500 envelope, but keeping them distinct lets
callers (and tests) tell a bad request body apart from a broken deployment.
"""

from typing import Optional


class SubmissionError(Exception):
    """Base class for every error raised while processing a submission."""

    kind: str = "submission_error"

    @property
    def message(self) -> str:
        return str(self)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

class MissingContentType(SubmissionError):
    """Raised when the request carries no content-type header."""

    kind = "missing_content_type"

    def __init__(self, message: str = "No content-type header") -> None:
        super().__init__(message)


class StreamError(SubmissionError):
    """Raised when the multipart body is malformed or truncated."""

    kind = "stream_error"


# ---------------------------------------------------------------------------
# Uploading
# ---------------------------------------------------------------------------

class ConfigurationError(SubmissionError):
    """Raised when store credentials or the parent container id are missing."""

    kind = "configuration_error"

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Missing required configuration: " + ", ".join(self.missing_fields)
        )


class AuthenticationError(SubmissionError):
    """Raised when a session with the remote store cannot be established."""

    kind = "authentication_error"


class UploadError(SubmissionError):
    """
    Raised when a single file's create call fails.

    Carries the file that failed so the log line points at it; the message
    itself is the underlying store error, which is what ends up in the
    response `details`.
    """

    kind = "upload_error"

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        self.filename = filename
        self.index = index
        super().__init__(message)


class RemoteStoreError(Exception):
    """Raised by remote store implementations when a call fails."""
