"""
Guest photo submission pipeline.

Contains the multipart decoder, the upload orchestrator, and the domain
models and errors they share.
"""

from .decoder import MultipartDecoder, decode
from .errors import (
    AuthenticationError,
    ConfigurationError,
    MissingContentType,
    RemoteStoreError,
    StreamError,
    SubmissionError,
    UploadError,
)
from .models import (
    DEFAULT_GUEST_NAME,
    DecodedForm,
    FileRecord,
    SubmissionOutcome,
    SubmissionState,
    UploadConfig,
    UploadResult,
    UploadTarget,
    build_object_name,
)
from .orchestrator import RemoteStore, RemoteStoreConnector, UploadOrchestrator

__all__ = [
    "MultipartDecoder",
    "decode",
    "AuthenticationError",
    "ConfigurationError",
    "MissingContentType",
    "RemoteStoreError",
    "StreamError",
    "SubmissionError",
    "UploadError",
    "DEFAULT_GUEST_NAME",
    "DecodedForm",
    "FileRecord",
    "SubmissionOutcome",
    "SubmissionState",
    "UploadConfig",
    "UploadResult",
    "UploadTarget",
    "build_object_name",
    "RemoteStore",
    "RemoteStoreConnector",
    "UploadOrchestrator",
]
