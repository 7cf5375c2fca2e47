"""
Domain models for guest photo submissions.

These models describe a single submission as it moves through the pipeline:
decoded form data, the files it carried, where each file goes, and what
happened. Nothing here knows about HTTP frameworks or storage SDKs.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import SubmissionError

DEFAULT_GUEST_NAME = "Guest"
DEFAULT_MEDIA_TYPE = "application/octet-stream"


class SubmissionState(Enum):
    """Lifecycle of one request. Any failure jumps straight to FAILED."""
    IDLE = "idle"
    DECODING = "decoding"
    DECODED = "decoded"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class FileRecord:
    """
    One file part, fully materialized.

    Frozen because a record is only created once its part has been
    terminated; the bytes never change after that.
    """
    field_name: str
    filename: str
    media_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class DecodedForm:
    """Fields and files decoded from one multipart body."""
    fields: Mapping[str, str] = field(default_factory=dict)
    files: tuple[FileRecord, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "files", tuple(self.files))

    @property
    def guest_name(self) -> str:
        """Guest name from the form; empty or absent falls back to the default."""
        return self.fields.get("guestName") or DEFAULT_GUEST_NAME

    @property
    def total_bytes(self) -> int:
        return sum(record.size for record in self.files)


def build_object_name(guest_name: Optional[str], timestamp_ms: int, filename: str) -> str:
    """Remote object name: `<guest>_<timestamp>_<original filename>`."""
    return f"{guest_name or DEFAULT_GUEST_NAME}_{timestamp_ms}_{filename}"


@dataclass(frozen=True)
class UploadTarget:
    """Where one file lands in the remote store."""
    parent_id: str
    object_name: str


@dataclass(frozen=True)
class UploadResult:
    """What the remote store reports back for a created object."""
    id: str
    name: str
    web_view_link: Optional[str] = None


@dataclass(frozen=True)
class SubmissionOutcome:
    """
    Result of a whole submission.

    Strictly all-or-nothing: either every file was uploaded (and
    `results` holds one entry per file), or `error` is set and nothing
    about individual uploads is reported.
    """
    results: tuple[UploadResult, ...] = ()
    error: Optional[SubmissionError] = None

    @classmethod
    def success(cls, results: list[UploadResult]) -> "SubmissionOutcome":
        return cls(results=tuple(results))

    @classmethod
    def failure(cls, error: SubmissionError) -> "SubmissionOutcome":
        return cls(error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def files_uploaded(self) -> int:
        return len(self.results) if self.succeeded else 0

    @property
    def view_links(self) -> list[Optional[str]]:
        return [result.web_view_link for result in self.results]


@dataclass(frozen=True)
class UploadConfig:
    """
    Remote store configuration, built once at process start.

    `credentials` maps setting names (as they appear in the environment)
    to values so that a missing one can be reported by name.
    `container_setting` is the setting name of the parent container id.
    """
    parent_container_id: str
    credentials: Mapping[str, str] = field(default_factory=dict)
    container_setting: str = "PARENT_CONTAINER_ID"

    def __post_init__(self) -> None:
        object.__setattr__(self, "credentials", MappingProxyType(dict(self.credentials)))

    def missing_fields(self) -> list[str]:
        """Names of required settings that are absent or empty."""
        missing = [name for name, value in self.credentials.items() if not value]
        if not self.parent_container_id:
            missing.append(self.container_setting)
        return missing

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()
