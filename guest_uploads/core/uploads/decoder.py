"""
Multipart form decoder.

Turns a raw request body into form fields and file records using
python-multipart's callback-driven `MultipartParser`. The parser is fed the
buffer in chunks, yielding to the event loop between them, so callers see a
single awaited operation instead of callback registration.

Known scaling limit: every file is accumulated into one in-memory buffer
and there is no size cap. That is fine for guest photo uploads; bounded
memory would require streaming parts straight into the store call.
"""

import asyncio
import base64
import binascii
import logging
from email.message import Message
from email.utils import collapse_rfc2231_value
from dataclasses import dataclass, field
from typing import Optional, Union

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, MultipartState, parse_options_header

from .errors import MissingContentType, StreamError
from .models import DEFAULT_MEDIA_TYPE, DecodedForm, FileRecord

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
FIELD_CHARSET = "utf-8"


def find_header(headers: Optional[dict], name: str) -> Optional[str]:
    """Case-insensitive header lookup over a plain dict."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def decode_body(raw_body: Union[bytes, str, None], is_base64: bool) -> bytes:
    """Return the body as bytes, undoing base64 transport encoding if flagged."""
    if raw_body is None:
        return b""
    if is_base64:
        try:
            return base64.b64decode(raw_body)
        except (binascii.Error, ValueError) as e:
            raise StreamError(f"Request body is not valid base64: {e}") from e
    if isinstance(raw_body, str):
        return raw_body.encode("utf-8")
    return bytes(raw_body)


def part_filename(disposition: bytes, options: dict[bytes, bytes]) -> Optional[str]:
    """
    Filename of a file part, or None for a plain field.

    `parse_options_header` drops RFC 5987 `filename*=charset''...` parameters,
    so those are read with the email package. The extended form wins when
    both are present.
    """
    if b"filename*" in disposition.lower():
        message = Message()
        message["content-disposition"] = disposition.decode("latin-1")
        for key, value in message.get_params(header="content-disposition")[1:]:
            if key.lower() == "filename" and isinstance(value, tuple):
                return collapse_rfc2231_value(value, fallback_charset=FIELD_CHARSET)
    if b"filename" in options:
        return options[b"filename"].decode(FIELD_CHARSET, errors="replace")
    return None


@dataclass
class _PartState:
    """Headers and data for the part currently being parsed."""
    headers: dict[bytes, bytes] = field(default_factory=dict)
    header_field: bytearray = field(default_factory=bytearray)
    header_value: bytearray = field(default_factory=bytearray)
    data: bytearray = field(default_factory=bytearray)


class MultipartDecoder:
    """
    Collects parser callbacks into fields and sealed file records.

    One decoder handles one body. A part is only turned into a field or
    a `FileRecord` when the parser reports its end; anything still open
    when input runs out is a truncated stream.
    """

    def __init__(self, boundary: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._chunk_size = chunk_size
        self._delimiter = b"--" + boundary
        self._fields: dict[str, str] = {}
        self._files: list[FileRecord] = []
        self._part: Optional[_PartState] = None
        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
            },
        )

    @classmethod
    def from_content_type(
        cls,
        content_type: Optional[str],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> "MultipartDecoder":
        """Build a decoder for the boundary declared in a content-type header."""
        if not content_type:
            raise MissingContentType()

        media_type, params = parse_options_header(content_type)
        if media_type.lower() != b"multipart/form-data":
            raise StreamError(
                f"Unsupported content type: {media_type.decode('latin-1') or content_type}"
            )

        boundary = params.get(b"boundary")
        if not boundary:
            raise StreamError("Multipart boundary not found in content-type header")

        return cls(boundary, chunk_size=chunk_size)

    async def feed(self, body: bytes) -> DecodedForm:
        """Push the whole body through the parser and return what it held."""
        view = memoryview(body)[self._preamble_length(body):]
        try:
            for offset in range(0, len(view), self._chunk_size):
                self._parser.write(view[offset:offset + self._chunk_size].tobytes())
                await asyncio.sleep(0)
            self._parser.finalize()
        except MultipartParseError as e:
            raise StreamError(f"Malformed multipart body: {e}") from e

        if self._part is not None:
            raise StreamError("Multipart body ended inside a part")
        if self._parser.state != MultipartState.END:
            raise StreamError("Multipart body ended before the closing boundary")

        return DecodedForm(fields=self._fields, files=self._files)

    def _preamble_length(self, body: bytes) -> int:
        """Bytes before the first delimiter line; the parser rejects a preamble."""
        if body.startswith(self._delimiter):
            return 0
        index = body.find(b"\n" + self._delimiter)
        # No delimiter at all: leave the body whole so the parser reports it
        return 0 if index < 0 else index + 1

    # -----------------------------------------------------------------------
    # Parser callbacks
    # -----------------------------------------------------------------------

    def _on_part_begin(self) -> None:
        self._part = _PartState()

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._part.header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._part.header_value += data[start:end]

    def _on_header_end(self) -> None:
        part = self._part
        part.headers[bytes(part.header_field).lower()] = bytes(part.header_value)
        part.header_field.clear()
        part.header_value.clear()

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._part.data += data[start:end]

    def _on_part_end(self) -> None:
        part, self._part = self._part, None

        disposition = part.headers.get(b"content-disposition")
        if disposition is None:
            raise StreamError("Part is missing a Content-Disposition header")
        _, options = parse_options_header(disposition)
        if b"name" not in options:
            raise StreamError('Content-Disposition header has no "name" parameter')
        name = options[b"name"].decode(FIELD_CHARSET, errors="replace")

        filename = part_filename(disposition, options)
        if filename is not None:
            media_type = part.headers.get(b"content-type", b"").decode("latin-1").strip()
            record = FileRecord(
                field_name=name,
                filename=filename,
                media_type=media_type or DEFAULT_MEDIA_TYPE,
                content=bytes(part.data),
            )
            self._files.append(record)
            logger.info(
                "File received",
                extra={
                    "field_name": name,
                    "upload_filename": filename,
                    "media_type": record.media_type,
                    "size_bytes": record.size,
                }
            )
        else:
            # Last write wins on duplicate keys
            self._fields[name] = part.data.decode(FIELD_CHARSET, errors="replace")
            logger.debug("Field received", extra={"field_name": name})


async def decode(
    raw_body: Union[bytes, str, None],
    content_type: Optional[str],
    is_base64: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> DecodedForm:
    """
    Decode a multipart request body into fields and files.

    Raises:
        MissingContentType: No content-type header was supplied.
        StreamError: The body is not valid base64 (when flagged), not
            multipart, malformed, or truncated.
    """
    decoder = MultipartDecoder.from_content_type(content_type, chunk_size=chunk_size)
    body = decode_body(raw_body, is_base64)

    logger.debug(
        "Decoding multipart body",
        extra={"size_bytes": len(body), "base64": is_base64}
    )
    form = await decoder.feed(body)

    logger.info(
        "Form decoded",
        extra={
            "fields": sorted(form.fields),
            "file_count": len(form.files),
            "total_bytes": form.total_bytes,
        }
    )
    return form
