"""Public data models for the notionfile SDK.

This module contains the upload-intent model returned by the Notion File
Uploads API, the request bodies sent to it, the uniform HTTP exchange
result produced by every transport, and the explicit outcome type returned
by the non-raising upload entry point.  All types are plain dataclasses
with no behaviour beyond what is needed for structural equality.

Optional wire fields are ``None`` when absent.  ``None`` is never
conflated with ``""`` or ``0``: absent fields are omitted from request
bodies entirely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import IO, TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from notionfile.errors import NotionfileError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FileUploadStatus(str, Enum):
    """Lifecycle states of a file upload, as reported by the service."""

    PENDING = "pending"
    """Created; bytes not (fully) received yet."""

    UPLOADED = "uploaded"
    """All bytes received.  The upload can be attached to a block."""

    ARCHIVED = "archived"
    """Archived server-side."""

    FAILED = "failed"
    """The service rejected or lost the upload."""


class ErrorKind(str, Enum):
    """Coarse classification of every error the SDK surfaces."""

    VALIDATION = "validation"
    """A local precondition failed; nothing was sent."""

    TRANSPORT = "transport"
    """The network exchange itself could not complete."""

    API = "api"
    """The service answered with an error status."""


# ---------------------------------------------------------------------------
# Upload intent
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MultipartUpload:
    """Chunking plan attached to a multi-part upload.

    Attributes
    ----------
    upload_id:
        Service-side identifier of the multipart session.
    part_size:
        Size in bytes of every part except possibly the last.
    number_of_parts:
        Number of parts the service expects.
    upload_urls:
        Part number (as a string, as on the wire) to upload URL.
    """

    upload_id: str
    part_size: int
    number_of_parts: int
    upload_urls: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FileUpload:
    """A server-registered upload intent.

    Exactly one of :attr:`upload_url` (single-part path) or
    :attr:`multipart_upload` (chunked path) is populated by the service.
    """

    id: str
    status: FileUploadStatus
    filename: str
    file_size: int
    mime_type: str | None = None
    expiry_time: str | None = None
    upload_url: str | None = None
    multipart_upload: MultipartUpload | None = None

    @property
    def is_uploaded(self) -> bool:
        return self.status == FileUploadStatus.UPLOADED

    @property
    def is_multi_part(self) -> bool:
        return self.multipart_upload is not None


@dataclass(frozen=True)
class FileUploadPart:
    """One ``{part_number, etag}`` entry of a complete request."""

    part_number: int
    etag: str


@dataclass(frozen=True)
class FileUploadPartResponse:
    """Acknowledgement returned by the service for one sent part."""

    part_number: int
    etag: str

    def to_part(self) -> FileUploadPart:
        return FileUploadPart(part_number=self.part_number, etag=self.etag)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreateFileUploadRequest:
    filename: str
    file_size: int
    mime_type: str | None = None
    part_size: int | None = None


@dataclass
class SendFileUploadRequest:
    """Body of a send call.

    ``file`` is a readable binary stream.  It is consumed and closed by
    the transport.
    """

    file: IO[bytes]
    part_number: int | None = None
    mime_type: str | None = None


@dataclass(frozen=True)
class CompleteFileUploadRequest:
    parts: list[FileUploadPart]


# ---------------------------------------------------------------------------
# HTTP exchange
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HttpExchangeResult:
    """The outcome of one HTTP round trip, whatever its status.

    Attributes
    ----------
    status_code:
        HTTP status of the response.
    body:
        Response body decoded as UTF-8.
    headers:
        Lower-cased header name to the tuple of its values, in arrival
        order.  Read-only.
    """

    status_code: int
    body: str
    headers: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {name: tuple(values) for name, values in self.headers.items()}
        object.__setattr__(self, "headers", MappingProxyType(frozen))

    def header(self, name: str) -> str | None:
        """Return the first value of header *name*, or ``None``."""
        values = self.headers.get(name.lower())
        return values[0] if values else None


@dataclass(frozen=True)
class ApiErrorBody:
    """Structured error returned by the Notion API on a non-200 status."""

    status: int
    code: str
    message: str
    request_id: str | None = None


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UploadOutcome:
    """Explicit result of an upload: either a value or a classified error.

    Examples
    --------
    ::

        outcome = client.try_upload_file("report.pdf")
        if outcome.ok:
            use(outcome.value.id)
        elif outcome.kind is ErrorKind.VALIDATION:
            ...
    """

    value: FileUpload | None = None
    error: NotionfileError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return None if self.error is None else self.error.kind

    def unwrap(self) -> FileUpload:
        """Return :attr:`value`, or raise the captured error."""
        if self.error is not None:
            raise self.error
        if self.value is None:
            raise RuntimeError("UploadOutcome holds neither a value nor an error")
        return self.value


def as_form_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Return an ordered copy of *fields* with ``None`` values dropped."""
    return {name: value for name, value in fields.items() if value is not None}
