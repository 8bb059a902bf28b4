"""notionfile — Notion file uploads over a pluggable blocking HTTP transport.

Public re-exports
-----------------

* **Client:** :class:`NotionfileClient`
* **Configuration:** :class:`NotionfileConfig`
* **Transports:** :class:`HttpTransport`, :class:`ConnectionTransport`,
  :class:`HttpxTransport`
* **Errors:** Every :class:`NotionfileError` subclass and :class:`ErrorCode`
* **Models:** Upload intents, requests, exchange results and outcomes

Usage::

    from notionfile import NotionfileClient

    client = NotionfileClient(token="secret_xxx")
    upload = client.upload_file("slides.pptx")
"""

from __future__ import annotations

from notionfile._version import __version__

# ── Client ─────────────────────────────────────────────────────────────
from notionfile.client import NotionfileClient, build_transport

# ── Configuration ───────────────────────────────────────────────────────
from notionfile.config import NotionfileConfig

# ── Errors ──────────────────────────────────────────────────────────────
from notionfile.errors import (
    ErrorCode,
    NotionfileAPIError,
    NotionfileCodecError,
    NotionfileError,
    NotionfileNetworkError,
    NotionfileValidationError,
)
from notionfile.mime import guess_mime_type

# ── Models ──────────────────────────────────────────────────────────────
from notionfile.models import (
    ApiErrorBody,
    CompleteFileUploadRequest,
    CreateFileUploadRequest,
    ErrorKind,
    FileUpload,
    FileUploadPart,
    FileUploadPartResponse,
    FileUploadStatus,
    HttpExchangeResult,
    MultipartUpload,
    SendFileUploadRequest,
    UploadOutcome,
)

# ── Transports ──────────────────────────────────────────────────────────
from notionfile.notion_api import (
    ConnectionTransport,
    FileAPI,
    HttpTransport,
    HttpxTransport,
)

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    "__version__",
    # Client
    "NotionfileClient",
    "build_transport",
    "FileAPI",
    # Configuration
    "NotionfileConfig",
    # Transports
    "HttpTransport",
    "ConnectionTransport",
    "HttpxTransport",
    # Errors
    "NotionfileError",
    "ErrorCode",
    "NotionfileValidationError",
    "NotionfileNetworkError",
    "NotionfileAPIError",
    "NotionfileCodecError",
    # Models
    "FileUpload",
    "FileUploadStatus",
    "MultipartUpload",
    "FileUploadPart",
    "FileUploadPartResponse",
    "CreateFileUploadRequest",
    "SendFileUploadRequest",
    "CompleteFileUploadRequest",
    "HttpExchangeResult",
    "ApiErrorBody",
    "ErrorKind",
    "UploadOutcome",
    # Helpers
    "guess_mime_type",
]
