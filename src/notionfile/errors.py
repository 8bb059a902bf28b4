"""Full error hierarchy for the notionfile SDK.

Every public error class inherits from NotionfileError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Errors also expose a coarse :class:`~notionfile.models.ErrorKind` so that
callers (and :class:`~notionfile.models.UploadOutcome`) can tell local
validation failures, transport failures and API failures apart without
walking the class hierarchy.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

from notionfile.models import ErrorKind

if TYPE_CHECKING:
    from notionfile.models import ApiErrorBody, HttpExchangeResult

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the SDK can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    CODEC_ERROR = "CODEC_ERROR"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class NotionfileError(Exception):
    """Base exception for all notionfile errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    kind: ErrorKind = ErrorKind.API

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Local / transport / API errors
# ---------------------------------------------------------------------------

class NotionfileValidationError(NotionfileError):
    """A local precondition failed before any request was sent.

    Context keys: ``field``, ``value``, ``constraint``.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class NotionfileNetworkError(NotionfileError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``method``, ``url``.
    """

    kind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NETWORK_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class NotionfileAPIError(NotionfileError):
    """Notion API answered with a non-200 status.

    The parsed error body is available as :attr:`error`; the raw exchange
    is kept as :attr:`response` for diagnostics.

    Context keys: ``status_code``, ``notion_code``, ``request_id``.
    """

    kind = ErrorKind.API

    def __init__(
        self,
        error: ApiErrorBody,
        response: HttpExchangeResult,
        message: str | None = None,
    ) -> None:
        self.error = error
        self.response = response
        super().__init__(
            code=ErrorCode.API_ERROR,
            message=message or f"{error.code}: {error.message}",
            context={
                "status_code": response.status_code,
                "notion_code": error.code,
                "request_id": error.request_id,
            },
        )

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def headers(self) -> Mapping[str, tuple[str, ...]]:
        return self.response.headers


class NotionfileCodecError(NotionfileError):
    """A successful response body could not be decoded into a model.

    Context keys: ``target``, ``body``.
    """

    kind = ErrorKind.API

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.CODEC_ERROR,
            message=message,
            context=context,
            cause=cause,
        )
