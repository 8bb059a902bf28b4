"""Blocking HTTP transport abstraction for the Notion API.

:class:`HttpTransport` is the capability the upload pipeline talks to.  It
exposes five blocking operations, each performing exactly one round trip
and returning an :class:`~notionfile.models.HttpExchangeResult`:

* ``get`` / ``delete`` -- no request body.
* ``post_text`` / ``patch_text`` -- UTF-8 text body (JSON in practice).
* ``post_multipart`` -- streamed ``multipart/form-data`` body.

Contract shared by every implementation:

1. Any HTTP status, including 4xx/5xx, is returned as a result.  Only a
   failed network exchange raises :class:`NotionfileNetworkError`.
2. Caller headers override the defaults in :data:`DEFAULT_HEADERS`;
   ``post_multipart`` always sets its own ``Content-Type`` (and
   ``Content-Length`` when the body size is known).
3. Connections are never reused (``Connection: close``) and are released
   on every exit path.  Release failures are logged, never raised.
4. Connect and read timeouts belong to the transport instance.
5. Start / success / failure are reported to the injected
   :class:`~notionfile.observability.RequestLogger`.

Two implementations ship with the SDK: :class:`ConnectionTransport`
(:mod:`http.client`) and :class:`HttpxTransport` (``httpx``).  Given the
same inputs they send the same request line, headers and body.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol, Union, runtime_checkable
from urllib.parse import quote, urlencode

from notionfile._version import __version__
from notionfile.models import HttpExchangeResult

QueryParams = Mapping[str, Union[str, Sequence[str]]]
"""Ordered multimap of query parameters; a ``str`` value means one value."""

USER_AGENT = f"notionfile/{__version__}"

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "*/*",
    "Accept-Encoding": "identity",
    "Connection": "close",
    "User-Agent": USER_AGENT,
}


@runtime_checkable
class HttpTransport(Protocol):
    """Blocking request/response execution strategy."""

    def get(
        self,
        url: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult: ...

    def post_text(
        self,
        url: str,
        body: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult: ...

    def patch_text(
        self,
        url: str,
        body: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult: ...

    def delete(
        self,
        url: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult: ...

    def post_multipart(
        self,
        url: str,
        form_data: Mapping[str, Any],
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def build_query_string(query: QueryParams | None) -> str:
    """Percent-encode *query*, repeating keys once per value, in order.

    >>> build_query_string({"tag": ["a", "b"], "q": "x y"})
    'tag=a&tag=b&q=x%20y'
    """
    if not query:
        return ""
    pairs: list[tuple[str, str]] = []
    for key, values in query.items():
        if isinstance(values, str):
            values = [values]
        pairs.extend((key, str(value)) for value in values)
    return urlencode(pairs, quote_via=quote)


def build_full_url(url: str, query_string: str) -> str:
    if not query_string:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query_string}"


def merge_headers(*layers: Mapping[str, str] | None) -> dict[str, str]:
    """Merge header mappings left to right; later layers win.

    Names compare case-insensitively; the spelling of the winning layer
    is kept.
    """
    merged: dict[str, str] = {}
    for layer in layers:
        if not layer:
            continue
        for name, value in layer.items():
            for existing in [k for k in merged if k.lower() == name.lower()]:
                del merged[existing]
            merged[name] = value
    return merged


def headers_to_multimap(pairs: Iterable[tuple[str, str]]) -> dict[str, tuple[str, ...]]:
    """Group raw ``(name, value)`` pairs by lower-cased name."""
    grouped: dict[str, list[str]] = {}
    for name, value in pairs:
        grouped.setdefault(name.lower(), []).append(value)
    return {name: tuple(values) for name, values in grouped.items()}


def decode_body(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def timeout_seconds(milliseconds: int) -> float:
    if milliseconds <= 0:
        raise ValueError(f"timeout must be > 0 ms, got {milliseconds}")
    return milliseconds / 1000
