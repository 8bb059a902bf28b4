"""Transport over :mod:`http.client` connections.

Every call opens a fresh :class:`http.client.HTTPConnection` (or
``HTTPSConnection``), sends one request, reads the whole response and
closes the connection in a ``finally`` block.  No state is shared between
calls, so one instance can be used from several threads.

The connect timeout applies to ``connect()``; the read timeout is then set
on the connected socket and bounds every subsequent send and receive.
"""

from __future__ import annotations

import http.client
import ssl
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any
from urllib.parse import urlsplit

from notionfile.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_READ_TIMEOUT_MS,
)
from notionfile.errors import NotionfileNetworkError, NotionfileValidationError
from notionfile.models import HttpExchangeResult
from notionfile.observability import RequestLogger, StructuredRequestLogger

from .multipart import MultipartEncoder, new_boundary
from .transport import (
    DEFAULT_HEADERS,
    QueryParams,
    build_full_url,
    build_query_string,
    decode_body,
    headers_to_multimap,
    merge_headers,
    timeout_seconds,
)


class ConnectionTransport:
    """Blocking transport built on the standard library's HTTP connections.

    Parameters
    ----------
    connect_timeout_ms:
        Timeout for establishing the TCP (and TLS) connection.
    read_timeout_ms:
        Timeout for each socket operation once connected.
    request_logger:
        Start / success / failure hooks.  Defaults to a
        :class:`StructuredRequestLogger`.
    chunk_size:
        Read size used when streaming file fields.
    boundary_factory:
        Produces the multipart boundary of each request.
    ssl_context:
        TLS context for ``https`` URLs.  Defaults to
        :func:`ssl.create_default_context`.
    """

    def __init__(
        self,
        connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS,
        read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS,
        request_logger: RequestLogger | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        boundary_factory: Callable[[], str] = new_boundary,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self._connect_timeout = timeout_seconds(connect_timeout_ms)
        self._read_timeout = timeout_seconds(read_timeout_ms)
        self._logger = request_logger or StructuredRequestLogger()
        self._chunk_size = chunk_size
        self._boundary_factory = boundary_factory
        self._ssl_context = ssl_context

    # -- public API --------------------------------------------------------

    def get(
        self,
        url: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult:
        return self._exchange("GET", url, query, headers)

    def post_text(
        self,
        url: str,
        body: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult:
        return self._exchange(
            "POST", url, query, headers, body=body.encode("utf-8"), summary=body
        )

    def patch_text(
        self,
        url: str,
        body: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult:
        return self._exchange(
            "PATCH", url, query, headers, body=body.encode("utf-8"), summary=body
        )

    def delete(
        self,
        url: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult:
        return self._exchange("DELETE", url, query, headers)

    def post_multipart(
        self,
        url: str,
        form_data: Mapping[str, Any],
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult:
        """POST *form_data* as a streamed ``multipart/form-data`` body.

        Stream values in *form_data* are closed before this returns,
        whether or not the request succeeded.
        """
        with MultipartEncoder(form_data, self._boundary_factory(), self._chunk_size) as encoder:
            body_headers = {"Content-Type": encoder.content_type}
            length = encoder.content_length
            if length is not None:
                body_headers["Content-Length"] = str(length)
            return self._exchange(
                "POST",
                url,
                query,
                merge_headers(headers, body_headers),
                body=encoder,
                summary="multipart form data",
            )

    def close(self) -> None:
        """No-op: connections never outlive a call."""

    def __enter__(self) -> ConnectionTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- internals ---------------------------------------------------------

    def _open(self, scheme: str, host: str, port: int | None) -> http.client.HTTPConnection:
        if scheme == "https":
            return http.client.HTTPSConnection(
                host,
                port,
                timeout=self._connect_timeout,
                context=self._ssl_context or ssl.create_default_context(),
            )
        if scheme == "http":
            return http.client.HTTPConnection(host, port, timeout=self._connect_timeout)
        raise ValueError(f"unsupported URL scheme: {scheme!r}")

    def _exchange(
        self,
        method: str,
        url: str,
        query: QueryParams | None,
        headers: Mapping[str, str] | None,
        body: bytes | Iterable[bytes] | None = None,
        summary: str | None = None,
    ) -> HttpExchangeResult:
        full_url = build_full_url(url, build_query_string(query))
        parts = urlsplit(full_url)
        target = parts.path or "/"
        if parts.query:
            target = f"{target}?{parts.query}"
        all_headers = merge_headers(DEFAULT_HEADERS, headers)

        self._logger.on_start(method, full_url, summary, all_headers)
        started_at = time.monotonic()
        conn = self._open(parts.scheme, parts.hostname or "", parts.port)
        try:
            try:
                conn.connect()
                conn.sock.settimeout(self._read_timeout)
                conn.request(method, target, body=body, headers=all_headers)
                response = conn.getresponse()
                result = HttpExchangeResult(
                    status_code=response.status,
                    body=decode_body(response.read()),
                    headers=headers_to_multimap(response.getheaders()),
                )
            except NotionfileValidationError as exc:
                self._logger.on_failure(method, full_url, exc)
                raise
            except (OSError, http.client.HTTPException) as exc:
                self._logger.on_failure(method, full_url, exc)
                raise NotionfileNetworkError(
                    message=f"Network error on {method} {full_url}: {exc}",
                    context={"method": method, "url": full_url},
                    cause=exc,
                ) from exc
            self._logger.on_success(method, full_url, started_at, result)
            return result
        finally:
            self._release(conn, method, full_url)

    def _release(self, conn: http.client.HTTPConnection, method: str, url: str) -> None:
        try:
            conn.close()
        except Exception as exc:
            self._logger.on_failure(method, url, exc, stage="release")
