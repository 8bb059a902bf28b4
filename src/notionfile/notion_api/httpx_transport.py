"""Transport over ``httpx.Client``.

A single client is shared by all calls; ``httpx.Client`` is thread-safe.
Keep-alive is disabled and every request carries ``Connection: close`` so
no pooled connection survives a call.  Responses are opened in streaming
mode, read in full, then closed in a ``finally`` block.

Proxy and certificate environment variables are ignored
(``trust_env=False``), matching :class:`ConnectionTransport`.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import httpx

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


class HttpxTransport:
    """Blocking transport built on ``httpx``.

    Parameters
    ----------
    connect_timeout_ms:
        Timeout for establishing the connection.
    read_timeout_ms:
        Timeout for reading, writing and acquiring a connection.
    request_logger:
        Start / success / failure hooks.  Defaults to a
        :class:`StructuredRequestLogger`.
    chunk_size:
        Read size used when streaming file fields.
    boundary_factory:
        Produces the multipart boundary of each request.
    client:
        Pre-built ``httpx.Client`` (e.g. one with an ``httpx.MockTransport``).
        The transport does not close a client it did not create.
    """

    def __init__(
        self,
        connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS,
        read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS,
        request_logger: RequestLogger | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        boundary_factory: Callable[[], str] = new_boundary,
        client: httpx.Client | None = None,
    ) -> None:
        self._logger = request_logger or StructuredRequestLogger()
        self._chunk_size = chunk_size
        self._boundary_factory = boundary_factory
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(
                timeout_seconds(read_timeout_ms),
                connect=timeout_seconds(connect_timeout_ms),
            ),
            limits=httpx.Limits(max_keepalive_connections=0),
            follow_redirects=False,
            trust_env=False,
        )

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
            "POST", url, query, headers, content=body.encode("utf-8"), summary=body
        )

    def patch_text(
        self,
        url: str,
        body: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpExchangeResult:
        return self._exchange(
            "PATCH", url, query, headers, content=body.encode("utf-8"), summary=body
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
                content=encoder,
                summary="multipart form data",
            )

    def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- internals ---------------------------------------------------------

    def _exchange(
        self,
        method: str,
        url: str,
        query: QueryParams | None,
        headers: Mapping[str, str] | None,
        content: bytes | Iterable[bytes] | None = None,
        summary: str | None = None,
    ) -> HttpExchangeResult:
        full_url = build_full_url(url, build_query_string(query))
        all_headers = merge_headers(DEFAULT_HEADERS, headers)

        self._logger.on_start(method, full_url, summary, all_headers)
        started_at = time.monotonic()
        response: httpx.Response | None = None
        try:
            try:
                request = self._client.build_request(
                    method, full_url, content=content, headers=all_headers
                )
                response = self._client.send(request, stream=True)
                result = HttpExchangeResult(
                    status_code=response.status_code,
                    body=decode_body(response.read()),
                    headers=headers_to_multimap(response.headers.multi_items()),
                )
            except NotionfileValidationError as exc:
                self._logger.on_failure(method, full_url, exc)
                raise
            except httpx.TransportError as exc:
                self._logger.on_failure(method, full_url, exc)
                raise NotionfileNetworkError(
                    message=f"Network error on {method} {full_url}: {exc}",
                    context={"method": method, "url": full_url},
                    cause=exc,
                ) from exc
            self._logger.on_success(method, full_url, started_at, result)
            return result
        finally:
            if response is not None:
                self._release(response, method, full_url)

    def _release(self, response: httpx.Response, method: str, url: str) -> None:
        try:
            response.close()
        except Exception as exc:
            self._logger.on_failure(method, url, exc, stage="release")
