"""Request logging capability injected into the HTTP transports.

Transports do not own a logger.  They report the three moments of every
exchange (start, success, failure) to a :class:`RequestLogger` supplied at
construction time.  :class:`StructuredRequestLogger` is the default; it
writes structured JSON records and feeds the metrics hook.
"""

from __future__ import annotations

import logging
import time
from typing import Literal, Mapping, Protocol, runtime_checkable

from notionfile.models import HttpExchangeResult
from notionfile.utils.redact import redact, redact_text

from .logger import get_logger, log_event
from .metrics import MetricsHook, NoopMetricsHook

_DUMP_LIMIT = 1000


@runtime_checkable
class RequestLogger(Protocol):
    """Start / success / failure hooks for one HTTP exchange."""

    def on_start(
        self,
        method: str,
        url: str,
        body: str | None,
        headers: Mapping[str, str] | None = None,
    ) -> None: ...

    def on_success(
        self,
        method: str,
        url: str,
        started_at: float,
        result: HttpExchangeResult,
    ) -> None: ...

    def on_failure(
        self,
        method: str,
        url: str,
        exc: BaseException,
        stage: Literal["request", "release"] = "request",
    ) -> None: ...


class StructuredRequestLogger:
    """Default :class:`RequestLogger` backed by the JSON logger.

    Parameters
    ----------
    logger:
        Target logger.  Defaults to ``get_logger("notionfile.transport")``.
    token:
        Integration token to scrub from anything that is logged.
    dump_payload:
        Also log (redacted) request headers, request bodies and the first
        kilobyte of response bodies.
    metrics:
        Metrics backend for ``requests_total`` / ``request_duration_ms``.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        token: str | None = None,
        dump_payload: bool = False,
        metrics: MetricsHook | None = None,
    ) -> None:
        self._log = logger or get_logger("notionfile.transport")
        self._token = token
        self._dump_payload = dump_payload
        self._metrics = metrics if metrics is not None else NoopMetricsHook()

    def on_start(
        self,
        method: str,
        url: str,
        body: str | None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        fields: dict[str, object] = {"op": "request", "method": method, "url": url}
        if self._dump_payload:
            if headers is not None:
                fields["headers"] = redact(headers, self._token)
            if body is not None:
                fields["body"] = redact_text(body[:_DUMP_LIMIT], self._token)
        log_event(self._log, logging.DEBUG, "Sending request", **fields)

    def on_success(
        self,
        method: str,
        url: str,
        started_at: float,
        result: HttpExchangeResult,
    ) -> None:
        elapsed_ms = (time.monotonic() - started_at) * 1000
        tags = {"method": method, "status": str(result.status_code)}
        self._metrics.increment("notionfile.requests_total", tags=tags)
        self._metrics.timing("notionfile.request_duration_ms", elapsed_ms, tags=tags)

        fields: dict[str, object] = {
            "op": "request",
            "method": method,
            "url": url,
            "status_code": result.status_code,
            "elapsed_ms": round(elapsed_ms, 3),
        }
        if self._dump_payload:
            fields["response_body"] = redact_text(result.body[:_DUMP_LIMIT], self._token)
        log_event(self._log, logging.DEBUG, "Received response", **fields)

    def on_failure(
        self,
        method: str,
        url: str,
        exc: BaseException,
        stage: Literal["request", "release"] = "request",
    ) -> None:
        if stage == "request":
            self._metrics.increment(
                "notionfile.requests_total",
                tags={"method": method, "status": "error"},
            )
            message = "Request network error"
        else:
            message = "Failed to release connection"
        log_event(
            self._log,
            logging.WARNING,
            message,
            op="request",
            stage=stage,
            method=method,
            url=url,
            error=redact_text(str(exc), self._token),
            error_type=type(exc).__name__,
        )
