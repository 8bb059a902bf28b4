"""Metrics hook protocol and no-op default implementation.

notionfile emits counters and timings for every HTTP exchange and for each
upload phase.  By default a :class:`NoopMetricsHook` is used.  Supply any
object satisfying :class:`MetricsHook` through
``NotionfileConfig(metrics=...)`` to route data points to StatsD,
Prometheus, Datadog, etc.

Emitted metric names:

* ``notionfile.requests_total``         -- counter, tags ``method``, ``status``
* ``notionfile.request_duration_ms``    -- timing, tags ``method``, ``status``
* ``notionfile.upload_success_total``   -- counter, tag ``phase``
* ``notionfile.upload_failure_total``   -- counter, tags ``phase``, ``kind``
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy."""

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment counter *name* by *value*."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration of *ms* milliseconds under *name*."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
