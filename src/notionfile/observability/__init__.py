"""Observability: structured logging, request hooks and metrics for notionfile."""

from __future__ import annotations

from .hooks import RequestLogger, StructuredRequestLogger
from .logger import StructuredFormatter, get_logger, log_event
from .metrics import MetricsHook, NoopMetricsHook

__all__ = [
    "MetricsHook",
    "NoopMetricsHook",
    "RequestLogger",
    "StructuredFormatter",
    "StructuredRequestLogger",
    "get_logger",
    "log_event",
]
