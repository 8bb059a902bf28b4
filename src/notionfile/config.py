"""SDK configuration for notionfile.

:class:`NotionfileConfig` captures every tuneable knob of the SDK.  It is
constructed once by the caller and handed to :class:`NotionfileClient` (or
directly to a transport and :class:`FileAPI`); nothing in the SDK
reads process-wide defaults.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Literal

DEFAULT_BASE_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_CONNECT_TIMEOUT_MS = 3_000
DEFAULT_READ_TIMEOUT_MS = 30_000
DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class NotionfileConfig:
    """Complete configuration for a notionfile client.

    Parameters
    ----------
    token:
        Notion integration token.  Sent as a bearer token, never logged.
    notion_version:
        Value of the ``Notion-Version`` header sent with every request.
    base_url:
        API root URL.  Override for proxy or testing environments.
    http_client:
        Transport implementation built by :class:`NotionfileClient`.

        * ``"httpx"`` -- :class:`HttpxTransport` over ``httpx.Client``.
        * ``"connection"`` -- :class:`ConnectionTransport` over
          :mod:`http.client` connections.
    connect_timeout_ms:
        Connect timeout in milliseconds.
    read_timeout_ms:
        Read / request timeout in milliseconds.
    chunk_size:
        Number of bytes read from a file stream per write to the socket.
    metrics:
        Optional :class:`MetricsHook` backend.
    debug_dump_payload:
        Log (redacted) request headers and bodies at DEBUG level.
    """

    # ── Core ────────────────────────────────────────────────────────────
    token: str = ""

    notion_version: str = DEFAULT_NOTION_VERSION

    base_url: str = DEFAULT_BASE_URL

    # ── HTTP ────────────────────────────────────────────────────────────
    http_client: Literal["httpx", "connection"] = "httpx"

    connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS

    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS

    chunk_size: int = DEFAULT_CHUNK_SIZE

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        self.base_url = self.base_url.rstrip("/")
        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your API token, or target localhost for testing."
            )
        if self.http_client not in ("httpx", "connection"):
            raise ValueError(
                f"http_client must be 'httpx' or 'connection', got {self.http_client!r}"
            )
        if self.connect_timeout_ms <= 0:
            raise ValueError(f"connect_timeout_ms must be > 0, got {self.connect_timeout_ms}")
        if self.read_timeout_ms <= 0:
            raise ValueError(f"read_timeout_ms must be > 0, got {self.read_timeout_ms}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {self.chunk_size}")

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"NotionfileConfig({', '.join(parts)})"
