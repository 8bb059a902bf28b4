"""Synchronous notionfile client.

:class:`NotionfileClient` wires a :class:`NotionfileConfig` to one
transport implementation and exposes the File Uploads API::

    from notionfile import NotionfileClient

    with NotionfileClient(token="secret_xxx") as client:
        upload = client.upload_file("report.pdf")
        print(upload.id, upload.status)
"""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from notionfile.config import NotionfileConfig
from notionfile.models import FileUpload, UploadOutcome
from notionfile.notion_api import ConnectionTransport, FileAPI, HttpTransport, HttpxTransport
from notionfile.observability import StructuredRequestLogger


def build_transport(config: NotionfileConfig) -> HttpTransport:
    """Construct the transport selected by ``config.http_client``."""
    request_logger = StructuredRequestLogger(
        token=config.token,
        dump_payload=config.debug_dump_payload,
        metrics=config.metrics,
    )
    if config.http_client == "connection":
        return ConnectionTransport(
            connect_timeout_ms=config.connect_timeout_ms,
            read_timeout_ms=config.read_timeout_ms,
            request_logger=request_logger,
            chunk_size=config.chunk_size,
        )
    return HttpxTransport(
        connect_timeout_ms=config.connect_timeout_ms,
        read_timeout_ms=config.read_timeout_ms,
        request_logger=request_logger,
        chunk_size=config.chunk_size,
    )


class NotionfileClient:
    """Entry point of the SDK.

    Parameters
    ----------
    token:
        Notion integration token.  Overrides ``config.token`` when both
        are given.
    config:
        Full configuration.  Built from *token* and *overrides* when
        omitted.
    transport:
        Pre-built transport.  When given, the client does not close it.
    **overrides:
        Any :class:`NotionfileConfig` field.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        config: NotionfileConfig | None = None,
        transport: HttpTransport | None = None,
        **overrides: Any,
    ) -> None:
        if token is not None:
            overrides["token"] = token
        if config is None:
            config = NotionfileConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)
        self._config = config
        self._owns_transport = transport is None
        self._transport = transport if transport is not None else build_transport(config)
        self.files = FileAPI(self._transport, config)

    @property
    def config(self) -> NotionfileConfig:
        return self._config

    def upload_file(
        self,
        path: str | os.PathLike[str],
        filename: str | None = None,
        mime_type: str | None = None,
    ) -> FileUpload:
        """Upload one local file.  See :meth:`FileAPI.upload_file`."""
        return self.files.upload_file(path, filename=filename, mime_type=mime_type)

    def try_upload_file(
        self,
        path: str | os.PathLike[str],
        filename: str | None = None,
        mime_type: str | None = None,
    ) -> UploadOutcome:
        """Upload one local file without raising.  See :meth:`FileAPI.try_upload_file`."""
        return self.files.try_upload_file(path, filename=filename, mime_type=mime_type)

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self._transport.close()

    def __enter__(self) -> NotionfileClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
