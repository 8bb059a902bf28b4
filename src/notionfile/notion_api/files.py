"""File upload API for the Notion API.

:class:`FileAPI` drives the Notion file-upload lifecycle over any
:class:`~notionfile.notion_api.transport.HttpTransport`:

1. **Create** -- register an upload intent (status ``pending``).
2. **Send** -- stream the bytes as ``multipart/form-data``.  A single-part
   send returns the finished upload (status ``uploaded``); a part send
   (``part_number`` given) returns a part acknowledgement.
3. **Complete** -- finalise a multi-part upload with the acknowledged
   ``{part_number, etag}`` list.

:meth:`FileAPI.upload_file` runs create + single-part send for one local
file.  Nothing is retried: every failure reaches the caller, and a failed
phase does not undo an earlier one.

Local preconditions (missing, empty or unreadable file, blank filename
override, bad part number) raise :class:`NotionfileValidationError` before
any request is sent.  A stream that fails mid-body raises the same error.
A non-200 response raises :class:`NotionfileAPIError`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import IO, TypeVar, Union, cast

from notionfile.codec import JsonCodec
from notionfile.config import NotionfileConfig
from notionfile.errors import NotionfileAPIError, NotionfileError, NotionfileValidationError
from notionfile.mime import guess_mime_type
from notionfile.models import (
    CompleteFileUploadRequest,
    CreateFileUploadRequest,
    FileUpload,
    FileUploadPart,
    FileUploadPartResponse,
    HttpExchangeResult,
    SendFileUploadRequest,
    UploadOutcome,
    as_form_fields,
)
from notionfile.observability import MetricsHook, NoopMetricsHook, get_logger, log_event

from .multipart import FILE_FIELD, MIME_TYPE_FIELD
from .transport import HttpTransport

log = get_logger("notionfile.files")

T = TypeVar("T")

FileSource = Union[str, "os.PathLike[str]", IO[bytes]]


def _is_path(file: FileSource) -> bool:
    return isinstance(file, (str, os.PathLike))


class FileAPI:
    """Synchronous wrapper for the Notion File Uploads API.

    Parameters
    ----------
    transport:
        Any :class:`HttpTransport` implementation.
    config:
        Supplies ``base_url``, ``token``, ``notion_version`` and ``metrics``.
    codec:
        Body (de)serialiser.  Defaults to :class:`JsonCodec`.
    """

    def __init__(
        self,
        transport: HttpTransport,
        config: NotionfileConfig,
        codec: JsonCodec | None = None,
    ) -> None:
        self._transport = transport
        self._config = config
        self._codec = codec or JsonCodec()
        self._metrics: MetricsHook = (
            config.metrics if config.metrics is not None else NoopMetricsHook()
        )

    # -- create ------------------------------------------------------------

    def create_file_upload(
        self,
        filename: str,
        file_size: int,
        mime_type: str | None = None,
        part_size: int | None = None,
    ) -> FileUpload:
        """Register a new upload intent.

        Parameters
        ----------
        filename:
            Name the file will have in Notion.
        file_size:
            Size in bytes; must be positive.
        mime_type:
            Content type.  Inferred from *filename* when omitted; left out
            of the request when it cannot be inferred.
        part_size:
            Optional part-size hint for multi-part uploads.

        Returns
        -------
        FileUpload
            The new upload, in status ``pending``.
        """
        if not filename or not filename.strip():
            raise NotionfileValidationError(
                message="Filename must not be blank",
                context={"field": "filename", "value": filename, "constraint": "not_blank"},
            )
        if file_size <= 0:
            raise NotionfileValidationError(
                message=f"File size must be positive, got {file_size}",
                context={"field": "file_size", "value": file_size, "constraint": "> 0"},
            )
        if part_size is not None and part_size <= 0:
            raise NotionfileValidationError(
                message=f"Part size must be positive, got {part_size}",
                context={"field": "part_size", "value": part_size, "constraint": "> 0"},
            )
        return self.create_file_upload_request(
            CreateFileUploadRequest(
                filename=filename,
                file_size=file_size,
                mime_type=mime_type or guess_mime_type(filename),
                part_size=part_size,
            )
        )

    def create_file_upload_request(self, request: CreateFileUploadRequest) -> FileUpload:
        """Send a prepared :class:`CreateFileUploadRequest` as-is."""
        response = self._run(
            "create",
            lambda: self._transport.post_text(
                self._url("file_uploads"),
                body=self._codec.to_json(request),
                headers=self._headers(json_body=True),
            ),
        )
        upload = self._parse("create", response, self._codec.to_upload_intent)
        log_event(
            log,
            logging.INFO,
            "File upload created",
            op="create_file_upload",
            upload_id=upload.id,
            status=upload.status.value,
            multi_part=upload.is_multi_part,
        )
        return upload

    # -- send --------------------------------------------------------------

    def send_file_upload(
        self,
        file_upload_id: str,
        file: FileSource,
        part_number: int | None = None,
        mime_type: str | None = None,
    ) -> FileUpload | FileUploadPartResponse:
        """Send file bytes for an upload.

        Parameters
        ----------
        file_upload_id:
            ID returned by :meth:`create_file_upload`.
        file:
            A path, or a readable binary stream.  A stream is consumed and
            closed by this call.
        part_number:
            1-based part number for multi-part uploads.  Omit for a
            single-part upload.
        mime_type:
            Content type of the ``file`` part.  Inferred from the path (or
            the stream's ``name``) when omitted.

        Returns
        -------
        FileUpload | FileUploadPartResponse
            The finished upload for a single-part send, or the part
            acknowledgement when *part_number* is given.
        """
        self._check_upload_id(file_upload_id)
        if part_number is not None and part_number < 1:
            raise NotionfileValidationError(
                message=f"Part number must be >= 1, got {part_number}",
                context={"field": "part_number", "value": part_number, "constraint": ">= 1"},
            )

        if _is_path(file):
            path = self._validate_file(file)
            mime_type = mime_type or guess_mime_type(path.name)
            stream: IO[bytes] = self._open_file(path)
        else:
            stream = file
            name = getattr(stream, "name", None)
            if mime_type is None and isinstance(name, str):
                mime_type = guess_mime_type(name)

        return self.send_file_upload_request(
            file_upload_id,
            SendFileUploadRequest(file=stream, part_number=part_number, mime_type=mime_type),
        )

    def send_file_upload_request(
        self,
        file_upload_id: str,
        request: SendFileUploadRequest,
    ) -> FileUpload | FileUploadPartResponse:
        """Send a prepared :class:`SendFileUploadRequest`.

        The request's stream is closed by the transport.
        """
        form_data = as_form_fields({
            FILE_FIELD: request.file,
            "part_number": None if request.part_number is None else str(request.part_number),
            MIME_TYPE_FIELD: request.mime_type or None,
        })
        try:
            response = self._run(
                "send",
                lambda: self._transport.post_multipart(
                    self._url(f"file_uploads/{file_upload_id}/send"),
                    form_data=form_data,
                    headers=self._headers(json_body=False),
                ),
            )
        finally:
            request.file.close()
        if request.part_number is not None:
            ack = self._parse("send", response, self._codec.to_part_ack)
            log_event(
                log,
                logging.INFO,
                "File upload part sent",
                op="send_file_upload",
                upload_id=file_upload_id,
                part_number=ack.part_number,
            )
            return ack

        upload = self._parse("send", response, self._codec.to_upload_intent)
        log_event(
            log,
            logging.INFO,
            "File upload sent",
            op="send_file_upload",
            upload_id=upload.id,
            status=upload.status.value,
        )
        return upload

    # -- complete / retrieve -----------------------------------------------

    def complete_file_upload(
        self,
        file_upload_id: str,
        parts: Iterable[FileUploadPart | FileUploadPartResponse],
    ) -> FileUpload:
        """Finalise a multi-part upload.

        Parameters
        ----------
        file_upload_id:
            ID of the multi-part upload.
        parts:
            Acknowledgements of every sent part, in part order.  The
            service rejects incomplete or out-of-order lists.

        Returns
        -------
        FileUpload
            The upload, in status ``uploaded``.
        """
        self._check_upload_id(file_upload_id)
        request = CompleteFileUploadRequest(
            parts=[
                p.to_part() if isinstance(p, FileUploadPartResponse) else p for p in parts
            ]
        )
        response = self._run(
            "complete",
            lambda: self._transport.post_text(
                self._url(f"file_uploads/{file_upload_id}/complete"),
                body=self._codec.to_json(request),
                headers=self._headers(json_body=True),
            ),
        )
        upload = self._parse("complete", response, self._codec.to_upload_intent)
        log_event(
            log,
            logging.INFO,
            "File upload completed",
            op="complete_file_upload",
            upload_id=upload.id,
            status=upload.status.value,
            parts=len(request.parts),
        )
        return upload

    def retrieve_file_upload(self, file_upload_id: str) -> FileUpload:
        """Fetch the current state of an upload."""
        self._check_upload_id(file_upload_id)
        response = self._run(
            "retrieve",
            lambda: self._transport.get(
                self._url(f"file_uploads/{file_upload_id}"),
                headers=self._headers(json_body=False),
            ),
        )
        return self._parse("retrieve", response, self._codec.to_upload_intent)

    # -- convenience -------------------------------------------------------

    def upload_file(
        self,
        path: str | os.PathLike[str],
        filename: str | None = None,
        mime_type: str | None = None,
    ) -> FileUpload:
        """Upload one local file in a single part.

        Creates the upload and sends the bytes; the send response is the
        finished upload, so no complete call is made.

        Parameters
        ----------
        path:
            File to upload.  Must exist and be non-empty.
        filename:
            Name to register instead of the file's own name.  Must not be
            blank.
        mime_type:
            Content type.  Inferred from the extension of *path* when
            omitted, then from *filename*.

        Returns
        -------
        FileUpload
            The upload as returned by the send call (status ``uploaded``).
        """
        if filename is not None and not filename.strip():
            raise NotionfileValidationError(
                message="Filename must not be blank",
                context={"field": "filename", "value": filename, "constraint": "not_blank"},
            )
        file_path = self._validate_file(path)
        name = filename if filename is not None else file_path.name
        mime_type = mime_type or guess_mime_type(file_path.name) or guess_mime_type(name)

        with self._open_file(file_path) as stream:
            upload = self.create_file_upload(
                filename=name,
                file_size=file_path.stat().st_size,
                mime_type=mime_type,
            )
            # Same mime_type at create and send, even when it is None.
            result = self.send_file_upload_request(
                upload.id,
                SendFileUploadRequest(file=stream, mime_type=mime_type),
            )
        # No part_number was sent, so the response is the upload itself.
        return cast(FileUpload, result)

    def try_upload_file(
        self,
        path: str | os.PathLike[str],
        filename: str | None = None,
        mime_type: str | None = None,
    ) -> UploadOutcome:
        """Like :meth:`upload_file`, but return an :class:`UploadOutcome`
        instead of raising SDK errors."""
        try:
            return UploadOutcome(value=self.upload_file(path, filename, mime_type))
        except NotionfileError as exc:
            return UploadOutcome(error=exc)

    # -- internals ---------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._config.base_url}/{path}"

    def _headers(self, json_body: bool) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._config.token}",
            "Notion-Version": self._config.notion_version,
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _check_upload_id(self, file_upload_id: str) -> None:
        if not file_upload_id or not file_upload_id.strip():
            raise NotionfileValidationError(
                message="File upload ID must not be blank",
                context={"field": "file_upload_id", "value": file_upload_id, "constraint": "not_blank"},
            )

    def _validate_file(self, path: str | os.PathLike[str]) -> Path:
        file_path = Path(path)
        if not file_path.is_file():
            raise NotionfileValidationError(
                message=f"File does not exist: {file_path.absolute()}",
                context={"field": "path", "value": str(file_path), "constraint": "exists"},
            )
        if file_path.stat().st_size == 0:
            raise NotionfileValidationError(
                message=f"File is empty: {file_path.absolute()}",
                context={"field": "path", "value": str(file_path), "constraint": "non_empty"},
            )
        return file_path

    def _open_file(self, file_path: Path) -> IO[bytes]:
        try:
            return open(file_path, "rb")
        except OSError as exc:
            raise NotionfileValidationError(
                message=f"File is not readable: {file_path.absolute()}",
                context={"field": "path", "value": str(file_path), "constraint": "readable"},
                cause=exc,
            ) from exc

    def _run(self, phase: str, call: Callable[[], HttpExchangeResult]) -> HttpExchangeResult:
        try:
            return call()
        except NotionfileError as exc:
            self._record_failure(phase, exc)
            raise

    def _parse(
        self,
        phase: str,
        response: HttpExchangeResult,
        decode: Callable[[str], T],
    ) -> T:
        try:
            if response.status_code != 200:
                raise NotionfileAPIError(
                    error=self._codec.to_api_error(response.body, response.status_code),
                    response=response,
                )
            value = decode(response.body)
        except NotionfileError as exc:
            self._record_failure(phase, exc)
            log_event(
                log,
                logging.WARNING,
                "File upload request failed",
                op=phase,
                status_code=response.status_code,
                error_code=exc.context.get("notion_code", exc.code),
                error=exc.message,
            )
            raise
        self._metrics.increment("notionfile.upload_success_total", tags={"phase": phase})
        return value

    def _record_failure(self, phase: str, exc: NotionfileError) -> None:
        self._metrics.increment(
            "notionfile.upload_failure_total",
            tags={"phase": phase, "kind": exc.kind.value},
        )
