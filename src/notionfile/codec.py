"""JSON (de)serialisation between wire bodies and notionfile models.

:class:`JsonCodec` is the narrow interface the upload pipeline consumes:
request dataclasses go out through :meth:`JsonCodec.to_json`, and response
bodies come back through :meth:`to_upload_intent`, :meth:`to_part_ack` and
:meth:`to_api_error`.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any

from notionfile.errors import NotionfileCodecError
from notionfile.models import (
    ApiErrorBody,
    FileUpload,
    FileUploadPartResponse,
    FileUploadStatus,
    MultipartUpload,
)


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(item) for item in value]
    return value


class JsonCodec:
    """Stdlib-``json`` codec for the File Uploads API."""

    def to_json(self, request: Any) -> str:
        """Serialise a request dataclass; ``None`` fields are omitted."""
        payload = dataclasses.asdict(request) if dataclasses.is_dataclass(request) else request
        return json.dumps(_drop_none(payload), ensure_ascii=False)

    def _load_object(self, body: str, target: str) -> dict[str, Any]:
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise NotionfileCodecError(
                message=f"Response body is not valid JSON for {target}",
                context={"target": target, "body": body[:500]},
                cause=exc,
            ) from exc
        if not isinstance(data, dict):
            raise NotionfileCodecError(
                message=f"Expected a JSON object for {target}",
                context={"target": target, "body": body[:500]},
            )
        return data

    def to_upload_intent(self, body: str) -> FileUpload:
        data = self._load_object(body, "FileUpload")
        try:
            multipart = data.get("multipart_upload")
            return FileUpload(
                id=data["id"],
                status=FileUploadStatus(data["status"]),
                filename=data["filename"],
                file_size=int(data["file_size"]),
                mime_type=data.get("mime_type") or data.get("content_type"),
                expiry_time=data.get("expiry_time"),
                upload_url=data.get("upload_url"),
                multipart_upload=(
                    MultipartUpload(
                        upload_id=multipart["upload_id"],
                        part_size=int(multipart["part_size"]),
                        number_of_parts=int(multipart["number_of_parts"]),
                        upload_urls={
                            str(k): v for k, v in (multipart.get("upload_urls") or {}).items()
                        },
                    )
                    if multipart
                    else None
                ),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise NotionfileCodecError(
                message=f"Malformed FileUpload body: {exc}",
                context={"target": "FileUpload", "body": body[:500]},
                cause=exc,
            ) from exc

    def to_part_ack(self, body: str) -> FileUploadPartResponse:
        data = self._load_object(body, "FileUploadPartResponse")
        try:
            return FileUploadPartResponse(
                part_number=int(data["part_number"]),
                etag=str(data["etag"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise NotionfileCodecError(
                message=f"Malformed part acknowledgement: {exc}",
                context={"target": "FileUploadPartResponse", "body": body[:500]},
                cause=exc,
            ) from exc

    def to_api_error(self, body: str, status_code: int) -> ApiErrorBody:
        """Parse an error body.  Never raises: unreadable bodies degrade
        to an ``ApiErrorBody`` carrying the raw text."""
        try:
            data = json.loads(body)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return ApiErrorBody(
                status=status_code,
                code="unknown_error",
                message=body[:500] or f"HTTP {status_code}",
            )
        status = data.get("status")
        return ApiErrorBody(
            status=status if isinstance(status, int) else status_code,
            code=str(data.get("code") or "unknown_error"),
            message=str(data.get("message") or f"HTTP {status_code}"),
            request_id=data.get("request_id"),
        )
