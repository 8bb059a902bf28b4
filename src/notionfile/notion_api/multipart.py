"""Streaming ``multipart/form-data`` encoder.

Serialises an ordered mapping of field name to value into a
``multipart/form-data`` body::

    --{boundary}\\r\\n
    Content-Disposition: form-data; name="file"; filename="file"\\r\\n
    Content-Type: image/png\\r\\n
    \\r\\n
    <bytes>\\r\\n
    --{boundary}\\r\\n
    Content-Disposition: form-data; name="part_number"\\r\\n
    \\r\\n
    2\\r\\n
    --{boundary}--\\r\\n

Text values are encoded as UTF-8.  ``bytes`` values and readable binary
streams become file parts whose bytes are copied verbatim.  The reserved
``mimeType`` entry is metadata for the ``file`` part's ``Content-Type`` and
is never emitted as a part of its own.

:class:`MultipartEncoder` yields the body in chunks while reading the
source streams, so a file never has to fit in memory.  Each stream is read
once and closed when the encoder is exhausted or closed.  A stream that
yields text, or ends before its announced length, raises
:class:`~notionfile.errors.NotionfileValidationError` mid-body.
"""

from __future__ import annotations

import io
import os
import stat
import uuid
from collections.abc import Iterator, Mapping
from typing import IO, Any

from notionfile.config import DEFAULT_CHUNK_SIZE
from notionfile.errors import NotionfileValidationError

FILE_FIELD = "file"
MIME_TYPE_FIELD = "mimeType"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
BOUNDARY_PREFIX = "----formdata-notionfile-"

_CRLF = b"\r\n"


def new_boundary() -> str:
    """Return a fresh boundary: a fixed prefix plus 128 random bits."""
    return f"{BOUNDARY_PREFIX}{uuid.uuid4().hex}"


def multipart_content_type(boundary: str) -> str:
    return f"multipart/form-data; boundary={boundary}"


def _is_stream(value: Any) -> bool:
    return hasattr(value, "read")


def _remaining_length(stream: IO[bytes]) -> int | None:
    """Bytes left between the current position and the end, if knowable."""
    try:
        st = os.fstat(stream.fileno())
        if stat.S_ISREG(st.st_mode):
            return max(st.st_size - stream.tell(), 0)
    except (AttributeError, OSError, ValueError):
        pass
    try:
        pos = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(pos)
        return max(end - pos, 0)
    except (AttributeError, OSError, ValueError):
        return None


class MultipartEncoder:
    """Iterable ``multipart/form-data`` body.

    Parameters
    ----------
    form_data:
        Ordered field mapping.  Values are ``str`` (or anything with a
        ``str()``), ``bytes``, or a readable binary stream.
    boundary:
        Delimiter token.  Use :func:`new_boundary` for real requests.
    chunk_size:
        Maximum number of bytes read from a stream at a time.

    The encoder can be iterated once.  Use it as a context manager (or
    call :meth:`close`) so streams are closed even when the body is never
    fully sent.
    """

    def __init__(
        self,
        form_data: Mapping[str, Any],
        boundary: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._streams: list[IO[bytes]] = [
            value for value in form_data.values() if _is_stream(value)
        ]
        self._consumed = False
        self._closed = False
        if not boundary or len(boundary) > 70 or "\r" in boundary or "\n" in boundary:
            self.close()
            raise ValueError(f"invalid multipart boundary: {boundary!r}")
        if chunk_size <= 0:
            self.close()
            raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

        self.boundary = boundary
        self._chunk_size = chunk_size

        mime_type = form_data.get(MIME_TYPE_FIELD) or None
        # (head, payload, payload length or None)
        self._parts: list[tuple[bytes, Any, int | None]] = []
        for name, value in form_data.items():
            if name == MIME_TYPE_FIELD:
                continue
            self._parts.append(self._render_part(name, value, mime_type))

    @property
    def content_type(self) -> str:
        return multipart_content_type(self.boundary)

    @property
    def content_length(self) -> int | None:
        """Total body size, or ``None`` if a stream's size is unknown."""
        total = len(self._terminator())
        for head, _, length in self._parts:
            if length is None:
                return None
            total += len(head) + length + len(_CRLF)
        return total

    def _terminator(self) -> bytes:
        return f"--{self.boundary}--\r\n".encode()

    def _render_part(
        self, name: str, value: Any, mime_type: str | None
    ) -> tuple[bytes, Any, int | None]:
        lines = [f"--{self.boundary}"]
        if _is_stream(value) or isinstance(value, (bytes, bytearray)):
            content_type = (
                mime_type if name == FILE_FIELD and mime_type else DEFAULT_CONTENT_TYPE
            )
            lines.append(f'Content-Disposition: form-data; name="{name}"; filename="file"')
            lines.append(f"Content-Type: {content_type}")
            if _is_stream(value):
                payload: Any = value
                length = _remaining_length(value)
            else:
                payload = bytes(value)
                length = len(payload)
        else:
            lines.append(f'Content-Disposition: form-data; name="{name}"')
            payload = str(value).encode("utf-8")
            length = len(payload)
        head = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")
        return head, payload, length

    def __iter__(self) -> Iterator[bytes]:
        if self._consumed or self._closed:
            raise RuntimeError("multipart body can only be iterated once")
        self._consumed = True
        return self._generate()

    def _generate(self) -> Iterator[bytes]:
        try:
            for head, payload, length in self._parts:
                yield head
                if isinstance(payload, bytes):
                    if payload:
                        yield payload
                else:
                    yield from self._read_stream(payload, length)
                    payload.close()
                yield _CRLF
            yield self._terminator()
        finally:
            self.close()

    def _read_stream(self, stream: IO[bytes], length: int | None) -> Iterator[bytes]:
        remaining = length
        while remaining is None or remaining > 0:
            size = self._chunk_size if remaining is None else min(self._chunk_size, remaining)
            chunk = stream.read(size)
            if not chunk:
                break
            if not isinstance(chunk, (bytes, bytearray, memoryview)):
                raise NotionfileValidationError(
                    message=f"multipart stream must yield bytes, got {type(chunk).__name__}",
                    context={"field": "file", "value": type(chunk).__name__, "constraint": "binary"},
                )
            if remaining is not None:
                remaining -= len(chunk)
            yield bytes(chunk)
        if remaining:
            raise NotionfileValidationError(
                message=f"stream ended {remaining} bytes short of its announced length",
                context={"field": "file", "value": length, "constraint": "announced_length"},
            )

    def close(self) -> None:
        """Close every stream field.  Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for stream in self._streams:
            stream.close()

    def __enter__(self) -> MultipartEncoder:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def encode_multipart(
    form_data: Mapping[str, Any],
    boundary: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> bytes:
    """Encode *form_data* into a complete body held in memory.

    Intended for small bodies and tests; transports iterate a
    :class:`MultipartEncoder` instead.
    """
    with MultipartEncoder(form_data, boundary, chunk_size) as encoder:
        return b"".join(encoder)
