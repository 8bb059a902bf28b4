"""File extension to MIME type inference.

A fixed lookup table rather than :mod:`mimetypes`, so the result does not
depend on the platform's MIME database.  Unknown extensions yield ``None``;
the ``application/octet-stream`` fallback is applied only when a multipart
body is encoded.
"""

from __future__ import annotations

import os

_MIME_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "mp3": "audio/mpeg",
    "txt": "text/plain",
    "csv": "text/csv",
    "json": "application/json",
    "zip": "application/zip",
}


def guess_mime_type(filename: str | os.PathLike[str]) -> str | None:
    """Infer a MIME type from the extension of *filename*.

    Parameters
    ----------
    filename:
        A bare file name or a path.  Only the final extension is used and
        it is compared case-insensitively.

    Returns
    -------
    str | None
        The content type, or ``None`` when the extension is unknown or
        missing.
    """
    _, ext = os.path.splitext(os.fspath(filename))
    return _MIME_TYPES.get(ext[1:].lower()) if ext else None
