"""notionfile.notion_api -- HTTP transports and the File Uploads API.

This sub-package provides:

* :mod:`.transport` -- The :class:`HttpTransport` protocol and shared URL /
  header helpers.
* :mod:`.connection_transport` -- Transport over :mod:`http.client`.
* :mod:`.httpx_transport` -- Transport over ``httpx``.
* :mod:`.multipart` -- Streaming ``multipart/form-data`` encoder.
* :mod:`.files` -- The create / send / complete upload lifecycle.
"""

from __future__ import annotations

from .connection_transport import ConnectionTransport
from .files import FileAPI
from .httpx_transport import HttpxTransport
from .multipart import MultipartEncoder, encode_multipart, new_boundary
from .transport import HttpTransport, build_full_url, build_query_string

__all__ = [
    "ConnectionTransport",
    "FileAPI",
    "HttpTransport",
    "HttpxTransport",
    "MultipartEncoder",
    "build_full_url",
    "build_query_string",
    "encode_multipart",
    "new_boundary",
]
