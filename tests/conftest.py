"""Shared test fixtures for the notionfile test suite."""

from __future__ import annotations

import json
import math
import re
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import pytest

from notionfile.config import NotionfileConfig
from notionfile.models import HttpExchangeResult
from notionfile.notion_api.multipart import encode_multipart

BASE_URL = "https://api.notion.com/v1"
FAKE_BOUNDARY = "fake-boundary"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def json_result(status: int, payload: Any) -> HttpExchangeResult:
    return HttpExchangeResult(
        status_code=status,
        body=json.dumps(payload),
        headers={"content-type": ("application/json",)},
    )


def error_result(status: int, code: str, message: str) -> HttpExchangeResult:
    return json_result(
        status,
        {
            "object": "error",
            "status": status,
            "code": code,
            "message": message,
            "request_id": "req-1234",
        },
    )


def parse_multipart(body: bytes, boundary: str) -> dict[str, tuple[dict[str, str], bytes]]:
    """Split a multipart body into ``name -> (part headers, part bytes)``."""
    parts: dict[str, tuple[dict[str, str], bytes]] = {}
    for chunk in body.split(f"--{boundary}".encode())[1:]:
        if chunk.startswith(b"--"):
            break
        head, _, data = chunk[2:].partition(b"\r\n\r\n")
        headers = dict(
            line.split(": ", 1) for line in head.decode("utf-8").split("\r\n")
        )
        name = re.search(r'name="([^"]+)"', headers["Content-Disposition"]).group(1)
        parts[name] = (headers, data[:-2])
    return parts


# ---------------------------------------------------------------------------
# Transport doubles
# ---------------------------------------------------------------------------

class RecordingTransport:
    """Transport double that replays canned results and records each call.

    Multipart bodies are encoded with a fixed boundary (consuming and
    closing any stream) and kept under ``call["body"]``.
    """

    def __init__(self, *results: HttpExchangeResult) -> None:
        self.calls: list[dict[str, Any]] = []
        self._results = list(results)
        self.closed = False

    def _reply(self, method: str, url: str, **details: Any) -> HttpExchangeResult:
        self.calls.append({"method": method, "url": url, **details})
        if not self._results:
            raise AssertionError(f"unexpected {method} {url}")
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, url, query=None, headers=None):
        return self._reply("GET", url, query=query, headers=dict(headers or {}))

    def post_text(self, url, body, query=None, headers=None):
        return self._reply("POST", url, body=body, query=query, headers=dict(headers or {}))

    def patch_text(self, url, body, query=None, headers=None):
        return self._reply("PATCH", url, body=body, query=query, headers=dict(headers or {}))

    def delete(self, url, query=None, headers=None):
        return self._reply("DELETE", url, query=query, headers=dict(headers or {}))

    def post_multipart(self, url, form_data, query=None, headers=None):
        fields = {k: v for k, v in form_data.items() if not hasattr(v, "read")}
        body = encode_multipart(form_data, FAKE_BOUNDARY)
        return self._reply(
            "POST_MULTIPART",
            url,
            fields=fields,
            body=body,
            query=query,
            headers=dict(headers or {}),
        )

    def close(self):
        self.closed = True


class FakeNotionService:
    """In-memory stand-in for the Notion File Uploads endpoints.

    Implements create, single-part and part sends, complete (which checks
    that every acknowledged part is listed, in order) and retrieve.
    """

    def __init__(self, base_url: str = BASE_URL) -> None:
        self.base_url = base_url
        self.calls: list[dict[str, Any]] = []
        self.uploads: dict[str, dict[str, Any]] = {}
        self.parts: dict[str, dict[int, bytes]] = {}
        self.closed = False

    # -- transport surface -------------------------------------------------

    def get(self, url, query=None, headers=None):
        self.calls.append({"method": "GET", "url": url, "headers": dict(headers or {})})
        upload = self.uploads.get(url.rsplit("/", 1)[-1])
        if upload is None:
            return error_result(404, "object_not_found", "Could not find file upload")
        return json_result(200, upload)

    def post_text(self, url, body, query=None, headers=None):
        payload = json.loads(body)
        self.calls.append(
            {"method": "POST", "url": url, "json": payload, "headers": dict(headers or {})}
        )
        if url == f"{self.base_url}/file_uploads":
            return self._create(payload)
        if url.endswith("/complete"):
            return self._complete(url.split("/")[-2], payload)
        return error_result(400, "invalid_request_url", "Invalid request URL")

    def patch_text(self, url, body, query=None, headers=None):
        self.calls.append({"method": "PATCH", "url": url})
        return error_result(400, "invalid_request_url", "Invalid request URL")

    def delete(self, url, query=None, headers=None):
        self.calls.append({"method": "DELETE", "url": url})
        return error_result(400, "invalid_request_url", "Invalid request URL")

    def post_multipart(self, url, form_data, query=None, headers=None):
        body = encode_multipart(form_data, FAKE_BOUNDARY)
        parts = parse_multipart(body, FAKE_BOUNDARY)
        self.calls.append(
            {"method": "POST_MULTIPART", "url": url, "parts": parts, "headers": dict(headers or {})}
        )
        upload = self.uploads.get(url.split("/")[-2])
        if upload is None:
            return error_result(404, "object_not_found", "Could not find file upload")
        data = parts["file"][1]

        if "part_number" in parts:
            if upload["multipart_upload"] is None:
                return error_result(400, "validation_error", "Upload is not multi-part")
            number = int(parts["part_number"][1])
            self.parts[upload["id"]][number] = data
            return json_result(200, {"part_number": number, "etag": f'"etag-{number}"'})

        if upload["multipart_upload"] is not None:
            return error_result(400, "validation_error", "part_number is required")
        if len(data) != upload["file_size"]:
            return error_result(400, "validation_error", "File size mismatch")
        upload["status"] = "uploaded"
        return json_result(200, upload)

    def close(self):
        self.closed = True

    # -- endpoints ---------------------------------------------------------

    def _create(self, payload: dict[str, Any]) -> HttpExchangeResult:
        upload_id = f"upload-{len(self.uploads) + 1}"
        part_size = payload.get("part_size")
        upload: dict[str, Any] = {
            "object": "file_upload",
            "id": upload_id,
            "status": "pending",
            "filename": payload["filename"],
            "file_size": payload["file_size"],
            "mime_type": payload.get("mime_type"),
            "expiry_time": "2026-10-18T00:00:00.000Z",
            "upload_url": None,
            "multipart_upload": None,
        }
        if part_size:
            count = math.ceil(payload["file_size"] / part_size)
            upload["multipart_upload"] = {
                "upload_id": f"mp-{upload_id}",
                "part_size": part_size,
                "number_of_parts": count,
                "upload_urls": {
                    str(n): f"{self.base_url}/file_uploads/{upload_id}/send?part={n}"
                    for n in range(1, count + 1)
                },
            }
        else:
            upload["upload_url"] = f"{self.base_url}/file_uploads/{upload_id}/send"
        self.uploads[upload_id] = upload
        self.parts[upload_id] = {}
        return json_result(200, upload)

    def _complete(self, upload_id: str, payload: dict[str, Any]) -> HttpExchangeResult:
        upload = self.uploads.get(upload_id)
        if upload is None:
            return error_result(404, "object_not_found", "Could not find file upload")
        plan = upload["multipart_upload"]
        if plan is None:
            return error_result(400, "validation_error", "Upload is not multi-part")
        acked = sorted(self.parts[upload_id].items())
        expected = [{"part_number": n, "etag": f'"etag-{n}"'} for n, _ in acked]
        if len(acked) != plan["number_of_parts"] or payload.get("parts") != expected:
            return error_result(400, "validation_error", "Parts are incomplete or out of order")
        upload["status"] = "uploaded"
        return json_result(200, upload)


# ---------------------------------------------------------------------------
# Local HTTP server
# ---------------------------------------------------------------------------

@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: list[tuple[str, str]]
    body: bytes

    def header(self, name: str) -> str | None:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None


@dataclass
class CannedResponse:
    status: int = 200
    body: bytes = b"{}"
    headers: list[tuple[str, str]] = field(default_factory=list)


def _read_chunked(rfile) -> bytes:
    data = bytearray()
    while True:
        size = int(rfile.readline().split(b";")[0].strip(), 16)
        if size == 0:
            rfile.readline()
            return bytes(data)
        data += rfile.read(size)
        rfile.readline()


class _RecordingHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def _handle(self) -> None:
        if (self.headers.get("Transfer-Encoding") or "").lower() == "chunked":
            body = _read_chunked(self.rfile)
        else:
            body = self.rfile.read(int(self.headers.get("Content-Length") or 0))
        self.server.requests.append(
            RecordedRequest(self.command, self.path, list(self.headers.items()), body)
        )
        canned = self.server.responses.pop(0) if self.server.responses else CannedResponse()
        self.send_response(canned.status)
        for name, value in canned.headers:
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(canned.body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(canned.body)

    do_GET = do_POST = do_PATCH = do_DELETE = _handle

    def log_message(self, format, *args):  # noqa: A002
        pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> NotionfileConfig:
    """Default test configuration with a dummy token."""
    return NotionfileConfig(token="test-token-1234", base_url=BASE_URL)


@pytest.fixture
def fake_service() -> FakeNotionService:
    return FakeNotionService()


@pytest.fixture
def recording_transport():
    """Factory: ``recording_transport(result, ...)``."""
    return RecordingTransport


@pytest.fixture
def make_file(tmp_path):
    """Factory writing *content* to ``tmp_path / name``."""

    def _make(name: str = "report.pdf", content: bytes = b"%PDF-1.4 hello") -> Any:
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def multipart_parser():
    return parse_multipart


@pytest.fixture
def api_results():
    """``(json_result, error_result)`` builders."""
    return json_result, error_result


@pytest.fixture
def wire_server():
    """A local HTTP/1.1 server recording every request it receives.

    Queue responses with ``server.responses.append(CannedResponse(...))``;
    read requests from ``server.requests``.  ``server.url`` is its base URL.
    """
    server = ThreadingHTTPServer(("127.0.0.1", 0), _RecordingHandler)
    server.requests = []
    server.responses = []
    server.url = f"http://127.0.0.1:{server.server_address[1]}"
    server.canned = CannedResponse
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
