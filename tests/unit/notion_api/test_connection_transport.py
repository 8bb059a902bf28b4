"""Tests for notionfile/notion_api/connection_transport.py

Requests go to a local recording HTTP server (the ``wire_server`` fixture).
"""

from __future__ import annotations

import io
import socket
from unittest.mock import MagicMock, patch

import pytest

from notionfile.errors import NotionfileNetworkError, NotionfileValidationError
from notionfile.notion_api import ConnectionTransport, HttpTransport


def make_transport(**kwargs) -> tuple[ConnectionTransport, MagicMock]:
    hooks = MagicMock()
    transport = ConnectionTransport(
        connect_timeout_ms=2000,
        read_timeout_ms=5000,
        request_logger=hooks,
        boundary_factory=lambda: "test-boundary",
        **kwargs,
    )
    return transport, hooks


class ShortStream(io.BytesIO):
    """Claims ten bytes from ``seek(0, SEEK_END)`` but holds fewer."""

    def seek(self, pos, whence=io.SEEK_SET):
        if whence == io.SEEK_END:
            return 10
        return super().seek(pos, whence)


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestRequests:
    def test_satisfies_protocol(self):
        assert isinstance(ConnectionTransport(), HttpTransport)

    def test_get_request_line_and_default_headers(self, wire_server):
        transport, hooks = make_transport()
        wire_server.responses.append(wire_server.canned(200, b'{"id": "u1"}'))

        result = transport.get(f"{wire_server.url}/v1/file_uploads/u1", query={"a": "1 2"})

        (request,) = wire_server.requests
        assert request.method == "GET"
        assert request.path == "/v1/file_uploads/u1?a=1%202"
        assert request.header("Connection") == "close"
        assert request.header("Accept") == "*/*"
        assert request.header("Accept-Encoding") == "identity"
        assert request.header("User-Agent").startswith("notionfile/")
        assert request.header("Host") == wire_server.url.split("//", 1)[1]
        assert request.body == b""
        assert result.status_code == 200
        assert result.body == '{"id": "u1"}'
        assert [c[0] for c in hooks.method_calls] == ["on_start", "on_success"]

    def test_accept_encoding_sent_once(self, wire_server):
        transport, _ = make_transport()
        transport.get(wire_server.url)
        headers = [k.lower() for k, _ in wire_server.requests[0].headers]
        assert headers.count("accept-encoding") == 1

    @pytest.mark.parametrize(("method", "verb"), [("post_text", "POST"), ("patch_text", "PATCH")])
    def test_text_body(self, wire_server, method, verb):
        transport, _ = make_transport()
        getattr(transport, method)(
            f"{wire_server.url}/v1/x",
            body='{"filename": "日本.txt"}',
            headers={"Content-Type": "application/json"},
        )
        (request,) = wire_server.requests
        assert request.method == verb
        assert request.body == '{"filename": "日本.txt"}'.encode()
        assert request.header("Content-Length") == str(len(request.body))
        assert request.header("Content-Type") == "application/json"

    def test_delete(self, wire_server):
        transport, _ = make_transport()
        transport.delete(f"{wire_server.url}/v1/x?keep=1", query={"tag": ["a", "b"]})
        (request,) = wire_server.requests
        assert request.method == "DELETE"
        assert request.path == "/v1/x?keep=1&tag=a&tag=b"

    def test_error_status_and_repeated_headers(self, wire_server):
        transport, _ = make_transport()
        wire_server.responses.append(
            wire_server.canned(
                409,
                b'{"code": "conflict_error"}',
                [("X-Trace", "a"), ("X-Trace", "b")],
            )
        )
        result = transport.post_text(wire_server.url, body="{}")
        assert result.status_code == 409
        assert result.body == '{"code": "conflict_error"}'
        assert result.headers["x-trace"] == ("a", "b")
        assert result.header("content-length") == str(len(result.body))


class TestMultipart:
    def test_sized_body_uses_content_length(self, wire_server):
        transport, _ = make_transport()
        stream = io.BytesIO(b"ABC")
        transport.post_multipart(
            f"{wire_server.url}/v1/file_uploads/u1/send",
            form_data={"file": stream, "mimeType": "text/plain"},
            headers={"Authorization": "Bearer t", "Content-Type": "text/html"},
        )
        (request,) = wire_server.requests
        assert request.body == (
            b"--test-boundary\r\n"
            b'Content-Disposition: form-data; name="file"; filename="file"\r\n'
            b"Content-Type: text/plain\r\n"
            b"\r\n"
            b"ABC\r\n"
            b"--test-boundary--\r\n"
        )
        assert request.header("Content-Type") == "multipart/form-data; boundary=test-boundary"
        assert request.header("Content-Length") == str(len(request.body))
        assert request.header("Transfer-Encoding") is None
        assert request.header("Authorization") == "Bearer t"
        assert stream.closed

    def test_large_file_streams_in_chunks(self, wire_server, tmp_path):
        payload = bytes(range(256)) * 1024
        path = tmp_path / "big.bin"
        path.write_bytes(payload)
        transport, _ = make_transport(chunk_size=4096)
        with open(path, "rb") as fh:
            transport.post_multipart(wire_server.url, form_data={"file": fh})
        body = wire_server.requests[0].body
        assert payload in body
        assert wire_server.requests[0].header("Content-Length") == str(len(body))

    def test_unsized_stream_is_chunked(self, wire_server):
        class Unsized:
            def __init__(self):
                self._data = io.BytesIO(b"xyz")

            def read(self, size=-1):
                return self._data.read(size)

            def close(self):
                pass

        transport, _ = make_transport()
        transport.post_multipart(wire_server.url, form_data={"file": Unsized()})
        (request,) = wire_server.requests
        assert request.header("Transfer-Encoding") == "chunked"
        assert request.header("Content-Length") is None
        assert b"\r\n\r\nxyz\r\n" in request.body


class TestFailures:
    def test_connection_refused(self):
        transport, hooks = make_transport()
        url = f"http://127.0.0.1:{_free_port()}/v1/x"
        with pytest.raises(NotionfileNetworkError) as exc_info:
            transport.get(url)
        assert isinstance(exc_info.value.cause, OSError)
        assert exc_info.value.context == {"method": "GET", "url": url}
        hooks.on_failure.assert_called_once()
        hooks.on_success.assert_not_called()

    def test_stream_closed_when_connect_fails(self):
        transport, _ = make_transport()
        stream = io.BytesIO(b"ABC")
        with pytest.raises(NotionfileNetworkError):
            transport.post_multipart(
                f"http://127.0.0.1:{_free_port()}", form_data={"file": stream}
            )
        assert stream.closed

    def test_stream_closed_when_boundary_rejected(self):
        transport = ConnectionTransport(
            request_logger=MagicMock(), boundary_factory=lambda: "x" * 100
        )
        stream = io.BytesIO(b"ABC")
        with pytest.raises(ValueError, match="boundary"):
            transport.post_multipart("http://127.0.0.1:9/v1/x", form_data={"file": stream})
        assert stream.closed

    def test_short_stream_raises_validation_error(self):
        transport, hooks = make_transport()
        stream = ShortStream(b"abc")
        # Connections queue in the backlog without being accepted.
        with socket.create_server(("127.0.0.1", 0)) as server:
            port = server.getsockname()[1]
            with pytest.raises(NotionfileValidationError, match="7 bytes short"):
                transport.post_multipart(
                    f"http://127.0.0.1:{port}/v1/x", form_data={"file": stream}
                )
        assert stream.closed
        hooks.on_failure.assert_called_once()
        hooks.on_success.assert_not_called()

    def test_unsupported_scheme(self):
        transport, _ = make_transport()
        with pytest.raises(ValueError, match="scheme"):
            transport.get("ftp://example.com/file")

    def test_read_timeout_applied_to_socket(self, wire_server):
        transport, _ = make_transport()
        with patch("http.client.HTTPConnection.connect", autospec=True) as connect:
            sock = MagicMock()
            sock.settimeout.side_effect = socket.timeout("stop here")

            def fake_connect(conn):
                conn.sock = sock

            connect.side_effect = fake_connect
            with pytest.raises(NotionfileNetworkError):
                transport.get(wire_server.url)
        sock.settimeout.assert_called_once_with(5.0)

    def test_release_failure_is_logged_not_raised(self):
        transport, hooks = make_transport()
        conn = MagicMock()
        response = conn.getresponse.return_value
        response.status = 200
        response.read.return_value = b"{}"
        response.getheaders.return_value = [("Content-Type", "application/json")]
        conn.close.side_effect = OSError("close failed")

        with patch.object(transport, "_open", return_value=conn):
            result = transport.get("http://127.0.0.1:9/v1/x")

        assert result.status_code == 200
        assert result.header("content-type") == "application/json"
        conn.request.assert_called_once()
        conn.close.assert_called_once()
        _, kwargs = hooks.on_failure.call_args
        assert kwargs["stage"] == "release"


class TestLifecycle:
    def test_close_and_context_manager(self):
        with ConnectionTransport() as transport:
            transport.close()

    def test_rejects_non_positive_timeouts(self):
        with pytest.raises(ValueError):
            ConnectionTransport(read_timeout_ms=-1)
