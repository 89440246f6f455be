"""
End-to-end tests: a real server on a loopback socket.
"""

import socket

import pytest


README_BYTES = b"0123456789"


def raw_exchange(port: int, payload: bytes) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=5.0) as sock:
        sock.sendall(payload)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestDirectoryServing:
    """Index pages and files over HTTP."""

    def test_root_index(self, test_server):
        status, headers, body = test_server.request("GET", "/")

        assert status == 200
        assert headers["Content-Type"] == "text/html; charset=utf-8"
        assert b'href="/docs/"' in body
        assert b'href="/readme.txt"' in body
        assert b"10 B" in body
        assert headers["Server"] == "dirserve/1.0"
        assert "X-Request-ID" in headers

    def test_file(self, test_server):
        status, headers, body = test_server.request("GET", "/readme.txt")

        assert status == 200
        assert body == README_BYTES
        assert headers["Content-Length"] == "10"
        assert headers["Accept-Ranges"] == "bytes"

    def test_nested_index_and_file(self, test_server):
        _, _, index = test_server.request("GET", "/docs/")
        status, _, body = test_server.request("GET", "/docs/notes.txt")

        assert b'href="/docs/notes.txt"' in index
        assert status == 200
        assert body == b"some notes\n"

    def test_percent_encoded_name(self, test_server, served_root):
        (served_root / "with space.txt").write_text("spaced")

        _, _, index = test_server.request("GET", "/")
        status, _, body = test_server.request("GET", "/with%20space.txt")

        assert b'href="/with%20space.txt"' in index
        assert status == 200
        assert body == b"spaced"

    def test_range_request(self, test_server):
        status, headers, body = test_server.request("GET", "/readme.txt", {"Range": "bytes=3-4"})

        assert status == 206
        assert body == b"34"
        assert headers["Content-Range"] == "bytes 3-4/10"

    def test_conditional_request(self, test_server):
        _, headers, _ = test_server.request("GET", "/readme.txt")

        status, _, body = test_server.request("GET", "/readme.txt", {"If-None-Match": headers["ETag"]})

        assert status == 304
        assert body == b""

    def test_head_has_no_body(self, test_server):
        status, headers, body = test_server.request("HEAD", "/readme.txt")

        assert status == 200
        assert headers["Content-Length"] == "10"
        assert body == b""


class TestRefusals:
    """403s and the ignored path."""

    def test_missing_path(self, test_server):
        status, headers, body = test_server.request("GET", "/nope")

        assert status == 403
        assert headers["Content-Type"] == "text/plain; charset=utf-8"
        assert body == b"could not stat requested path\n"

    def test_symlink(self, test_server, served_root):
        (served_root / "link").symlink_to(served_root / "readme.txt")

        status, _, body = test_server.request("GET", "/link")

        assert status == 403
        assert b'requested path "link"' in body

    @pytest.mark.parametrize("target", [
        b"/../secret.txt",
        b"/%2e%2e/secret.txt",
        b"/docs/%2E%2E/../secret.txt",
    ])
    def test_cannot_climb_out_of_root(self, test_server, served_root, target):
        (served_root.parent / "secret.txt").write_bytes(b"TOP SECRET\n")

        data = raw_exchange(
            test_server.port,
            b"GET " + target + b" HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 403 Forbidden\r\n")
        assert b"TOP SECRET" not in data

    def test_double_slash_absolute_path(self, test_server, served_root):
        secret = served_root.parent / "secret.txt"
        secret.write_bytes(b"TOP SECRET\n")

        data = raw_exchange(
            test_server.port,
            f"GET /{secret} HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n".encode(),
        )

        assert data.startswith(b"HTTP/1.1 403 Forbidden\r\n")
        assert b"TOP SECRET" not in data

    def test_null_byte(self, test_server):
        status, _, body = test_server.request("GET", "/a%00b")

        assert status == 403
        assert body == b"could not stat requested path\n"

    def test_favicon(self, test_server):
        status, _, body = test_server.request("GET", "/favicon.ico")

        assert status == 200
        assert body == b""


class TestProtocol:
    """Transport-level behaviour."""

    def test_keep_alive_serves_several_requests(self, test_server):
        import http.client

        conn = http.client.HTTPConnection("127.0.0.1", test_server.port, timeout=5.0)
        try:
            for path in ("/", "/readme.txt", "/docs/"):
                conn.request("GET", path)
                response = conn.getresponse()
                response.read()
                assert response.status == 200
                assert response.getheader("Connection") == "keep-alive"
        finally:
            conn.close()

    def test_connection_close_honoured(self, test_server):
        data = raw_exchange(
            test_server.port,
            b"GET /readme.txt HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Connection: close\r\n" in data
        assert data.endswith(README_BYTES)

    def test_malformed_request_line(self, test_server):
        data = raw_exchange(test_server.port, b"NONSENSE\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_unknown_method(self, test_server):
        data = raw_exchange(test_server.port, b"BREW / HTTP/1.1\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 405 Method Not Allowed\r\n")

    def test_unsupported_version(self, test_server):
        data = raw_exchange(test_server.port, b"GET / HTTP/3.0\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 505 HTTP Version Not Supported\r\n")

    @pytest.mark.parametrize("count", [8])
    def test_concurrent_clients(self, test_server, count):
        import concurrent.futures

        with concurrent.futures.ThreadPoolExecutor(max_workers=count) as pool:
            results = list(pool.map(
                lambda _: test_server.request("GET", "/readme.txt"),
                range(count),
            ))

        assert all(status == 200 and body == README_BYTES for status, _, body in results)
