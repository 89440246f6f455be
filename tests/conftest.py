"""
pytest configuration and fixtures.
"""

import http.client
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dirserve import HTTPServer, ServerConfig
from dirserve.http import HTTPRequest


README_BYTES = b"0123456789"


@pytest.fixture
def served_root(tmp_path: Path) -> Path:
    """
    A small tree to serve:

        root/
        ├── docs/
        │   └── notes.txt
        └── readme.txt      (10 bytes)
    """
    root = tmp_path / "root"
    (root / "docs").mkdir(parents=True)
    (root / "docs" / "notes.txt").write_text("some notes\n")
    (root / "readme.txt").write_bytes(README_BYTES)
    return root


@pytest.fixture
def make_request():
    """Factory for HTTPRequest objects without going through the parser."""
    def _make(path: str, method: str = "GET", headers: Optional[dict] = None) -> HTTPRequest:
        return HTTPRequest(
            method=method,
            path=path,
            headers={k.lower(): v for k, v in (headers or {}).items()},
            client_address=("127.0.0.1", 54321),
        )
    return _make


@pytest.fixture
def config(served_root: Path) -> ServerConfig:
    """Test server configuration over served_root."""
    return ServerConfig(
        root_dir=str(served_root),
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"port": 0},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, method: str, path: str, headers: Optional[dict] = None):
        """
        Send one request on a fresh connection.

        Returns:
            (status, headers dict, body bytes)
        """
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5.0)
        try:
            conn.request(method, path, headers=headers or {})
            response = conn.getresponse()
            body = response.read()
            return response.status, dict(response.getheaders()), body
        finally:
            conn.close()


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server over served_root."""
    from dirserve.middleware import LoggingMiddleware

    server = HTTPServer(config)
    server.use(LoggingMiddleware())

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
