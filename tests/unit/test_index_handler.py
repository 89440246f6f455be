"""
Unit tests for DirectoryIndexHandler.
"""

import os

import pytest

from dirserve.handlers.index import DirectoryIndexHandler
from dirserve.http import HTTPStatus
from dirserve.http.request import parse_request
from dirserve.listing import IndexRenderer


@pytest.fixture
def handler(served_root) -> DirectoryIndexHandler:
    return DirectoryIndexHandler(str(served_root))


class TestDirectoryIndex:
    """Directory requests."""

    def test_root_listing(self, handler, make_request):
        response = handler.handle(make_request("/"))
        page = response.body.decode("utf-8")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert "index of /" in page
        assert 'href="/docs/"' in page
        assert 'href="/readme.txt"' in page
        assert "<td>10 B</td>" in page

    def test_subdirectory_links_carry_prefix(self, handler, make_request):
        page = handler.handle(make_request("/docs/")).body.decode("utf-8")

        assert "index of /docs/" in page
        assert 'href="/docs/notes.txt"' in page

    def test_subdirectory_without_trailing_slash(self, handler, make_request):
        page = handler.handle(make_request("/docs")).body.decode("utf-8")

        assert "index of /docs/" in page
        assert 'href="/docs/notes.txt"' in page

    def test_empty_directory(self, handler, make_request, served_root):
        (served_root / "empty").mkdir()

        response = handler.handle(make_request("/empty/"))

        assert response.status == HTTPStatus.OK
        assert "<tr>" not in response.body.decode("utf-8")

    def test_unreadable_directory_renders_empty(self, handler, make_request, served_root, monkeypatch):
        def refuse(path):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr("dirserve.listing.lister.os.scandir", refuse)

        response = handler.handle(make_request("/docs/"))

        assert response.status == HTTPStatus.OK
        assert "index of /docs/" in response.body.decode("utf-8")
        assert "<tr>" not in response.body.decode("utf-8")

    def test_render_failure_returns_partial_page(self, served_root, make_request, caplog):
        class Exploding(IndexRenderer):
            def render_row(self, base, entry):
                if entry.name == "readme.txt":
                    raise RuntimeError("boom")
                return super().render_row(base, entry)

        handler = DirectoryIndexHandler(str(served_root), renderer=Exploding())

        response = handler.handle(make_request("/"))
        page = response.body.decode("utf-8")

        assert response.status == HTTPStatus.OK
        assert 'href="/docs/"' in page
        assert "readme.txt" not in page
        assert "Error rendering index" in caplog.text


class TestFileRequests:
    """Regular file requests."""

    def test_serves_file(self, handler, make_request):
        response = handler.handle(make_request("/readme.txt"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"0123456789"

    def test_nested_file(self, handler, make_request):
        response = handler.handle(make_request("/docs/notes.txt"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"some notes\n"

    def test_dot_dot_is_normalised_before_check(self, handler, make_request):
        # "docs/../readme.txt" resolves inside the root
        response = handler.handle(make_request("/docs/../readme.txt"))

        assert response.status == HTTPStatus.OK

    def test_unclean_path_refused(self, handler, make_request, monkeypatch):
        monkeypatch.setattr("dirserve.handlers.index.is_clean", lambda path: False)

        response = handler.handle(make_request("/readme.txt"))

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.body == b"Requested path is not allowed\n"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_delegates_to_file_server(self, served_root, make_request):
        calls = []

        class RecordingFileServer:
            def serve(self, request, path):
                calls.append(path)
                return "sentinel"

        handler = DirectoryIndexHandler(str(served_root), file_server=RecordingFileServer())

        assert handler.handle(make_request("/docs/notes.txt")) == "sentinel"
        assert calls == [os.path.join(str(served_root), "docs", "notes.txt")]


class TestRefusals:
    """Requests answered with 403."""

    def test_nonexistent_path(self, handler, make_request):
        response = handler.handle(make_request("/missing.txt"))

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.body == b"could not stat requested path\n"

    def test_symlink_refused_even_to_regular_file(self, handler, make_request, served_root):
        (served_root / "link.txt").symlink_to(served_root / "readme.txt")

        response = handler.handle(make_request("/link.txt"))

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.body.decode("utf-8") == (
            'Not a directory or regular file, so not accepting requested path "link.txt"\n'
        )

    def test_symlink_still_listed(self, handler, make_request, served_root):
        (served_root / "link.txt").symlink_to(served_root / "readme.txt")

        page = handler.handle(make_request("/")).body.decode("utf-8")

        assert "link.txt →" in page

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs named pipes")
    def test_fifo_refused(self, handler, make_request, served_root):
        os.mkfifo(served_root / "pipe")

        response = handler.handle(make_request("/pipe"))

        assert response.status == HTTPStatus.FORBIDDEN
        assert b'requested path "pipe"' in response.body


class TestOutsideRoot:
    """Requests that try to climb out of the served root."""

    @pytest.fixture
    def secret(self, served_root):
        path = served_root.parent / "secret.txt"
        path.write_bytes(b"TOP SECRET\n")
        return path

    @pytest.mark.parametrize("target", [
        "/../secret.txt",
        "/docs/../../secret.txt",
        "/./../secret.txt",
    ])
    def test_parent_segments_stay_in_root(self, handler, make_request, secret, target):
        response = handler.handle(make_request(target))

        assert response.status == HTTPStatus.FORBIDDEN
        assert b"TOP SECRET" not in response.body

    def test_parent_of_root_lists_root(self, handler, make_request):
        page = handler.handle(make_request("/..")).body.decode("utf-8")

        assert "index of /<" in page
        assert 'href="/readme.txt"' in page

    def test_absolute_path_after_double_slash(self, handler, make_request, secret):
        response = handler.handle(make_request("/" + str(secret)))

        assert response.status == HTTPStatus.FORBIDDEN
        assert b"TOP SECRET" not in response.body

    def test_repeated_slashes_collapse(self, handler, make_request):
        response = handler.handle(make_request("//docs//notes.txt"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"some notes\n"

    def test_directory_base_is_cleaned(self, handler, make_request):
        page = handler.handle(make_request("/docs/./../docs//")).body.decode("utf-8")

        assert "index of /docs/" in page
        assert 'href="/docs/notes.txt"' in page

    @pytest.mark.parametrize("raw", [
        b"GET /../secret.txt HTTP/1.1\r\n\r\n",
        b"GET /%2e%2e/secret.txt HTTP/1.1\r\n\r\n",
        b"GET /docs/%2E%2E/%2e%2e/secret.txt HTTP/1.1\r\n\r\n",
    ])
    def test_parsed_traversal_targets(self, handler, secret, raw):
        response = handler.handle(parse_request(raw, ("127.0.0.1", 1)))

        assert response.status == HTTPStatus.FORBIDDEN
        assert b"TOP SECRET" not in response.body

    def test_parsed_absolute_target(self, handler, secret):
        raw = f"GET /{secret} HTTP/1.1\r\n\r\n".encode()

        response = handler.handle(parse_request(raw, ("127.0.0.1", 1)))

        assert response.status == HTTPStatus.FORBIDDEN
        assert b"TOP SECRET" not in response.body

    def test_null_byte_is_403(self, handler):
        response = handler.handle(parse_request(b"GET /a%00b HTTP/1.1\r\n\r\n", ("127.0.0.1", 1)))

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.body == b"could not stat requested path\n"


class TestIgnoredPaths:
    """Paths answered without touching the filesystem."""

    def test_favicon_is_empty_200(self, handler, make_request):
        response = handler.handle(make_request("/favicon.ico"))

        assert response.status == HTTPStatus.OK
        assert response.body == b""

    def test_favicon_never_touches_disk(self, handler, make_request, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("filesystem accessed")

        monkeypatch.setattr("dirserve.handlers.index.os.lstat", fail)
        monkeypatch.setattr("dirserve.handlers.index.resolve", fail)

        assert handler.handle(make_request("/favicon.ico")).status == HTTPStatus.OK

    def test_ignored_file_that_exists_is_still_ignored(self, served_root, make_request):
        (served_root / "favicon.ico").write_bytes(b"\x00\x00\x01\x00")

        response = DirectoryIndexHandler(str(served_root)).handle(make_request("/favicon.ico"))

        assert response.body == b""

    def test_custom_ignored_paths(self, served_root, make_request):
        handler = DirectoryIndexHandler(str(served_root), ignored_paths=["robots.txt"])

        assert handler.handle(make_request("/robots.txt")).body == b""
        assert handler.handle(make_request("/favicon.ico")).status == HTTPStatus.FORBIDDEN

    def test_request_is_logged(self, handler, make_request, caplog):
        caplog.set_level("INFO", logger="dirserve.handlers.index")

        handler.handle(make_request("/docs/notes.txt"))

        assert 'request "docs/notes.txt"' in caplog.text
