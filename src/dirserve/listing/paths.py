"""
Request path resolution.

    request path          root                   absolute path
    ────────────          ────                   ─────────────
    ""                    /srv/files      →      /srv/files
    "docs/a.txt"          /srv/files      →      /srv/files/docs/a.txt
    "docs/../b.txt"       /srv/files      →      /srv/files/b.txt
    "../secret.txt"       /srv/files      →      /srv/files/secret.txt
    "/etc/passwd"         /srv/files      →      /srv/files/etc/passwd

Request paths are cleaned in URL space before they touch the filesystem:
repeated slashes collapse and "." / ".." segments are applied as if the
path were rooted at "/", so ".." can never climb above the served root.
resolve() then checks that the joined path is still under the root.

is_clean() is a further literal substring test for "../" on the final
path. It does not decode percent-escapes or know about other separators.
"""

import os
import posixpath


class PathResolutionError(ValueError):
    """Raised when a request path cannot be mapped under the served root."""


def clean_path(request_path: str) -> str:
    """
    Normalise a request path without touching the filesystem.

    Returns:
        The path relative to the served root, with no leading or trailing
        "/" and no "." or ".." segments. The root itself is "".

    Examples:
        >>> clean_path("docs//a.txt")
        'docs/a.txt'
        >>> clean_path("../../etc/passwd")
        'etc/passwd'
        >>> clean_path("docs/")
        'docs'
    """
    # normpath keeps a leading "//", so strip every leading slash afterwards
    return posixpath.normpath("/" + request_path).lstrip("/")


def resolve(request_path: str, root: str) -> str:
    """
    Map a request-relative path onto the served root.

    Args:
        request_path: Request target with the leading "/" stripped.
        root: Absolute path of the served directory.

    Returns:
        Normalised absolute filesystem path under root.

    Raises:
        PathResolutionError: If the path contains a NUL byte or would
                             land outside root.
    """
    if "\x00" in request_path:
        raise PathResolutionError(f"Embedded null byte in {request_path!r}")

    root = os.path.abspath(root)
    relative = clean_path(request_path)
    abs_path = os.path.abspath(os.path.join(root, relative)) if relative else root

    if os.path.commonpath([root, abs_path]) != root:
        raise PathResolutionError(f"{request_path!r} is outside {root}")
    return abs_path


def is_clean(path: str) -> bool:
    """Return False if the path contains a literal parent-directory marker."""
    return "../" not in path
