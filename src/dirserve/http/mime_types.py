"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a served file to a Content-Type value.

    1. Known extension  → table lookup       (report.pdf → application/pdf)
    2. Unknown extension → sniff first bytes  (Makefile   → text/plain)
    3. Text types get "; charset=utf-8" appended

Sniffing is deliberately shallow: a handful of magic numbers, then
"valid UTF-8 without NUL bytes means text". Anything else is
application/octet-stream and the browser will offer a download.

=============================================================================
"""

from pathlib import Path
from typing import Optional


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".log": "text/plain",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".7z": "application/x-7z-compressed",
    ".wasm": "application/wasm",

    # Source code, served as text for viewing
    ".py": "text/x-python",
    ".c": "text/x-c",
    ".h": "text/x-c",
    ".go": "text/x-go",
    ".rs": "text/x-rust",
    ".sh": "text/x-shellscript",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".toml": "text/x-toml",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# How many leading bytes sniff_mime_type() looks at
SNIFF_LENGTH = 512

_MAGIC_NUMBERS = (
    (b"%PDF-", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b", "application/gzip"),
)

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "image/svg+xml",
}


def get_mime_type(path: str | Path, default: Optional[str] = None) -> Optional[str]:
    """
    Look up a MIME type by file extension.

    Returns `default` (None unless given) when the extension is unknown,
    so callers can decide whether to sniff.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("unknown.xyz") is None
        True
    """
    if isinstance(path, str):
        path = Path(path)
    return MIME_TYPES.get(path.suffix.lower(), default)


def sniff_mime_type(head: bytes) -> str:
    """Guess a MIME type from the first bytes of a file."""
    for magic, mime_type in _MAGIC_NUMBERS:
        if head.startswith(magic):
            return mime_type

    if b"\x00" in head:
        return DEFAULT_MIME_TYPE

    try:
        head.decode("utf-8")
    except UnicodeDecodeError as e:
        # A multi-byte character cut off at SNIFF_LENGTH is still text
        if e.start < len(head) - 3:
            return DEFAULT_MIME_TYPE
    return "text/plain"


def is_text_type(mime_type: str) -> bool:
    """True for text/* and the text-based application types."""
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(
    path: str | Path,
    head: Optional[bytes] = None,
    charset: str = "utf-8",
) -> str:
    """
    Full Content-Type header value for a file.

    Args:
        path: File path; the extension is tried first.
        head: Leading bytes of the file, used when the extension is unknown.
        charset: Charset parameter appended to text types.

    Examples:
        >>> get_content_type("page.html")
        'text/html; charset=utf-8'
        >>> get_content_type("image.png")
        'image/png'
        >>> get_content_type("README", head=b"hello")
        'text/plain; charset=utf-8'
    """
    mime_type = get_mime_type(path)
    if mime_type is None:
        mime_type = sniff_mime_type(head) if head is not None else DEFAULT_MIME_TYPE

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
