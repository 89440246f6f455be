"""
=============================================================================
HANDLERS MODULE
=============================================================================

    index.py   - DirectoryIndexHandler: request path → index page, file or 403
    files.py   - FileServer: one regular file with ranges and validators

A handler is any callable taking an HTTPRequest and returning an
HTTPResponse; HTTPServer calls DirectoryIndexHandler.handle for every
request.

=============================================================================
"""

from .index import DirectoryIndexHandler, DEFAULT_IGNORED_PATHS
from .files import FileServer, RangeNotSatisfiable, parse_range

__all__ = [
    "DirectoryIndexHandler",
    "DEFAULT_IGNORED_PATHS",
    "FileServer",
    "RangeNotSatisfiable",
    "parse_range",
]
