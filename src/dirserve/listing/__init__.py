"""
=============================================================================
LISTING MODULE
=============================================================================

Everything between "a path came in" and "here is the HTML":

    request path ──► paths.resolve() ──► os.lstat() ──► entries.classify()
                                                             │
                                  ┌──────────────────────────┘
                                  ▼
                     lister.list_directory() ──► render.IndexRenderer

None of these pieces know about HTTP. The request handler in
dirserve.handlers.index wires them to requests and responses.

=============================================================================
"""

from .entries import EntryType, FileEntry, build_file_entry, classify, format_size
from .lister import DirectoryListing, list_directory
from .paths import PathResolutionError, clean_path, is_clean, resolve
from .render import IndexRenderer, RenderContext

__all__ = [
    # Entries
    "EntryType",
    "FileEntry",
    "classify",
    "build_file_entry",
    "format_size",

    # Paths
    "clean_path",
    "resolve",
    "is_clean",
    "PathResolutionError",

    # Listing and rendering
    "DirectoryListing",
    "list_directory",
    "IndexRenderer",
    "RenderContext",
]
