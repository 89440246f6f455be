"""
=============================================================================
FILESYSTEM ENTRIES
=============================================================================

Classification of filesystem objects and the value type the index page
is built from.

=============================================================================
ENTRY TYPES
=============================================================================

Every object on disk falls into exactly one of four buckets:

    ┌───────────────┬───────┬──────────────────────────────────────────────┐
    │ EntryType     │ Value │ Served as                                    │
    ├───────────────┼───────┼──────────────────────────────────────────────┤
    │ DIRECTORY     │   0   │ HTML index of its children                   │
    │ REGULAR       │   1   │ File bytes (via FileServer)                  │
    │ SYMLINK       │   2   │ Listed in indexes, 403 when requested        │
    │ UNKNOWN       │   3   │ Never listed, 403 when requested             │
    └───────────────┴───────┴──────────────────────────────────────────────┘

UNKNOWN covers devices, sockets and FIFOs. The mode bits are checked in
a fixed order (directory, regular, symlink) so a synthetic mode with
several type bits set still maps to a single answer.

=============================================================================
"""

import os
import stat
from dataclasses import dataclass
from enum import IntEnum
from typing import Union


class EntryType(IntEnum):
    """Closed classification of a filesystem object."""

    DIRECTORY = 0
    REGULAR = 1
    SYMLINK = 2
    UNKNOWN = 3


@dataclass(frozen=True)
class FileEntry:
    """
    One row of a directory index.

    Attributes:
        name: Base name only, as shown to the client.
        absolute_path: Resolved server-side path. Never sent to the client.
        type: The EntryType of the object.
        size_display: Human-readable size, meaningful for REGULAR only.
    """

    name: str
    absolute_path: str
    type: EntryType
    size_display: str = ""


def classify(st: Union[int, os.stat_result]) -> EntryType:
    """
    Classify a stat result (or a raw st_mode integer).

    Directory wins over regular file, which wins over symlink.
    """
    mode = st if isinstance(st, int) else st.st_mode

    if stat.S_ISDIR(mode):
        return EntryType.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryType.REGULAR
    if stat.S_ISLNK(mode):
        return EntryType.SYMLINK
    return EntryType.UNKNOWN


def build_file_entry(name: str, absolute_path: str, st: os.stat_result) -> FileEntry:
    """Build a FileEntry from a stat result."""
    return FileEntry(
        name=name,
        absolute_path=absolute_path,
        type=classify(st),
        size_display=format_size(st.st_size),
    )


# =============================================================================
# SIZE FORMATTING
# =============================================================================
#
# Decimal (SI) prefixes, one significant decimal below 10 units:
#
#     9      → "9 B"
#     10     → "10 B"
#     1234   → "1.2 kB"
#     12345  → "12 kB"
#     5.5e9  → "5.5 GB"
#
# =============================================================================

_SIZE_UNITS = ("B", "kB", "MB", "GB", "TB", "PB", "EB")
_SIZE_BASE = 1000


def format_size(size: int) -> str:
    """Format a byte count using SI units."""
    if size < 10:
        return f"{size} B"

    exponent = 0
    value = float(size)
    while value >= _SIZE_BASE and exponent < len(_SIZE_UNITS) - 1:
        value /= _SIZE_BASE
        exponent += 1

    # Round half up to one decimal place
    value = int(value * 10 + 0.5) / 10
    if value >= 10:
        return f"{value:.0f} {_SIZE_UNITS[exponent]}"
    return f"{value:.1f} {_SIZE_UNITS[exponent]}"
