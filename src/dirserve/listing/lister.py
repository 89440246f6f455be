"""
=============================================================================
DIRECTORY LISTER
=============================================================================

Reads the immediate children of a directory and turns them into
FileEntry values for the index page.

=============================================================================
FAILURE MODEL
=============================================================================

A directory that cannot be read does NOT fail the request:

    ┌──────────────────────────┬─────────────────────────────────────────┐
    │ Situation                │ Result                                  │
    ├──────────────────────────┼─────────────────────────────────────────┤
    │ Readable, has children   │ entries=[...], degraded=False           │
    │ Readable, empty          │ entries=[],    degraded=False           │
    │ scandir() raised OSError │ entries=[],    degraded=True (logged)   │
    │ Child vanished mid-read  │ child skipped                           │
    │ Child is UNKNOWN type    │ child skipped                           │
    └──────────────────────────┴─────────────────────────────────────────┘

The page renders as empty either way; `degraded` lets callers and tests
tell the two apart.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .entries import EntryType, FileEntry, build_file_entry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryListing:
    """Result of listing one directory."""

    path: str
    entries: tuple[FileEntry, ...] = field(default_factory=tuple)
    error: Optional[OSError] = None

    @property
    def degraded(self) -> bool:
        """True if the read failed and the listing fell back to empty."""
        return self.error is not None

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def list_directory(path: str) -> DirectoryListing:
    """
    List the children of an absolute directory path.

    Symlinks are not followed: each child is lstat()ed so a link shows
    up as SYMLINK regardless of its target. Entries are sorted by name.

    Args:
        path: Absolute path of the directory.

    Returns:
        DirectoryListing, degraded if the directory could not be read.
    """
    try:
        with os.scandir(path) as it:
            names = sorted(entry.name for entry in it)
    except OSError as e:
        logger.error(f'Could not get directory list for "{path}": {e}')
        return DirectoryListing(path=path, error=e)

    entries = []
    for name in names:
        absolute_path = os.path.join(path, name)
        try:
            st = os.lstat(absolute_path)
        except OSError as e:
            logger.debug(f'Skipping "{absolute_path}": {e}')
            continue

        entry = build_file_entry(name, absolute_path, st)
        if entry.type == EntryType.UNKNOWN:
            continue  # only directories, regular files and symlinks are listed
        entries.append(entry)

    return DirectoryListing(path=path, entries=tuple(entries))
