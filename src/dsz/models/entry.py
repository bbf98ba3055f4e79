"""Filesystem entries observed during a walk."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple

from dsz.core.errors import MetadataUnavailableError

log = logging.getLogger(__name__)


class DirSize(NamedTuple):
    """Aggregate size of a path: total bytes and number of regular files."""

    total_bytes: int
    file_count: int


class EntryKind(Enum):
    """File type of an entry, determined without following symlinks."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int) -> EntryKind:
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat.S_ISREG(mode):
            return cls.FILE
        return cls.OTHER


def _created_time(st: os.stat_result) -> float | None:
    """Return the creation time when the platform records one."""
    birthtime = getattr(st, "st_birthtime", None)
    if birthtime is not None:
        return birthtime
    if os.name == "nt":
        return st.st_ctime
    return None


@dataclass(slots=True)
class FileSystemEntry:
    """A single node seen while walking a tree.

    Metadata fields are ``None`` when they could not be read; ``readable``
    is cleared when the entry itself (or the listing of an expanded
    directory) failed.
    """

    path: Path
    kind: EntryKind
    depth: int = 0
    size: int | None = None
    modified: float | None = None
    created: float | None = None
    attributes: int | None = None
    readable: bool = True

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    def require(self, field: str) -> Any:
        """Return a metadata field or raise MetadataUnavailableError."""
        value = getattr(self, field)
        if value is None:
            raise MetadataUnavailableError(self.path, field)
        return value

    @classmethod
    def from_stat(cls, path: Path, st: os.stat_result, depth: int = 0) -> FileSystemEntry:
        return cls(
            path=path,
            kind=EntryKind.from_mode(st.st_mode),
            depth=depth,
            size=st.st_size,
            modified=st.st_mtime,
            created=_created_time(st),
            attributes=getattr(st, "st_file_attributes", None),
        )

    @classmethod
    def from_path(cls, path: Path, depth: int = 0) -> FileSystemEntry:
        """Build an entry from ``lstat``. Raises OSError if the path is unreadable."""
        return cls.from_stat(path, os.lstat(path), depth)

    @classmethod
    def from_dir_entry(cls, item: os.DirEntry, depth: int) -> FileSystemEntry:
        """Build an entry from a scandir item, degrading to an unreadable entry."""
        path = Path(item.path)
        try:
            return cls.from_stat(path, item.stat(follow_symlinks=False), depth)
        except OSError as e:
            log.debug("Cannot stat %s: %s", path, e)
        try:
            if item.is_symlink():
                kind = EntryKind.SYMLINK
            elif item.is_dir(follow_symlinks=False):
                kind = EntryKind.DIRECTORY
            elif item.is_file(follow_symlinks=False):
                kind = EntryKind.FILE
            else:
                kind = EntryKind.OTHER
        except OSError:
            kind = EntryKind.OTHER
        return cls(path=path, kind=kind, depth=depth, readable=False)
