"""Sibling ordering for the tree view."""

from __future__ import annotations

import logging
from functools import cmp_to_key
from typing import Any, Iterable

from dsz.core.errors import DszError
from dsz.core.size_cache import SizeCache
from dsz.models.entry import FileSystemEntry
from dsz.models.options import SortMode

log = logging.getLogger(__name__)


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


class EntryComparator:
    """Orders sibling entries: directories first, then by ``sort_mode``.

    NAME sorts ascending; SIZE, MODIFIED and CREATED sort descending
    (largest or newest first). ``reverse`` flips only the secondary key.
    Entries missing the secondary key go after every entry that has it,
    whether or not the order is reversed, and ties fall back to the name.
    Directories are sized by their full contents through ``sizes``, a new
    SizeCache unless one is shared.
    """

    def __init__(
        self,
        sort_mode: SortMode = SortMode.NAME,
        reverse: bool = False,
        sizes: SizeCache | None = None,
    ) -> None:
        self.sort_mode = sort_mode
        self.reverse = reverse
        self._sizes = sizes if sizes is not None else SizeCache()

    def compare(self, a: FileSystemEntry, b: FileSystemEntry) -> int:
        primary = _cmp(b.is_dir, a.is_dir)
        if primary:
            return primary

        key_a = self._key(a)
        key_b = self._key(b)
        if key_a is None or key_b is None:
            if key_a is None and key_b is None:
                return _cmp(a.name, b.name)
            return 1 if key_a is None else -1

        match self.sort_mode:
            case SortMode.NAME:
                order = _cmp(key_a, key_b)
            case SortMode.SIZE | SortMode.MODIFIED | SortMode.CREATED:
                order = _cmp(key_b, key_a)
        if self.reverse:
            order = -order
        return order or _cmp(a.name, b.name)

    def sort(self, entries: Iterable[FileSystemEntry]) -> list[FileSystemEntry]:
        """Return *entries* in sibling order."""
        return sorted(entries, key=cmp_to_key(self.compare))

    def _key(self, entry: FileSystemEntry) -> Any:
        """Secondary key for *entry*, or None when its metadata is unavailable."""
        try:
            match self.sort_mode:
                case SortMode.NAME:
                    return entry.name
                case SortMode.SIZE:
                    return self._size(entry)
                case SortMode.MODIFIED:
                    return entry.require("modified")
                case SortMode.CREATED:
                    return entry.require("created")
        except DszError as e:
            log.debug("Ordering %s last: %s", entry.path, e)
            return None

    def _size(self, entry: FileSystemEntry) -> int:
        if entry.is_dir:
            return self._sizes.size_of(entry.path).total_bytes
        return entry.require("size")
