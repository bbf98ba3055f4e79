"""Depth-bounded tree rendering."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterator

from dsz.core.errors import DszError, RootUnreadableError
from dsz.core.filters import is_hidden
from dsz.core.size_cache import SizeCache
from dsz.core.sorting import EntryComparator
from dsz.models.entry import FileSystemEntry
from dsz.models.options import TreeRenderOptions
from dsz.models.report import DisplayLine
from dsz.utils import bytes_to_human

log = logging.getLogger(__name__)

INDENT = "│   "
BRANCH = "├───"
BRANCH_LAST = "└───"
UNKNOWN = "???"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class TreeRenderer:
    """Renders a directory as an indented tree, one line per entry.

    The walk is depth-first and pre-order. Siblings are listed and sorted
    one directory at a time, and whether an entry is the last of its
    siblings is decided by looking one entry ahead: it is last when the
    next entry is shallower or there is none.
    """

    def __init__(self, options: TreeRenderOptions, cache: SizeCache | None = None) -> None:
        self.options = options
        self.cache = cache if cache is not None else SizeCache()
        self.comparator = EntryComparator(options.sort_mode, options.reverse, self.cache)

    def render(self, root: Path | str) -> list[DisplayLine]:
        """Return every line of the tree rooted at *root*."""
        return list(self.iter_lines(root))

    def iter_lines(self, root: Path | str) -> Iterator[DisplayLine]:
        """Lazily yield the tree lines for *root*.

        Raises:
            RootUnreadableError: *root* cannot be stat'ed or listed. Raised
                immediately, before any line is produced.
        """
        root_path = Path(root)
        try:
            root_entry = FileSystemEntry.from_path(root_path)
        except OSError as e:
            raise RootUnreadableError(root_path, e.strerror or str(e)) from e

        children: list[FileSystemEntry] = []
        if root_entry.is_dir:
            try:
                children = self._children(root_entry)
            except OSError as e:
                raise RootUnreadableError(root_path, e.strerror or str(e)) from e
        return self._lines(root_path, children)

    def _lines(self, root: Path, children: list[FileSystemEntry]) -> Iterator[DisplayLine]:
        yield DisplayLine(name=str(root))

        entries = self._walk(children)
        current = next(entries, None)
        while current is not None:
            upcoming = next(entries, None)
            last = upcoming is None or upcoming.depth < current.depth
            yield self._format(current, last)
            current = upcoming

    def _walk(self, top: list[FileSystemEntry]) -> Iterator[FileSystemEntry]:
        """Yield entries below the root in pre-order, expanding up to max_depth."""
        stack = [iter(top)]
        while stack:
            entry = next(stack[-1], None)
            if entry is None:
                stack.pop()
                continue

            children: list[FileSystemEntry] = []
            if entry.is_dir and entry.depth < self.options.max_depth:
                try:
                    children = self._children(entry)
                except OSError as e:
                    log.debug("Cannot list %s: %s", entry.path, e)
                    entry.readable = False
            yield entry
            if children:
                stack.append(iter(children))

    def _children(self, parent: FileSystemEntry) -> list[FileSystemEntry]:
        """List, filter and sort the children of *parent*. Raises OSError."""
        depth = parent.depth + 1
        with os.scandir(parent.path) as it:
            entries = [FileSystemEntry.from_dir_entry(item, depth) for item in it]
        if self.options.exclude_hidden:
            entries = [e for e in entries if not is_hidden(e)]
        return self.comparator.sort(entries)

    def _format(self, entry: FileSystemEntry, last: bool) -> DisplayLine:
        size = None
        timestamp = None
        if entry.is_file or (entry.is_dir and entry.depth == self.options.max_depth):
            if self.options.show_size:
                size = self._size_text(entry)
            field = self.options.sort_mode.timestamp_field
            if field is not None:
                timestamp = self._timestamp_text(entry, field)

        return DisplayLine(
            name=_display_name(entry),
            depth=entry.depth,
            indent=INDENT * (entry.depth - 1),
            branch=BRANCH_LAST if last else BRANCH,
            marker=" " if entry.readable else "!",
            is_dir=entry.is_dir,
            size=size,
            timestamp=timestamp,
        )

    def _size_text(self, entry: FileSystemEntry) -> str:
        try:
            if entry.is_dir:
                return bytes_to_human(self.cache.size_of(entry.path).total_bytes)
            return bytes_to_human(entry.require("size"))
        except DszError as e:
            log.debug("No size for %s: %s", entry.path, e)
            return UNKNOWN

    @staticmethod
    def _timestamp_text(entry: FileSystemEntry, field: str) -> str:
        try:
            value = entry.require(field)
        except DszError:
            return UNKNOWN
        return datetime.fromtimestamp(value).strftime(TIMESTAMP_FORMAT)


def _display_name(entry: FileSystemEntry) -> str:
    """Entry name, or ``???`` when it cannot be shown as UTF-8."""
    name = entry.name
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return UNKNOWN
    return name
