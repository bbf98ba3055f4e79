"""Memoized directory size computation."""

from __future__ import annotations

import logging
import os
import stat
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from dsz.core.errors import RootUnreadableError
from dsz.models.entry import DirSize
from dsz.utils import canonical_path

log = logging.getLogger(__name__)

_EMPTY = DirSize(0, 0)


class SizeCache:
    """Computes ``(total_bytes, file_count)`` for paths, memoized by canonical path.

    A regular file counts as itself; a directory sums every regular file
    below it. Symlinks and special files add nothing and are never
    followed. Every directory visited while answering a query is cached,
    so later queries for subdirectories are served without touching the
    filesystem.

    The cache is safe to share between threads and computes each key at
    most once: the first caller for a key installs a future and computes,
    concurrent callers wait on that future. Failed computations are not
    cached.
    """

    def __init__(self) -> None:
        self._sizes: dict[str, Future[DirSize]] = {}
        self._lock = threading.Lock()

    def size_of(self, path: Path | str, workers: int = 1) -> DirSize:
        """Return the aggregate size of *path*.

        With ``workers > 1`` the root's subdirectories are sized on a
        thread pool; the result is the same as the sequential one.

        Raises:
            RootUnreadableError: *path* itself cannot be read.
        """
        key = canonical_path(path)
        if workers > 1:
            return self._lookup(key, lambda k: self._compute_parallel(k, workers))
        return self._lookup(key, self._compute)

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for f in self._sizes.values() if f.done() and f.exception() is None)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            future = self._sizes.get(canonical_path(path))
        return future is not None and future.done() and future.exception() is None

    def _lookup(self, key: str, compute: Callable[[str], DirSize]) -> DirSize:
        future, owner = self._claim(key)
        if not owner:
            return future.result()

        try:
            result = compute(key)
        except BaseException as e:
            self._release(key, future, e)
            raise
        future.set_result(result)
        return result

    def _claim(self, key: str) -> tuple[Future[DirSize], bool]:
        """Return the future for *key* and whether the caller must compute it."""
        with self._lock:
            future = self._sizes.get(key)
            if future is not None:
                return future, False
            future = Future()
            self._sizes[key] = future
            return future, True

    def _release(self, key: str, future: Future[DirSize], error: BaseException) -> None:
        with self._lock:
            self._sizes.pop(key, None)
        future.set_exception(error)

    @staticmethod
    def _stat_root(key: str) -> os.stat_result:
        try:
            return os.lstat(key)
        except OSError as e:
            raise RootUnreadableError(key, e.strerror or str(e)) from e

    @staticmethod
    def _list_dir(key: str) -> list[os.DirEntry]:
        try:
            with os.scandir(key) as it:
                return list(it)
        except OSError as e:
            raise RootUnreadableError(key, e.strerror or str(e)) from e

    def _compute(self, key: str) -> DirSize:
        st = self._stat_root(key)
        if stat.S_ISREG(st.st_mode):
            return DirSize(st.st_size, 1)
        if not stat.S_ISDIR(st.st_mode):
            return _EMPTY
        return self._walk(key)

    def _walk(self, key: str) -> DirSize:
        """Size the directory *key* with a post-order walk on an explicit stack.

        Each subdirectory is claimed before it is listed and its future is
        resolved as soon as its own subtree is done. Subdirectories claimed
        by another thread are waited on instead of walked.
        """
        total, count, subdirs = self._sum_files(key)
        stack = [_Frame(key, None, total, count, iter(subdirs))]
        try:
            while True:
                frame = stack[-1]
                subdir = next(frame.pending, None)
                if subdir is None:
                    stack.pop()
                    size = DirSize(frame.total, frame.count)
                    if frame.future is not None:
                        frame.future.set_result(size)
                    if not stack:
                        return size
                    stack[-1].add(size)
                    continue

                future, owner = self._claim(subdir)
                if not owner:
                    frame.add(self._wait(future))
                    continue
                try:
                    total, count, children = self._sum_files(subdir)
                except RootUnreadableError as e:
                    self._release(subdir, future, e)
                    log.debug("Skipping unreadable directory: %s", e)
                    continue
                except BaseException as e:
                    self._release(subdir, future, e)
                    raise
                stack.append(_Frame(subdir, future, total, count, iter(children)))
        except BaseException as e:
            for frame in stack:
                if frame.future is not None:
                    self._release(frame.key, frame.future, e)
            raise

    def _compute_parallel(self, key: str, workers: int) -> DirSize:
        st = self._stat_root(key)
        if not stat.S_ISDIR(st.st_mode):
            return self._compute(key)

        total, count, subdirs = self._sum_files(key)
        if subdirs:
            max_workers = min(workers, len(subdirs))
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                for size in executor.map(self._child_size, subdirs):
                    total += size.total_bytes
                    count += size.file_count
        return DirSize(total, count)

    def _sum_files(self, key: str) -> tuple[int, int, list[str]]:
        """Sum the regular files directly in *key* and collect its subdirectories."""
        total = 0
        count = 0
        subdirs: list[str] = []
        for item in self._list_dir(key):
            try:
                if item.is_file(follow_symlinks=False):
                    total += item.stat(follow_symlinks=False).st_size
                    count += 1
                elif item.is_dir(follow_symlinks=False):
                    subdirs.append(item.path)
            except OSError as e:
                log.debug("Cannot access %s: %s", item.path, e)
        return total, count, subdirs

    def _child_size(self, path: str) -> DirSize:
        try:
            return self._lookup(path, self._compute)
        except RootUnreadableError as e:
            log.debug("Skipping unreadable directory: %s", e)
            return _EMPTY

    @staticmethod
    def _wait(future: Future[DirSize]) -> DirSize:
        try:
            return future.result()
        except RootUnreadableError as e:
            log.debug("Skipping unreadable directory: %s", e)
            return _EMPTY


@dataclass(slots=True)
class _Frame:
    """A directory on the walk stack with its running totals."""

    key: str
    future: Future[DirSize] | None
    total: int
    count: int
    pending: Iterator[str]

    def add(self, size: DirSize) -> None:
        self.total += size.total_bytes
        self.count += size.file_count
