"""Tests for the memoized size calculator."""

from __future__ import annotations

import os
import threading
import time
from unittest.mock import patch

import pytest

from dsz.core.errors import RootUnreadableError
from dsz.core.size_cache import SizeCache
from dsz.models.entry import DirSize


def _deny_scandir(*denied):
    """Return a scandir replacement that fails for the given paths."""
    real_scandir = os.scandir
    denied_paths = {os.path.realpath(p) for p in denied}

    def fake_scandir(path="."):
        if os.path.realpath(path) in denied_paths:
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_scandir(path)

    return fake_scandir


@pytest.fixture
def deep_chain(tmp_path):
    """A 1500-level chain ``root/a/a/.../a`` holding one 7-byte file at the bottom."""
    root = tmp_path / "chain"
    root.mkdir()
    levels = [root]
    for _ in range(1500):
        levels.append(levels[-1] / "a")
        levels[-1].mkdir()
    leaf = levels[-1] / "leaf"
    leaf.write_bytes(b"x" * 7)
    yield root, levels[-1]
    leaf.unlink()
    for level in reversed(levels):
        level.rmdir()


class TestSizeOf:
    def test_sums_all_regular_files(self, sample_tree):
        assert SizeCache().size_of(sample_tree) == DirSize(4360, 6)

    def test_single_file(self, sample_tree):
        assert SizeCache().size_of(sample_tree / "big.bin") == (3000, 1)

    def test_empty_directory(self, sample_tree):
        assert SizeCache().size_of(sample_tree / "empty") == (0, 0)

    def test_directories_do_not_count_as_files(self, tmp_path):
        (tmp_path / "a" / "b" / "c").mkdir(parents=True)
        (tmp_path / "a" / "b" / "c" / "leaf").write_bytes(b"x" * 7)
        assert SizeCache().size_of(tmp_path / "a") == (7, 1)

    def test_symlinks_are_not_followed(self, tmp_path):
        data = tmp_path / "data"
        data.mkdir()
        (data / "payload").write_bytes(b"p" * 500)
        (data / "loop").symlink_to(tmp_path, target_is_directory=True)
        (data / "alias").symlink_to(data / "payload")
        assert SizeCache().size_of(data) == (500, 1)

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(RootUnreadableError) as excinfo:
            SizeCache().size_of(tmp_path / "missing")
        assert excinfo.value.path.name == "missing"

    def test_unlistable_root_raises(self, sample_tree):
        with patch("os.scandir", _deny_scandir(sample_tree)):
            with pytest.raises(RootUnreadableError, match="Permission denied"):
                SizeCache().size_of(sample_tree)

    def test_unreadable_subdirectory_contributes_zero(self, sample_tree):
        with patch("os.scandir", _deny_scandir(sample_tree / "docs")):
            size = SizeCache().size_of(sample_tree)
        assert size == (4360 - 600, 4)

    def test_unreadable_file_contributes_zero(self, sample_tree):
        real_scandir = os.scandir

        class _Item:
            def __init__(self, item):
                self._item = item
                self.path = item.path

            def is_file(self, follow_symlinks=True):
                return self._item.is_file(follow_symlinks=follow_symlinks)

            def is_dir(self, follow_symlinks=True):
                return self._item.is_dir(follow_symlinks=follow_symlinks)

            def stat(self, follow_symlinks=True):
                if self._item.name == "big.bin":
                    raise PermissionError(13, "Permission denied")
                return self._item.stat(follow_symlinks=follow_symlinks)

        class _Listing:
            def __init__(self, path):
                self._it = real_scandir(path)

            def __enter__(self):
                return (_Item(i) for i in self._it)

            def __exit__(self, *exc):
                self._it.close()

        with patch("os.scandir", _Listing):
            assert SizeCache().size_of(sample_tree) == (4360 - 3000, 5)


class TestMemoization:
    def test_repeated_query_is_cached(self, sample_tree):
        cache = SizeCache()
        first = cache.size_of(sample_tree)
        with patch("os.scandir", side_effect=AssertionError("re-walked")):
            assert cache.size_of(sample_tree) == first

    def test_subdirectories_cached_by_parent_query(self, sample_tree):
        cache = SizeCache()
        cache.size_of(sample_tree)
        assert sample_tree / "docs" / "api" in cache
        with patch("os.scandir", side_effect=AssertionError("re-walked")):
            assert cache.size_of(sample_tree / "docs") == (600, 2)

    def test_key_is_canonical(self, sample_tree, monkeypatch):
        cache = SizeCache()
        cache.size_of(sample_tree / "docs")
        monkeypatch.chdir(sample_tree)
        with patch("os.scandir", side_effect=AssertionError("re-walked")):
            assert cache.size_of("docs/api/..") == (600, 2)

    def test_failures_are_not_cached(self, sample_tree):
        cache = SizeCache()
        with patch("os.scandir", _deny_scandir(sample_tree / "docs")):
            with pytest.raises(RootUnreadableError):
                cache.size_of(sample_tree / "docs")
        assert sample_tree / "docs" not in cache
        assert cache.size_of(sample_tree / "docs") == (600, 2)

    def test_len_counts_cached_paths(self, sample_tree):
        cache = SizeCache()
        assert len(cache) == 0
        cache.size_of(sample_tree / "docs")
        assert len(cache) == 2  # docs, docs/api


class TestConcurrency:
    def test_parallel_matches_sequential(self, sample_tree):
        assert SizeCache().size_of(sample_tree, workers=4) == SizeCache().size_of(sample_tree)

    def test_parallel_on_file(self, sample_tree):
        assert SizeCache().size_of(sample_tree / "small.txt", workers=4) == (10, 1)

    def test_concurrent_callers_compute_once(self, sample_tree):
        cache = SizeCache()
        real_scandir = os.scandir
        calls: list[str] = []
        lock = threading.Lock()

        def slow_scandir(path="."):
            with lock:
                calls.append(os.fspath(path))
            time.sleep(0.05)
            return real_scandir(path)

        results = []

        def query():
            results.append(cache.size_of(sample_tree / "docs"))

        with patch("os.scandir", slow_scandir):
            threads = [threading.Thread(target=query) for _ in range(5)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert results == [DirSize(600, 2)] * 5
        assert sorted(calls) == sorted({os.fspath(p) for p in calls})
        assert len(calls) == 2  # docs and docs/api, each listed once

    def test_waiters_see_failure(self, sample_tree):
        cache = SizeCache()

        def failing_scandir(path="."):
            time.sleep(0.05)
            raise PermissionError(13, "Permission denied", os.fspath(path))

        errors = []

        def query():
            try:
                cache.size_of(sample_tree / "empty")
            except RootUnreadableError as e:
                errors.append(e)

        with patch("os.scandir", failing_scandir):
            threads = [threading.Thread(target=query) for _ in range(3)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert len(errors) == 3
        assert cache.size_of(sample_tree / "empty") == (0, 0)


class TestDeepTrees:
    def test_deep_chain_sequential(self, deep_chain):
        root, bottom = deep_chain
        cache = SizeCache()
        assert cache.size_of(root) == (7, 1)
        assert bottom in cache
        assert len(cache) == 1501

    def test_deep_chain_parallel(self, deep_chain):
        root, bottom = deep_chain
        cache = SizeCache()
        assert cache.size_of(root, workers=4) == (7, 1)
        assert cache.size_of(bottom) == (7, 1)

    def test_deep_chain_from_inside(self, deep_chain):
        root, bottom = deep_chain
        cache = SizeCache()
        middle = bottom.parents[700]
        assert cache.size_of(middle) == (7, 1)
        with patch("os.scandir", side_effect=AssertionError("re-walked")):
            assert cache.size_of(middle / "a") == (7, 1)
        assert cache.size_of(root) == (7, 1)

    def test_interrupted_walk_releases_claims(self, sample_tree):
        cache = SizeCache()
        real_scandir = os.scandir

        def interrupted_scandir(path="."):
            if os.path.basename(os.fspath(path)) == "api":
                raise KeyboardInterrupt
            return real_scandir(path)

        with patch("os.scandir", interrupted_scandir):
            with pytest.raises(KeyboardInterrupt):
                cache.size_of(sample_tree)
        assert sample_tree not in cache
        assert sample_tree / "docs" not in cache
        assert sample_tree / "docs" / "api" not in cache
        assert cache.size_of(sample_tree) == (4360, 6)
