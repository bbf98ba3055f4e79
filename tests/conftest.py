"""Shared test fixtures."""

from __future__ import annotations

import pytest

from dsz.settings import Settings


@pytest.fixture(autouse=True)
def isolate_settings(tmp_path, monkeypatch):
    """Point settings at an empty temp config dir and drop the singleton."""
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setattr(Settings, "_instance", None)
    return config_home / "dsz" / "settings.json"


@pytest.fixture
def sample_tree(tmp_path):
    """Create a small tree with nested dirs, a hidden file and a hidden dir.

    root/
        big.bin          (3000)
        small.txt        (10)
        .hidden          (50)
        .cache/blob      (700)
        docs/readme.md   (200)
        docs/api/ref.md  (400)
        empty/
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "big.bin").write_bytes(b"b" * 3000)
    (root / "small.txt").write_bytes(b"s" * 10)
    (root / ".hidden").write_bytes(b"h" * 50)
    (root / ".cache").mkdir()
    (root / ".cache" / "blob").write_bytes(b"c" * 700)
    (root / "docs").mkdir()
    (root / "docs" / "readme.md").write_bytes(b"r" * 200)
    (root / "docs" / "api").mkdir()
    (root / "docs" / "api" / "ref.md").write_bytes(b"a" * 400)
    (root / "empty").mkdir()
    return root

