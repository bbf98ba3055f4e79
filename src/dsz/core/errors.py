"""Exceptions raised by the size and tree engine."""

from __future__ import annotations

from pathlib import Path


class DszError(Exception):
    """Base class for dsz errors."""


class RootUnreadableError(DszError):
    """Raised when the root of a size or tree query cannot be read."""

    def __init__(self, path: Path | str, reason: str = "") -> None:
        self.path = Path(path)
        message = f"Cannot read {self.path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MetadataUnavailableError(DszError):
    """Raised when an entry lacks the metadata a sort key or annotation needs."""

    def __init__(self, path: Path | str, field: str) -> None:
        self.path = Path(path)
        self.field = field
        super().__init__(f"{field} unavailable for {self.path}")
