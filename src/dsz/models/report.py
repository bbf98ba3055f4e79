"""Rendered tree lines and engine reports."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class DisplayLine:
    """One rendered line of the tree.

    The root line only carries ``name`` (the root path). Entry lines are
    ``indent + branch + marker + ["/"] + name`` followed by the optional
    `` - size`` and `` (timestamp)`` annotations.
    """

    name: str
    depth: int = 0
    indent: str = ""
    branch: str = ""
    marker: str = ""
    is_dir: bool = False
    size: str | None = None
    timestamp: str | None = None

    def __str__(self) -> str:
        text = f"{self.indent}{self.branch}{self.marker}"
        if self.is_dir:
            text += "/"
        text += self.name
        if self.size is not None:
            text += f" - {self.size}"
        if self.timestamp is not None:
            text += f" ({self.timestamp})"
        return text


@dataclass(slots=True)
class DirectoryReport:
    """Result of sizing (and optionally rendering) one root path."""

    root: Path
    total_bytes: int = 0
    file_count: int = 0
    lines: list[DisplayLine] | None = None

    @property
    def tree_text(self) -> str:
        """Rendered tree joined into one block, empty if no tree was requested."""
        if self.lines is None:
            return ""
        return "\n".join(str(line) for line in self.lines)
