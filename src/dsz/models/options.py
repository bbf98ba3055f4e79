"""Sort modes and tree render options."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SortMode(Enum):
    """Secondary ordering applied to siblings after directories-first."""

    NAME = "name"
    SIZE = "size"
    MODIFIED = "modified"
    CREATED = "created"

    @property
    def timestamp_field(self) -> str | None:
        """Entry attribute shown as a timestamp annotation, if any."""
        match self:
            case SortMode.MODIFIED:
                return "modified"
            case SortMode.CREATED:
                return "created"
            case _:
                return None


@dataclass(frozen=True, slots=True)
class TreeRenderOptions:
    """Parameters of one tree render.

    ``max_depth`` counts levels below the root and is always at least 1;
    a root-only tree is not a valid request.
    """

    max_depth: int = 1
    exclude_hidden: bool = False
    show_size: bool = False
    sort_mode: SortMode = SortMode.NAME
    reverse: bool = False

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
