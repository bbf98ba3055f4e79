"""dsz data models."""

from dsz.models.entry import DirSize, EntryKind, FileSystemEntry
from dsz.models.options import SortMode, TreeRenderOptions
from dsz.models.report import DirectoryReport, DisplayLine

__all__ = [
    "DirSize",
    "DirectoryReport",
    "DisplayLine",
    "EntryKind",
    "FileSystemEntry",
    "SortMode",
    "TreeRenderOptions",
]
