"""Hidden-entry detection used to prune the tree walk."""

from __future__ import annotations

import os
import stat

from dsz.models.entry import FileSystemEntry

# Only Windows exposes st_file_attributes; elsewhere a leading dot decides.
_HAS_HIDDEN_ATTRIBUTE = hasattr(os.stat_result, "st_file_attributes")
_FILE_ATTRIBUTE_HIDDEN = getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0x2)


def is_hidden(entry: FileSystemEntry) -> bool:
    """Check whether *entry* is hidden.

    An entry whose attributes could not be read is not hidden.
    """
    if _HAS_HIDDEN_ATTRIBUTE:
        if entry.attributes is None:
            return False
        return bool(entry.attributes & _FILE_ATTRIBUTE_HIDDEN)
    return entry.name.startswith(".")
