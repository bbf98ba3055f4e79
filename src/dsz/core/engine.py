"""Size and tree orchestration engine."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from dsz.core.size_cache import SizeCache
from dsz.core.tree import TreeRenderer
from dsz.models.options import TreeRenderOptions
from dsz.models.report import DirectoryReport
from dsz.utils import bytes_to_human, canonical_path, format_elapsed

log = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]  # (stage, status)


class SizeEngine:
    """Sizes a root path and optionally renders its tree.

    One SizeCache is shared by the total and the tree, so directories at
    the depth boundary reuse sizes computed for the total.
    """

    def __init__(self, cache: SizeCache | None = None) -> None:
        self.cache = cache if cache is not None else SizeCache()

    def run(
        self,
        path: Path | str,
        tree_options: TreeRenderOptions | None = None,
        workers: int = 1,
        on_progress: ProgressCallback | None = None,
    ) -> DirectoryReport:
        """Compute the total size of *path* and, if requested, its tree.

        The total is always computed without hidden-file filtering;
        ``exclude_hidden`` only prunes the rendered tree.

        Args:
            path: File or directory to inspect.
            tree_options: Render options, or None to skip the tree.
            workers: Thread count for the total; 1 means sequential.
            on_progress: Optional callback receiving ``(stage, status)``
                with stage ``"size"`` or ``"tree"`` and status
                ``"started"``, ``"done"`` or ``"error"``.

        Raises:
            RootUnreadableError: The root cannot be read.
        """
        root = Path(canonical_path(path))
        report = DirectoryReport(root=root)

        with _stage("size", on_progress):
            started = time.monotonic()
            size = self.cache.size_of(root, workers=workers)
            log.info(
                "Sized %s: %s in %d files (%s)",
                root,
                bytes_to_human(size.total_bytes),
                size.file_count,
                format_elapsed(time.monotonic() - started),
            )
        report.total_bytes, report.file_count = size

        if tree_options is not None:
            with _stage("tree", on_progress):
                started = time.monotonic()
                report.lines = TreeRenderer(tree_options, self.cache).render(root)
                log.info(
                    "Rendered %d tree lines (%s)",
                    len(report.lines),
                    format_elapsed(time.monotonic() - started),
                )

        return report


@contextmanager
def _stage(name: str, on_progress: ProgressCallback | None) -> Iterator[None]:
    """Report start, completion or failure of an engine stage."""
    if on_progress:
        on_progress(name, "started")
    try:
        yield
    except Exception:
        if on_progress:
            on_progress(name, "error")
        raise
    if on_progress:
        on_progress(name, "done")
