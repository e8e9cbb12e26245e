"""Directory traversal producing scan items."""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, Iterator

from cachesweep.core.locations import BROWSER_CACHE_DIRS
from cachesweep.models.category import Category
from cachesweep.models.scan_result import ScanItem

log = logging.getLogger(__name__)

DiscoveryCallback = Callable[[int, int], None]  # (item_count_delta, bytes_delta)

PROGRESS_INTERVAL = 100
LOG_EXTENSIONS = frozenset({"log", "crash", "diag"})
SHARED_CACHE_SUFFIX = "/Library/Caches"

_BROWSER_MARKERS = tuple(f"/{name}".lower() for name in BROWSER_CACHE_DIRS)


class Walker:
    """Walks a root directory and yields the files a category cares about.

    Args:
        download_age: Minimum age for a file in Downloads to count as old.
        clock: Returns the current time as a POSIX timestamp.
    """

    def __init__(
        self,
        download_age: timedelta = timedelta(days=30),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.download_age = download_age
        self._clock = clock

    def walk(
        self,
        root: Path | str,
        category: Category,
        on_progress: DiscoveryCallback | None = None,
    ) -> Iterator[ScanItem]:
        """Yield every matching file below *root*.

        Entries that fail ``stat`` and directories that cannot be listed
        are skipped; one bad entry never ends the walk. Progress is
        reported every ``PROGRESS_INTERVAL`` items and once more for the
        remainder.
        """
        root_str = os.path.normpath(str(root))
        if not os.path.isdir(root_str):
            log.debug("Skipping missing root: %s", root_str)
            return

        accept = self._filter_for(root_str, category)
        pending_count = 0
        pending_bytes = 0

        stack: list[str] = [root_str]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                log.debug("Cannot list %s: %s", current, e)
                continue

            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        stack.append(entry.path)
                        continue
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    st = entry.stat(follow_symlinks=False)
                except OSError as e:
                    log.debug("Cannot access %s: %s", entry.path, e)
                    continue

                if st.st_size <= 0 or not accept(entry.path, st.st_mtime):
                    continue

                yield ScanItem(
                    path=Path(entry.path),
                    size_bytes=st.st_size,
                    modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                )
                pending_count += 1
                pending_bytes += st.st_size
                if pending_count == PROGRESS_INTERVAL:
                    if on_progress:
                        on_progress(pending_count, pending_bytes)
                    pending_count = 0
                    pending_bytes = 0

        if pending_count and on_progress:
            on_progress(pending_count, pending_bytes)

    def collect(
        self,
        roots: Iterable[Path],
        category: Category,
        on_progress: DiscoveryCallback | None = None,
    ) -> list[ScanItem]:
        """Walk several roots and return everything found."""
        items: list[ScanItem] = []
        for root in roots:
            items.extend(self.walk(root, category, on_progress))
        return items

    def _filter_for(self, root: str, category: Category) -> Callable[[str, float], bool]:
        """Build the per-file predicate for *category* walked from *root*."""
        match category:
            case Category.LOGS:
                return _is_log_file
            case Category.OLD_DOWNLOADS:
                cutoff = self._clock() - self.download_age.total_seconds()
                return lambda path, mtime: mtime < cutoff
            case _ if category.is_cache:
                # Only the shared cache root hides browser caches; a dedicated
                # browser scan walks those directories directly.
                if root.endswith(SHARED_CACHE_SUFFIX):
                    return lambda path, mtime: not _is_browser_cache(path)
                return _accept_all
            case _:
                return _accept_all


def _accept_all(path: str, mtime: float) -> bool:
    return True


def _is_log_file(path: str, mtime: float) -> bool:
    ext = os.path.splitext(path)[1]
    return not ext or ext[1:].lower() in LOG_EXTENSIONS


def _is_browser_cache(path: str) -> bool:
    lowered = path.lower()
    return any(marker in lowered for marker in _BROWSER_MARKERS)
