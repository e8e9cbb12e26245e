"""Concurrent scanning across cleanup categories."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable

from cachesweep.core.grouper import group_items
from cachesweep.core.locations import roots_for
from cachesweep.core.walker import Walker
from cachesweep.models.category import Category
from cachesweep.models.scan_result import CategoryResult, ScanItem, ScanReport

log = logging.getLogger(__name__)

DiscoveredCallback = Callable[[Category, int, int], None]  # (category, item_delta, bytes_delta)
CategoryDoneCallback = Callable[[Category, float], None]  # (category, fraction of categories done)
RootLocator = Callable[..., list[Path]]


class Scanner:
    """Runs one walk-and-group task per category on a small thread pool."""

    def __init__(
        self,
        walker: Walker | None = None,
        *,
        locator: RootLocator = roots_for,
        home: Path | None = None,
        temp_dir: Path | None = None,
        max_workers: int = 4,
    ) -> None:
        self.walker = walker or Walker()
        self._locator = locator
        self.home = home
        self.temp_dir = temp_dir
        self.max_workers = max(1, max_workers)

    def scan(
        self,
        categories: Iterable[Category] | None = None,
        on_discovered: DiscoveredCallback | None = None,
        on_category_done: CategoryDoneCallback | None = None,
    ) -> ScanReport:
        """Scan the given categories (all of them by default).

        A category that raises part-way keeps whatever it found before
        the error. Categories with nothing to clean are left out of the
        report.

        Args:
            categories: Categories to scan.
            on_discovered: Incremental per-category item and byte counts.
            on_category_done: Fired once per category with the fraction of
                requested categories finished so far.

        Returns:
            A new report ordered by category label.
        """
        requested = list(dict.fromkeys(categories)) if categories is not None else list(Category)
        if not requested:
            return ScanReport()

        results: list[CategoryResult] = []
        completed = 0

        max_workers = min(self.max_workers, len(requested))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="scan") as executor:
            futures = {
                executor.submit(self._scan_category, category, on_discovered): category for category in requested
            }
            for future in as_completed(futures):
                category = futures[future]
                result = future.result()
                completed += 1
                if result.items:
                    results.append(result)
                fraction = completed / len(requested)
                log.info("Scanned %s: %d items", category.label, len(result.items))
                if on_category_done:
                    on_category_done(category, fraction)

        results.sort(key=lambda r: r.category.label)
        return ScanReport(results=tuple(results))

    def scan_category(self, category: Category, on_discovered: DiscoveredCallback | None = None) -> CategoryResult:
        """Scan a single category synchronously."""
        return self._scan_category(category, on_discovered)

    def _scan_category(self, category: Category, on_discovered: DiscoveredCallback | None) -> CategoryResult:
        items: list[ScanItem] = []

        def forward(count: int, size: int) -> None:
            if on_discovered:
                on_discovered(category, count, size)

        try:
            for root in self._locator(category, self.home, self.temp_dir):
                for item in self.walker.walk(root, category, forward):
                    items.append(item)
        except Exception:
            log.exception("Scanning %s failed, keeping %d items found so far", category.label, len(items))

        return CategoryResult(category=category, items=items, groups=group_items(items, category))
