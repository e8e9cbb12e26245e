"""Helpers shared by the test modules."""

from __future__ import annotations

import os
import time
from pathlib import Path

from cachesweep.core.grouper import group_items
from cachesweep.models.category import Category
from cachesweep.models.scan_result import CategoryResult, ScanReport

DAY = 24 * 60 * 60


def write_file(path: Path, size: int, *, age_days: float = 0) -> Path:
    """Create *path* with *size* bytes, optionally back-dated."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    if age_days:
        stamp = time.time() - age_days * DAY
        os.utime(path, (stamp, stamp))
    return path


def make_report(items, category: Category = Category.TEMPORARY_FILES) -> ScanReport:
    """Wrap loose items into a single-category report."""
    items = list(items)
    return ScanReport(results=(CategoryResult(category=category, items=items, groups=group_items(items, category)),))
