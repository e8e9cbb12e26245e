"""Tests for shared helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from cachesweep.models.category import Category
from cachesweep.models.scan_result import ItemStatus, ScanItem
from cachesweep.utils import (
    bytes_to_human,
    contains_segments,
    format_time_remaining,
    path_parts,
    report_to_dict,
)
from helpers import make_report


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0 B"), (512, "512 B"), (1536, "1.5 KB"), (5 * 1024**3, "5.0 GB"), (-2048, "-2.0 KB")],
)
def test_bytes_to_human(size, expected):
    assert bytes_to_human(size) == expected


@pytest.mark.parametrize(
    "seconds, expected",
    [(-1, "0s"), (42.9, "42s"), (185, "3m 5s"), (4320, "1h 12m")],
)
def test_format_time_remaining(seconds, expected):
    assert format_time_remaining(seconds) == expected


def test_path_parts():
    assert path_parts("/Users//me/Library/") == ("Users", "me", "Library")


def test_contains_segments():
    parts = ("Users", "me", "Library", "Caches")
    assert contains_segments(parts, ("Library", "Caches"))
    assert not contains_segments(parts, ("Lib",))
    assert not contains_segments(parts, ())


def test_report_to_dict_without_items():
    data = report_to_dict(make_report([], Category.LOGS), include_items=False)
    assert data == {
        "total_bytes": 0,
        "item_count": 0,
        "categories": [{"category": "logs", "label": "Logs & Crash Reports", "total_bytes": 0, "file_count": 0, "groups": []}],
    }


def test_category_parse():
    assert Category.parse("old-downloads") is Category.OLD_DOWNLOADS
    assert Category.parse("OLD_DOWNLOADS") is Category.OLD_DOWNLOADS
    assert Category.parse(" Logs ") is Category.LOGS
    with pytest.raises(ValueError):
        Category.parse("everything")


def test_cache_categories():
    assert {c for c in Category if c.is_cache} == {
        Category.SYSTEM_CACHES,
        Category.APPLICATION_CACHES,
        Category.BROWSER_DATA,
    }


def test_item_status_terminal_states():
    assert {s for s in ItemStatus if s.is_terminal} == {ItemStatus.DELETED, ItemStatus.ERROR, ItemStatus.SKIPPED}


def test_report_find(tmp_path):
    item = ScanItem(path=tmp_path / "a.bin", size_bytes=1, modified=datetime.now(timezone.utc))
    report = make_report([item])
    assert report.find(item.id) is item
    assert report.find("missing") is None
