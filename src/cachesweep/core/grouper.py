"""Clusters scan items into named groups for review and bulk selection."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from cachesweep.models.category import Category
from cachesweep.models.scan_result import ScanGroup, ScanItem

OTHER_GROUP = "System / Other"
DOWNLOADS_GROUP = "Downloads"
MISC_GROUP = "Miscellaneous"

# Vendors whose Application Support folder nests one directory per product.
MULTI_SEGMENT_VENDORS = frozenset({"Google", "Microsoft", "Adobe"})


def extract_app_name(path: Path | str) -> str | None:
    """Guess the owning application from well-known path anchors.

    ``.../Application Support/Google/Chrome/...`` -> ``Google Chrome``
    ``.../Containers/com.apple.Safari/...``       -> ``Safari``
    ``.../Logs/Zoom/...``                         -> ``Zoom``
    """
    parts = str(path).split("/")

    index = _anchor(parts, "Application Support")
    if index is not None:
        app = parts[index + 1]
        if app in MULTI_SEGMENT_VENDORS and index + 2 < len(parts):
            return f"{app} {parts[index + 2]}"
        return app

    index = _anchor(parts, "Containers")
    if index is not None:
        bundle_id = parts[index + 1]
        last = bundle_id.split(".")[-1]
        return last.title() if last else bundle_id

    index = _anchor(parts, "Logs")
    if index is not None:
        return parts[index + 1]

    return None


def group_name(path: Path | str, category: Category) -> str:
    """Return the group key for one item path."""
    match category:
        case Category.APPLICATION_CACHES | Category.LOGS:
            return extract_app_name(path) or OTHER_GROUP
        case Category.OLD_DOWNLOADS:
            return DOWNLOADS_GROUP
        case _:
            parts = str(path).split("/")
            for anchor in ("Caches", "Containers"):
                index = _anchor(parts, anchor)
                if index is not None:
                    return parts[index + 1]
            return MISC_GROUP


def group_items(items: Iterable[ScanItem], category: Category) -> list[ScanGroup]:
    """Partition *items* into groups.

    Items within a group are ordered by size, largest first; groups are
    ordered by total size, largest first, then by name.
    """
    buckets: dict[str, list[ScanItem]] = {}
    for item in items:
        buckets.setdefault(group_name(item.path, category), []).append(item)

    groups = [
        ScanGroup(name=name, items=tuple(sorted(members, key=lambda i: i.size_bytes, reverse=True)))
        for name, members in buckets.items()
    ]
    groups.sort(key=lambda g: (-g.total_bytes, g.name))
    return groups


def _anchor(parts: list[str], anchor: str) -> int | None:
    """Index of the first *anchor* segment that has a segment after it."""
    try:
        index = parts.index(anchor)
    except ValueError:
        return None
    return index if index + 1 < len(parts) else None
