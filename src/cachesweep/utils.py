"""Shared utility functions."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from cachesweep.models.clean_result import CleanupOutcome
from cachesweep.models.scan_result import ScanItem, ScanReport


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def path_parts(path: Path | str) -> tuple[str, ...]:
    """Split an absolute or relative path into its non-empty segments."""
    return tuple(part for part in str(path).split("/") if part)


def contains_segments(parts: tuple[str, ...], needle: tuple[str, ...]) -> bool:
    """Check whether *needle* occurs as a contiguous run inside *parts*."""
    n = len(needle)
    if n == 0 or n > len(parts):
        return False
    return any(parts[i : i + n] == needle for i in range(len(parts) - n + 1))


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"


def format_time_remaining(seconds: float) -> str:
    """Format an ETA as '42s', '3m 5s' or '1h 12m'."""
    seconds = max(0.0, seconds)
    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        minutes = int(seconds // 60)
        return f"{minutes}m {int(seconds % 60)}s"
    hours = int(seconds // 3600)
    return f"{hours}h {int((seconds % 3600) // 60)}m"


def report_to_dict(report: ScanReport, *, include_items: bool = True) -> dict[str, Any]:
    """Plain-data view of a scan report for JSON output."""
    return {
        "total_bytes": report.total_bytes,
        "item_count": report.item_count,
        "categories": [
            {
                "category": r.category.value,
                "label": r.category.label,
                "total_bytes": r.total_bytes,
                "file_count": len(r.items),
                "groups": [
                    {
                        "name": g.name,
                        "total_bytes": g.total_bytes,
                        "file_count": len(g.items),
                        "items": [_item_to_dict(i) for i in g.items] if include_items else [],
                    }
                    for g in r.groups
                ],
            }
            for r in report.results
        ],
    }


def outcome_to_dict(outcome: CleanupOutcome) -> dict[str, Any]:
    """Plain-data view of a cleanup outcome for JSON output."""
    return {
        "dry_run": outcome.dry_run,
        "cancelled": outcome.cancelled,
        "total": outcome.total,
        "processed": outcome.processed,
        "deleted": outcome.deleted,
        "skipped": outcome.skipped,
        "failed": outcome.failed,
        "reclaimed_bytes": outcome.reclaimed_bytes,
        "retry_rounds": outcome.retry_rounds,
        "errors": outcome.errors,
    }


def _item_to_dict(item: ScanItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "path": str(item.path),
        "size_bytes": item.size_bytes,
        "modified": item.modified.isoformat(),
        "selected": item.selected,
        "status": item.status.value,
    }
