"""cachesweep data models."""

from cachesweep.models.category import Category
from cachesweep.models.scan_result import CategoryResult, ItemStatus, ScanGroup, ScanItem, ScanReport
from cachesweep.models.clean_result import CleanProgress, CleanupOutcome

__all__ = [
    "Category",
    "CategoryResult",
    "CleanProgress",
    "CleanupOutcome",
    "ItemStatus",
    "ScanGroup",
    "ScanItem",
    "ScanReport",
]
