"""Scan result dataclasses."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterator

from cachesweep.models.category import Category


class ItemStatus(Enum):
    """Lifecycle of a discovered file during cleaning.

    ``READY -> DELETING -> DELETED | ERROR | SKIPPED``. The last three
    are terminal.
    """

    READY = "ready"
    DELETING = "deleting"
    DELETED = "deleted"
    ERROR = "error"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.DELETED, ItemStatus.ERROR, ItemStatus.SKIPPED)


@dataclass(slots=True, eq=False)
class ScanItem:
    """Single file that can be cleaned.

    Items compare and hash by identity: the cleaner writes status back
    onto the same instances the caller holds in its report.
    """

    path: Path
    size_bytes: int
    modified: datetime
    selected: bool = True
    status: ItemStatus = ItemStatus.READY
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(slots=True)
class ScanGroup:
    """Named cluster of items sharing an owning application or folder."""

    name: str
    items: tuple[ScanItem, ...]
    expanded: bool = False

    @property
    def total_bytes(self) -> int:
        return sum(item.size_bytes for item in self.items)

    @property
    def selected_bytes(self) -> int:
        return sum(item.size_bytes for item in self.items if item.selected)

    @property
    def all_selected(self) -> bool:
        return all(item.selected for item in self.items)

    def set_selected(self, selected: bool) -> None:
        """Select or deselect every item in the group."""
        for item in self.items:
            item.selected = selected


@dataclass(slots=True)
class CategoryResult:
    """Items discovered for one category, flat and grouped."""

    category: Category
    items: list[ScanItem] = field(default_factory=list)
    groups: list[ScanGroup] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(item.size_bytes for item in self.items)

    @property
    def selected_bytes(self) -> int:
        return sum(item.size_bytes for item in self.items if item.selected)


@dataclass(frozen=True, slots=True)
class ScanReport:
    """Everything one scan pass found, ordered by category label.

    A new scan produces a new report; reports are never updated in place
    apart from the per-item selection and status fields.
    """

    results: tuple[CategoryResult, ...] = ()

    @property
    def total_bytes(self) -> int:
        return sum(r.total_bytes for r in self.results)

    @property
    def selected_bytes(self) -> int:
        return sum(r.selected_bytes for r in self.results)

    @property
    def item_count(self) -> int:
        return sum(len(r.items) for r in self.results)

    def items(self) -> Iterator[ScanItem]:
        """Iterate over every item in every category."""
        for result in self.results:
            yield from result.items

    def get(self, category: Category) -> CategoryResult | None:
        """Return the result for *category*, or None if nothing was found."""
        for result in self.results:
            if result.category is category:
                return result
        return None

    def find(self, item_id: str) -> ScanItem | None:
        """Look up an item by its identifier."""
        for item in self.items():
            if item.id == item_id:
                return item
        return None
