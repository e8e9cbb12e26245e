"""Cleaning progress and outcome dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field

from cachesweep.models.scan_result import ItemStatus


@dataclass(frozen=True, slots=True)
class CleanProgress:
    """One batched progress update emitted while cleaning."""

    processed: int
    total: int
    batch_bytes: int
    reclaimed_bytes: int
    eta_seconds: float
    current_name: str
    phase: str = "delete"

    @property
    def fraction(self) -> float:
        return self.processed / self.total if self.total else 1.0


@dataclass(slots=True)
class CleanupOutcome:
    """Result of a cleaning pass."""

    total: int = 0
    processed: int = 0
    reclaimed_bytes: int = 0
    cancelled: bool = False
    dry_run: bool = True
    retry_rounds: int = 0
    statuses: dict[str, ItemStatus] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def _count(self, status: ItemStatus) -> int:
        return sum(1 for s in self.statuses.values() if s is status)

    @property
    def deleted(self) -> int:
        return self._count(ItemStatus.DELETED)

    @property
    def skipped(self) -> int:
        return self._count(ItemStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(ItemStatus.ERROR)
