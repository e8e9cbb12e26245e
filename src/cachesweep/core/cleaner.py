"""Validated, throttled and verified deletion of selected scan items."""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Mapping

from cachesweep.core.safety import SafetyPolicy
from cachesweep.core.trash import DeleteFunc, move_to_trash
from cachesweep.models.clean_result import CleanProgress, CleanupOutcome
from cachesweep.models.scan_result import ItemStatus, ScanItem, ScanReport

log = logging.getLogger(__name__)

CleanProgressCallback = Callable[[CleanProgress], None]
CleanFinishedCallback = Callable[[CleanupOutcome], None]
ExistsFunc = Callable[[Path], bool]

BATCH_SIZE = 10
MAX_RETRIES = 3
RETRY_PAUSE = 0.5


class AdaptiveThrottle:
    """Feedback loop keeping each delete close to a target latency.

    Slow operations grow the pause between deletes by ``step_up``; very
    fast ones (under half the target) shrink it by ``step_down``. The
    pause always stays within ``[0, maximum]``. Durations are kept in
    whole microseconds so repeated steps never drift.
    """

    def __init__(
        self,
        target: float = 0.010,
        maximum: float = 0.100,
        step_up: float = 0.001,
        step_down: float = 0.0005,
    ) -> None:
        self._target_us = round(target * 1_000_000)
        self._max_us = round(maximum * 1_000_000)
        self._up_us = round(step_up * 1_000_000)
        self._down_us = round(step_down * 1_000_000)
        self._interval_us = 0

    @property
    def interval(self) -> float:
        """Current pause in seconds."""
        return self._interval_us / 1_000_000

    def record(self, latency: float) -> float:
        """Feed one operation's duration and return the updated pause."""
        latency_us = latency * 1_000_000
        if latency_us > self._target_us:
            self._interval_us = min(self._interval_us + self._up_us, self._max_us)
        elif latency_us < self._target_us / 2 and self._interval_us > 0:
            self._interval_us = max(self._interval_us - self._down_us, 0)
        return self.interval


class Cleaner:
    """Deletes the selected items of a scan report.

    Every item is re-checked against the safety policy right before it is
    touched. Work runs sequentially on the calling thread; call it from a
    worker thread and share a ``threading.Event`` to cancel.

    Args:
        policy: Safety gate and dry-run flag.
        delete: Deletion primitive. Any exception it raises marks the item
            as failed.
        exists: Existence probe used by the verification pass.
        clock: Monotonic clock for latency and ETA measurements.
        retry_pause: Seconds to wait between verification rounds.
        max_retries: Number of verification rounds.
        batch_size: Items per progress update.
    """

    def __init__(
        self,
        policy: SafetyPolicy,
        delete: DeleteFunc = move_to_trash,
        *,
        exists: ExistsFunc = os.path.lexists,
        clock: Callable[[], float] = time.monotonic,
        retry_pause: float = RETRY_PAUSE,
        max_retries: int = MAX_RETRIES,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        self.policy = policy
        self._delete = delete
        self._exists = exists
        self._clock = clock
        self.retry_pause = retry_pause
        self.max_retries = max_retries
        self.batch_size = max(1, batch_size)
        self.last_throttle: AdaptiveThrottle | None = None

    def candidates(self, report: ScanReport, selection: Mapping[str, bool] | None = None) -> list[ScanItem]:
        """Selected items still waiting to be cleaned, largest first."""
        items = [
            item
            for item in report.items()
            if _is_selected(item, selection) and item.status is ItemStatus.READY
        ]
        items.sort(key=lambda i: i.size_bytes, reverse=True)
        return items

    def clean(
        self,
        report: ScanReport,
        selection: Mapping[str, bool] | None = None,
        on_progress: CleanProgressCallback | None = None,
        cancel: threading.Event | None = None,
        on_finished: CleanFinishedCallback | None = None,
    ) -> CleanupOutcome:
        """Clean every selected, not yet processed item in *report*.

        Args:
            report: Report whose items receive the new statuses.
            selection: Optional snapshot of item id -> selected. Items not
                in the mapping fall back to their own ``selected`` flag.
            on_progress: Called every ``batch_size`` items and once for the
                remainder.
            cancel: Set from another thread to stop after the current item.
            on_finished: Called once with the final outcome.

        Returns:
            The outcome of this pass. Items cleaned by an earlier pass are
            not counted again.
        """
        cancel = cancel or threading.Event()
        dry_run = self.policy.dry_run
        items = self.candidates(report, selection)
        outcome = CleanupOutcome(total=len(items), dry_run=dry_run)
        throttle = AdaptiveThrottle()
        self.last_throttle = throttle

        log.info("Cleaning %d items (dry run: %s)", len(items), dry_run)

        removed = self._delete_pass(items, outcome, throttle, cancel, on_progress)

        if not dry_run and not outcome.cancelled:
            self._verify(removed, outcome, cancel, on_progress)

        for item in items[: outcome.processed]:
            outcome.statuses[item.id] = item.status
        outcome.reclaimed_bytes = sum(i.size_bytes for i in removed if i.status is ItemStatus.DELETED)

        log.info(
            "Cleaned %d/%d items: %d deleted, %d skipped, %d failed, %d bytes reclaimed%s",
            outcome.processed,
            outcome.total,
            outcome.deleted,
            outcome.skipped,
            outcome.failed,
            outcome.reclaimed_bytes,
            " (cancelled)" if outcome.cancelled else "",
        )
        if on_finished:
            on_finished(outcome)
        return outcome

    def _delete_pass(
        self,
        items: list[ScanItem],
        outcome: CleanupOutcome,
        throttle: AdaptiveThrottle,
        cancel: threading.Event,
        on_progress: CleanProgressCallback | None,
    ) -> list[ScanItem]:
        """Main pass. Returns the items marked deleted."""
        removed: list[ScanItem] = []
        start = self._clock()
        reclaimed = 0
        batch_bytes = 0
        last_name = ""

        for item in items:
            if cancel.is_set():
                outcome.cancelled = True
                log.info("Cleaning cancelled after %d items", outcome.processed)
                break

            op_start = self._clock()
            did_io = self._process(item, outcome)
            if item.status is ItemStatus.DELETED:
                removed.append(item)
                reclaimed += item.size_bytes
                batch_bytes += item.size_bytes

            outcome.processed += 1
            last_name = item.name

            if did_io:
                pause = throttle.record(self._clock() - op_start)
                if pause:
                    cancel.wait(pause)

            if outcome.processed % self.batch_size == 0:
                self._emit(on_progress, outcome, start, batch_bytes, reclaimed, last_name)
                batch_bytes = 0

        if outcome.processed % self.batch_size:
            self._emit(on_progress, outcome, start, batch_bytes, reclaimed, last_name)

        return removed

    def _process(self, item: ScanItem, outcome: CleanupOutcome) -> bool:
        """Gate and delete one item. Returns True if filesystem I/O happened."""
        if not self.policy.is_deletable(item.path):
            item.status = ItemStatus.SKIPPED
            return False

        item.status = ItemStatus.DELETING
        if outcome.dry_run:
            item.status = ItemStatus.DELETED
            return False

        try:
            self._delete(item.path)
        except OSError as e:
            log.warning("Failed to delete %s: %s", item.path, e)
            outcome.errors.append(f"{item.path}: {e}")
            item.status = ItemStatus.ERROR
        except Exception as e:
            log.exception("Deletion primitive crashed on %s", item.path)
            outcome.errors.append(f"{item.path}: {type(e).__name__}: {e}")
            item.status = ItemStatus.ERROR
        else:
            item.status = ItemStatus.DELETED
        return True

    def _verify(
        self,
        removed: list[ScanItem],
        outcome: CleanupOutcome,
        cancel: threading.Event,
        on_progress: CleanProgressCallback | None,
    ) -> None:
        """Re-check deleted items and retry the ones still on disk."""
        pending = removed
        reclaimed = sum(i.size_bytes for i in removed)

        for attempt in range(1, self.max_retries + 1):
            if not pending:
                break
            outcome.retry_rounds = attempt
            if on_progress:
                on_progress(
                    CleanProgress(
                        processed=outcome.processed,
                        total=outcome.total,
                        batch_bytes=0,
                        reclaimed_bytes=reclaimed,
                        eta_seconds=0.0,
                        current_name=f"Verifying deletion (attempt {attempt}/{self.max_retries})",
                        phase="verify",
                    )
                )

            survivors: list[ScanItem] = []
            for item in pending:
                if cancel.is_set():
                    outcome.cancelled = True
                    break
                if not self._exists(item.path):
                    continue
                log.debug("Retry deleting %s", item.path)
                try:
                    self._delete(item.path)
                except OSError as e:
                    log.debug("Retry failed for %s: %s", item.path, e)
                except Exception:
                    log.exception("Deletion primitive crashed retrying %s", item.path)
                if self._exists(item.path):
                    survivors.append(item)

            pending = survivors
            if outcome.cancelled:
                break
            if pending and attempt < self.max_retries:
                cancel.wait(self.retry_pause)

        for item in pending:
            log.warning("Still present after %d verification rounds: %s", outcome.retry_rounds, item.path)
            outcome.errors.append(f"{item.path}: still present after deletion")
            item.status = ItemStatus.ERROR

    def _emit(
        self,
        on_progress: CleanProgressCallback | None,
        outcome: CleanupOutcome,
        start: float,
        batch_bytes: int,
        reclaimed: int,
        current_name: str,
    ) -> None:
        if not on_progress:
            return
        elapsed = self._clock() - start
        remaining = outcome.total - outcome.processed
        eta = elapsed / outcome.processed * remaining if outcome.processed else 0.0
        on_progress(
            CleanProgress(
                processed=outcome.processed,
                total=outcome.total,
                batch_bytes=batch_bytes,
                reclaimed_bytes=reclaimed,
                eta_seconds=eta,
                current_name=current_name,
            )
        )


def _is_selected(item: ScanItem, selection: Mapping[str, bool] | None) -> bool:
    if selection is not None and item.id in selection:
        return bool(selection[item.id])
    return item.selected
