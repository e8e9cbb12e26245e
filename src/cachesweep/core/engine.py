"""Scanning and cleaning orchestration engine."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import timedelta
from pathlib import Path
from typing import Iterable, Mapping

from cachesweep.core.cleaner import CleanFinishedCallback, CleanProgressCallback, Cleaner
from cachesweep.core.safety import SafetyPolicy
from cachesweep.core.scanner import CategoryDoneCallback, DiscoveredCallback, Scanner
from cachesweep.core.trash import delete_func
from cachesweep.core.walker import Walker
from cachesweep.models.category import Category
from cachesweep.models.clean_result import CleanupOutcome
from cachesweep.models.scan_result import ScanReport
from cachesweep.settings import Settings

log = logging.getLogger(__name__)


class CleanInProgressError(Exception):
    """Raised when a clean is started while another one is still running."""


class CleanupEngine:
    """Orchestrates scanning and cleaning.

    Keeps the most recent scan report so a caller can scan, let the user
    adjust selections on the returned items, then clean the same report.
    """

    def __init__(
        self,
        policy: SafetyPolicy | None = None,
        scanner: Scanner | None = None,
        cleaner: Cleaner | None = None,
    ) -> None:
        if cleaner is not None:
            policy = cleaner.policy
        self.policy = policy or SafetyPolicy()
        self.scanner = scanner or Scanner()
        self.cleaner = cleaner or Cleaner(self.policy)
        self._last_report: ScanReport | None = None
        self._clean_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        home: Path | None = None,
        temp_dir: Path | None = None,
        use_trash: bool | None = None,
    ) -> CleanupEngine:
        """Build an engine configured from *settings*.

        Explicit keyword arguments take precedence over stored values.
        """
        if use_trash is None:
            use_trash = bool(settings.get("clean.use_trash", True))
        policy = SafetyPolicy(extra_protected=settings.get("safety.protected_paths", []))
        walker = Walker(download_age=timedelta(days=settings.get("scan.download_age_days", 30)))
        scanner = Scanner(
            walker,
            home=home,
            temp_dir=temp_dir,
            max_workers=int(settings.get("scan.workers", 4)),
        )
        cleaner = Cleaner(
            policy,
            delete_func(use_trash),
            retry_pause=float(settings.get("clean.retry_pause", 0.5)),
        )
        return cls(scanner=scanner, cleaner=cleaner)

    @property
    def last_report(self) -> ScanReport | None:
        """The report produced by the most recent scan."""
        return self._last_report

    def scan(
        self,
        categories: Iterable[Category] | None = None,
        on_discovered: DiscoveredCallback | None = None,
        on_category_done: CategoryDoneCallback | None = None,
    ) -> ScanReport:
        """Scan the given categories and remember the new report."""
        report = self.scanner.scan(categories, on_discovered=on_discovered, on_category_done=on_category_done)
        self._last_report = report
        log.info("Scan found %d items in %d categories", report.item_count, len(report.results))
        return report

    def clean(
        self,
        report: ScanReport | None = None,
        *,
        live: bool = False,
        selection: Mapping[str, bool] | None = None,
        on_progress: CleanProgressCallback | None = None,
        cancel: threading.Event | None = None,
        on_finished: CleanFinishedCallback | None = None,
    ) -> CleanupOutcome:
        """Clean the selected items of *report* (the last scan by default).

        Args:
            report: Report to clean.
            live: Actually delete files. Dry-run is switched off only for
                the duration of this call and restored afterwards, also
                when cleaning fails or is cancelled.
            selection: Optional item id -> selected snapshot.
            on_progress: Batched progress callback.
            cancel: Event that stops the clean when set.
            on_finished: Called with the final outcome.

        Raises:
            CleanInProgressError: Another clean is running on this engine.
        """
        if report is None:
            report = self._last_report
        if report is None:
            log.warning("Nothing to clean: no scan has been run")
            return CleanupOutcome(dry_run=self.policy.dry_run)

        if not self._clean_lock.acquire(blocking=False):
            raise CleanInProgressError("A clean is already running")
        try:
            if live:
                with self.policy.live():
                    outcome = self.cleaner.clean(report, selection, on_progress, cancel, on_finished)
            else:
                outcome = self.cleaner.clean(report, selection, on_progress, cancel, on_finished)
        finally:
            self._clean_lock.release()

        assert self.policy.dry_run, "dry-run must be active once a clean has finished"
        return outcome

    def submit_clean(self, report: ScanReport | None = None, **kwargs) -> Future[CleanupOutcome]:
        """Run :meth:`clean` on the engine's single cleaning thread.

        Accepts the same keyword arguments as :meth:`clean`.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="clean")
        return self._executor.submit(self.clean, report, **kwargs)

    def shutdown(self) -> None:
        """Stop the cleaning thread, waiting for a running clean to finish."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
