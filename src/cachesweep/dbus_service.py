"""D-Bus service for GUI communication.

D-Bus methods use PascalCase per D-Bus convention, and type signatures
like "as" and "(ss)" are D-Bus protocol types, not Python syntax.

Scanning and cleaning run on worker threads; every signal is emitted from
the event loop thread via ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import threading
from concurrent.futures import Future
from typing import Any

from dbus_next.aio import MessageBus
from dbus_next.service import ServiceInterface, method, signal
from dbus_next import BusType

from cachesweep.core.engine import CleanupEngine
from cachesweep.core.locations import roots_for
from cachesweep.models.category import Category
from cachesweep.models.clean_result import CleanupOutcome
from cachesweep.settings import Settings
from cachesweep.utils import outcome_to_dict, report_to_dict

log = logging.getLogger(__name__)

_BUS_NAME = "io.github.cachesweep"
_OBJECT_PATH = "/io/github/cachesweep"
_INTERFACE = "io.github.cachesweep.Manager"


# noinspection PyPep8Naming
class CacheSweepDBusService(ServiceInterface):
    """D-Bus service interface for cachesweep.

    The PascalCase methods are thin D-Bus wrappers around :meth:`run_scan`,
    :meth:`start_clean` and :meth:`cancel_clean`.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, engine: CleanupEngine | None = None) -> None:
        super().__init__(_INTERFACE)
        self._loop = loop
        self._engine = engine or CleanupEngine.from_settings(Settings())
        self._clean_future: Future[CleanupOutcome] | None = None
        self._cancel: threading.Event | None = None

    def _emit(self, sig, *args) -> None:
        self._loop.call_soon_threadsafe(sig, *args)

    @property
    def cleaning(self) -> bool:
        """True while a clean started through this service is queued or running."""
        return self._clean_future is not None and not self._clean_future.done()

    def list_categories(self) -> list[dict[str, Any]]:
        return [
            {
                "id": c.value,
                "name": c.label,
                "description": c.description,
                "roots": [str(p) for p in roots_for(c, self._engine.scanner.home)],
            }
            for c in Category
        ]

    async def run_scan(self, categories: list[str]) -> dict[str, Any]:
        """Scan on a worker thread so progress signals go out while it runs."""
        try:
            selected = [Category.parse(c) for c in categories] if categories else None
        except ValueError as e:
            return {"error": str(e)}

        scan = functools.partial(
            self._engine.scan,
            selected,
            on_discovered=lambda cat, count, size: self._emit(self.ScanProgress, cat.value, count, size),
            on_category_done=lambda cat, fraction: self._emit(self.CategoryDone, cat.value, fraction),
        )
        report = await self._loop.run_in_executor(None, scan)
        return report_to_dict(report)

    def start_clean(self, item_ids: list[str], live: bool) -> dict[str, Any]:
        """Start cleaning the last scan in the background.

        *item_ids*, when given, is the selection snapshot: only those items
        are cleaned. Only one clean may be queued or running at a time.
        """
        if self.cleaning:
            return {"error": "A clean is already running"}

        report = self._engine.last_report
        if report is None:
            return {"error": "No scan results to clean"}

        selection = None
        if item_ids:
            unknown = [i for i in item_ids if report.find(i) is None]
            if unknown:
                return {"error": f"Unknown item ids: {', '.join(unknown)}"}
            wanted = set(item_ids)
            selection = {item.id: item.id in wanted for item in report.items()}

        cancel = threading.Event()

        def on_progress(p) -> None:
            self._emit(self.CleanProgress, p.processed, p.total, p.reclaimed_bytes, p.eta_seconds, p.current_name)

        def on_finished(outcome: CleanupOutcome) -> None:
            self._emit(self.CleanFinished, json.dumps(outcome_to_dict(outcome)))

        future = self._engine.submit_clean(
            report,
            live=live,
            selection=selection,
            cancel=cancel,
            on_progress=on_progress,
            on_finished=on_finished,
        )
        self._cancel = cancel
        self._clean_future = future
        future.add_done_callback(self._on_clean_done)
        return {"status": "started"}

    def cancel_clean(self) -> bool:
        """Ask the running clean to stop. Returns False if nothing was running."""
        if not self.cleaning or self._cancel is None or self._cancel.is_set():
            return False
        self._cancel.set()
        return True

    def _on_clean_done(self, future: Future[CleanupOutcome]) -> None:
        exc = future.exception()
        if exc is not None:
            log.error("Clean failed: %s", exc)
            self._emit(self.CleanError, str(exc))

    @method()
    def ListCategories(self) -> "s":  # type: ignore[override]
        """List cleanup categories as JSON."""
        return json.dumps(self.list_categories())

    @method()
    async def Scan(self, categories: "as") -> "s":  # type: ignore[override]
        """Scan the given categories (all if empty), returning the report as JSON."""
        return json.dumps(await self.run_scan(categories))

    @method()
    def Clean(self, item_ids: "as", live: "b") -> "s":  # type: ignore[override]
        """Start a background clean; progress arrives as ``CleanProgress`` signals."""
        return json.dumps(self.start_clean(item_ids, bool(live)))

    @method()
    def Cancel(self) -> "b":  # type: ignore[override]
        """Ask a running clean to stop."""
        return self.cancel_clean()

    @signal()
    def ScanProgress(self, category: str, items: int, size: int) -> "(sut)":  # type: ignore[override]
        return [category, items, size]

    @signal()
    def CategoryDone(self, category: str, fraction: float) -> "(sd)":  # type: ignore[override]
        return [category, fraction]

    @signal()
    def CleanProgress(
        self, processed: int, total: int, reclaimed: int, eta: float, name: str
    ) -> "(uutds)":  # type: ignore[override]
        return [processed, total, reclaimed, eta, name]

    @signal()
    def CleanFinished(self, outcome: str) -> "s":  # type: ignore[override]
        return outcome

    @signal()
    def CleanError(self, message: str) -> "s":  # type: ignore[override]
        return message


async def run_service() -> None:
    """Start the D-Bus service."""
    bus = await MessageBus(bus_type=BusType.SESSION).connect()
    service = CacheSweepDBusService(asyncio.get_running_loop())
    bus.export(_OBJECT_PATH, service)
    await bus.request_name(_BUS_NAME)
    log.info("D-Bus service started on %s", _BUS_NAME)
    await bus.wait_for_disconnect()


def start_service() -> None:
    """Entry point to start the D-Bus service."""
    asyncio.run(run_service())
