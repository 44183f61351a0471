"""Run version scans over a stream of document ids with bounded parallelism."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ALL_COMPLETED, FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Protocol

from bwbarchive.sync.scanner import ScanResult, ScanStatus

logger = logging.getLogger(__name__)


class Scanner(Protocol):
    def run(self) -> ScanResult: ...


ScannerFactory = Callable[[str, threading.Event], Scanner]


@dataclass
class SyncReport:
    started: int = 0
    completed: int = 0
    aborted: int = 0
    cancelled: int = 0
    failed: int = 0
    skipped_duplicates: int = 0
    inserted: int = 0
    probes: int = 0
    max_active: int = 0

    def summary(self) -> str:
        return (
            f"started={self.started} completed={self.completed} aborted={self.aborted} "
            f"cancelled={self.cancelled} failed={self.failed} new_versions={self.inserted} "
            f"probes={self.probes} max_active={self.max_active}"
        )


class SyncCoordinator:
    """Keeps at most `concurrency` scans in flight.

    Ids are pulled from the stream lazily: a new id is only taken once a slot
    is free, so an unbounded stream is fine and a stream shorter than the
    concurrency limit simply runs fewer workers.
    """

    def __init__(
        self,
        scanner_factory: ScannerFactory,
        concurrency: int = 8,
        *,
        cancel_event: Optional[threading.Event] = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.scanner_factory = scanner_factory
        self.concurrency = concurrency
        self.cancel_event = cancel_event or threading.Event()
        self._active = 0
        self._active_lock = threading.Lock()
        self._report = SyncReport()

    @property
    def active(self) -> int:
        with self._active_lock:
            return self._active

    def cancel(self) -> None:
        """Stop dispatching; running scans stop before their next fetch or write."""
        self.cancel_event.set()

    def _scan(self, bwb_id: str) -> ScanResult:
        with self._active_lock:
            self._active += 1
            if self._active > self._report.max_active:
                self._report.max_active = self._active
        try:
            scanner = self.scanner_factory(bwb_id, self.cancel_event)
            return scanner.run()
        finally:
            with self._active_lock:
                self._active -= 1

    def _collect(self, fut: Future, bwb_id: str) -> None:
        report = self._report
        try:
            result = fut.result()
        except Exception:
            report.failed += 1
            logger.exception("Sync of %s failed unexpectedly", bwb_id)
            return
        report.inserted += result.inserted
        report.probes += result.probes
        if result.status is ScanStatus.COMPLETED:
            report.completed += 1
        elif result.status is ScanStatus.CANCELLED:
            report.cancelled += 1
        else:
            report.aborted += 1

    def run(self, bwb_ids: Iterable[str]) -> SyncReport:
        """Scan every distinct id of the stream once; return when all scans finished."""
        self._report = report = SyncReport()
        seen = set()
        pending: Dict[Future, str] = {}

        def drain(return_when) -> None:
            done, _ = wait(list(pending), return_when=return_when)
            for fut in done:
                self._collect(fut, pending.pop(fut))

        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="bwb-sync") as executor:
            try:
                for bwb_id in bwb_ids:
                    if bwb_id in seen:
                        report.skipped_duplicates += 1
                        continue
                    seen.add(bwb_id)
                    while len(pending) >= self.concurrency:
                        drain(FIRST_COMPLETED)
                    if self.cancel_event.is_set():
                        logger.info("Sync cancelled; not dispatching further documents")
                        break
                    pending[executor.submit(self._scan, bwb_id)] = bwb_id
                    report.started += 1
            finally:
                if pending:
                    drain(ALL_COMPLETED)

        logger.info("Sync run finished: %s", report.summary())
        return report
