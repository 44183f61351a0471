"""Adaptive version discovery for a single BWB document.

The source can only be asked "what did document X look like on day D", and
versions are long-lived, so the scanner walks forward in coarse steps while the
content hash is already archived. When an unknown hash shows up it rewinds to
the day after the last coarse probe and walks the suspect interval one day at a
time until the new version appears, records it, and resumes coarse stepping.
If the day walk reaches the probe that saw the unknown hash without finding a
change, that response was a one-off and coarse stepping resumes from there.

Progress is only made durable through stored snapshots: an aborted scan
resumes next time from the latest stored publication date.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional, Protocol

from bwbarchive.config import ARCHIVE_MIN_DATE, ArchiveConfig
from bwbarchive.errors import FetchError, StorageError
from bwbarchive.storage.snapshot_types import InsertResult, SnapshotStore, content_hash

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    def fetch(self, document_id: str, as_of: date) -> bytes: ...


class ScanMode(enum.Enum):
    COARSE = "coarse"
    LOCALIZING = "localizing"


class ScanStatus(enum.Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class ScanCancelled(Exception):
    pass


@dataclass
class ScanResult:
    bwb_id: str
    status: ScanStatus = ScanStatus.COMPLETED
    start_date: Optional[date] = None
    probes: int = 0
    inserted: int = 0
    duplicates: int = 0
    error: Optional[str] = None


def resume_cursor(last_known: Any, min_date: date = ARCHIVE_MIN_DATE) -> date:
    """Date a scan resumes from: the latest stored pubdate, never before min_date.

    Missing or malformed stored values fall back to min_date.
    """
    if last_known is None:
        return min_date
    if isinstance(last_known, datetime):
        last_known = last_known.date()
    elif isinstance(last_known, str):
        parsed = None
        for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
            try:
                parsed = datetime.strptime(last_known.strip()[:10], fmt).date()
                break
            except ValueError:
                continue
        if parsed is None:
            logger.warning("Malformed stored date %r, resuming from %s", last_known, min_date)
            return min_date
        last_known = parsed
    elif not isinstance(last_known, date):
        logger.warning("Unexpected stored date %r, resuming from %s", last_known, min_date)
        return min_date
    return max(last_known, min_date)


class VersionScanner:
    def __init__(
        self,
        bwb_id: str,
        fetcher: Fetcher,
        store: SnapshotStore,
        *,
        coarse_step: timedelta = timedelta(days=62),
        fine_step: timedelta = timedelta(days=1),
        min_date: date = ARCHIVE_MIN_DATE,
        today: Optional[Callable[[], date]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        if fine_step <= timedelta(0) or coarse_step <= fine_step:
            raise ValueError("steps must satisfy 0 < fine_step < coarse_step")
        self.bwb_id = bwb_id
        self.fetcher = fetcher
        self.store = store
        self.coarse_step = coarse_step
        self.fine_step = fine_step
        self.min_date = min_date
        self._today = today or date.today
        self._cancel_event = cancel_event

        self.probe_date: Optional[date] = None
        self.step_size = coarse_step
        self.mode = ScanMode.COARSE
        # Hash of the last coarse probe: the version current before a suspect interval.
        self._baseline_hash: Optional[str] = None
        # Coarse probe that saw the unknown hash; the day walk never goes past it.
        self.localize_until: Optional[date] = None
        self.result = ScanResult(bwb_id=bwb_id)

    @classmethod
    def from_config(
        cls,
        bwb_id: str,
        fetcher: Fetcher,
        store: SnapshotStore,
        config: ArchiveConfig,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> "VersionScanner":
        return cls(
            bwb_id,
            fetcher,
            store,
            coarse_step=timedelta(days=config.coarse_step_days),
            fine_step=timedelta(days=config.fine_step_days),
            min_date=config.min_date,
            cancel_event=cancel_event,
        )

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise ScanCancelled()

    def start(self) -> date:
        """Reset scan state to the resume cursor and return it."""
        self._check_cancelled()
        self.probe_date = resume_cursor(self.store.last_known_date(self.bwb_id), self.min_date)
        self.step_size = self.coarse_step
        self.mode = ScanMode.COARSE
        self._baseline_hash = None
        self.localize_until = None
        self.result.start_date = self.probe_date
        return self.probe_date

    def enter_localizing(self) -> None:
        """Rewind to the day after the last coarse probe and switch to day steps."""
        self.mode = ScanMode.LOCALIZING
        self.step_size = self.fine_step
        self.localize_until = self.probe_date
        self.probe_date = self.probe_date - (self.coarse_step - self.fine_step)

    def _resume_coarse(self, current_hash: str) -> None:
        self.mode = ScanMode.COARSE
        self.step_size = self.coarse_step
        self._baseline_hash = current_hash
        self.probe_date = self.probe_date + self.coarse_step

    def _record(self, hash_: str, content: bytes) -> None:
        self._check_cancelled()
        outcome = self.store.insert(self.bwb_id, hash_, self.probe_date, content)
        if outcome is InsertResult.INSERTED:
            self.result.inserted += 1
            logger.info("NEW VERSION %s %s", self.bwb_id, self.probe_date.isoformat())
        else:
            self.result.duplicates += 1
            logger.debug("Snapshot %s for %s already stored", hash_[:12], self.bwb_id)

    def step(self) -> None:
        """Probe the current date once and move the scan state forward."""
        self._check_cancelled()
        content = self.fetcher.fetch(self.bwb_id, self.probe_date)
        first_probe = self.result.probes == 0
        self.result.probes += 1
        hash_ = content_hash(content)
        self._check_cancelled()
        known = self.store.hash_exists(hash_)

        if self.mode is ScanMode.COARSE:
            if known:
                self._baseline_hash = hash_
                self.probe_date = self.probe_date + self.coarse_step
            elif first_probe:
                # Nothing earlier to localize against: the cursor is the earliest date.
                self._record(hash_, content)
                self._resume_coarse(hash_)
            else:
                self.enter_localizing()
            return

        if not known:
            self._record(hash_, content)
            self._resume_coarse(hash_)
        elif hash_ == self._baseline_hash and self.probe_date < self.localize_until:
            self.probe_date = self.probe_date + self.fine_step
        else:
            # Another recorded version, or the walk reached the triggering probe
            # without a change (a one-off response): take it as current.
            self._resume_coarse(hash_)

    def run(self) -> ScanResult:
        """Scan until today, or until a fetch/storage failure or cancellation."""
        try:
            self.start()
            now = self._today()
            while self.probe_date < now:
                self.step()
        except FetchError as e:
            self.result.status = ScanStatus.ABORTED
            self.result.error = str(e)
            logger.warning("Sync of %s aborted at %s: %s", self.bwb_id, self.probe_date, e)
            return self.result
        except StorageError as e:
            self.result.status = ScanStatus.ABORTED
            self.result.error = str(e)
            logger.error("Sync of %s aborted on storage error: %s", self.bwb_id, e)
            return self.result
        except ScanCancelled:
            self.result.status = ScanStatus.CANCELLED
            logger.info("Sync of %s cancelled at %s", self.bwb_id, self.probe_date)
            return self.result
        logger.info(
            "Sync of %s complete (%d probes, %d new versions).",
            self.bwb_id,
            self.result.probes,
            self.result.inserted,
        )
        return self.result
