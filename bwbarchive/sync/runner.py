"""Wire the fetcher, snapshot store and catalog into one sync run."""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from bwbarchive.catalog.postgres_catalog import PostgresCatalog
from bwbarchive.config import ArchiveConfig
from bwbarchive.source.fetcher import BWBFetcher
from bwbarchive.storage.postgres_snapshots import PostgresSnapshotStore
from bwbarchive.storage.snapshot_types import SnapshotStore
from bwbarchive.sync.coordinator import SyncCoordinator, SyncReport
from bwbarchive.sync.scanner import Fetcher, VersionScanner

logger = logging.getLogger(__name__)


def build_coordinator(
    config: ArchiveConfig,
    *,
    store: SnapshotStore,
    fetcher: Fetcher,
    cancel_event: Optional[threading.Event] = None,
) -> SyncCoordinator:
    def make_scanner(bwb_id: str, event: threading.Event) -> VersionScanner:
        return VersionScanner.from_config(bwb_id, fetcher, store, config, cancel_event=event)

    return SyncCoordinator(make_scanner, config.concurrency, cancel_event=cancel_event)


def run_sync(
    config: ArchiveConfig,
    *,
    bwb_ids: Optional[Iterable[str]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SyncReport:
    """Scan every catalog document of the configured kind (or the given ids)."""
    store = PostgresSnapshotStore(config.pg_dsn)
    fetcher = BWBFetcher.from_config(config)
    coordinator = build_coordinator(config, store=store, fetcher=fetcher, cancel_event=cancel_event)
    if bwb_ids is None:
        bwb_ids = PostgresCatalog(config.pg_dsn).iter_document_ids(config.document_kind)
    logger.info(
        "Starting sync (kind=%s, concurrency=%d, coarse=%dd, fine=%dd)",
        config.document_kind,
        config.concurrency,
        config.coarse_step_days,
        config.fine_step_days,
    )
    return coordinator.run(bwb_ids)
