#!/usr/bin/env python3
"""Snapshot sync worker.

Runs one sync pass over every catalog document of the configured kind, or
keeps doing so on a schedule (SYNC_MODE=scheduled). Each pass resumes every
document from its latest stored snapshot.
"""

from __future__ import annotations

import logging
import os
import signal
import sys
import threading
import time

import schedule

from bwbarchive.config import ArchiveConfig, load_config
from bwbarchive.storage.postgres_schema import ensure_postgres_schema
from bwbarchive.sync.runner import run_sync

logger = logging.getLogger(__name__)

_stop = threading.Event()


def run_once(config: ArchiveConfig) -> None:
    ensure_postgres_schema(config.pg_dsn)
    report = run_sync(config, cancel_event=_stop)
    print(f"[sync] {report.summary()}")


def run_scheduled(config: ArchiveConfig) -> None:
    run_once(config)
    schedule.every(config.sync_interval_hours).hours.do(run_once, config)
    while not _stop.is_set():
        schedule.run_pending()
        time.sleep(5)


def _handle_signal(signum, _frame) -> None:
    logger.info("Received signal %s, stopping after in-flight probes", signum)
    _stop.set()


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    config = load_config()
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    mode = (os.environ.get("SYNC_MODE") or "once").lower().strip()
    if mode in ("scheduled", "daemon"):
        run_scheduled(config)
    else:
        run_once(config)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
