import itertools
import threading
import time
import unittest
from datetime import date, timedelta

from fakes import FailingFetcher, MemorySnapshotStore, TimelineFetcher, make_document

from bwbarchive.config import ARCHIVE_MIN_DATE
from bwbarchive.sync.coordinator import SyncCoordinator
from bwbarchive.sync.scanner import ScanResult, ScanStatus, VersionScanner


class SleepyScanner:
    def __init__(self, bwb_id, delay=0.01, status=ScanStatus.COMPLETED):
        self.bwb_id = bwb_id
        self.delay = delay
        self.status = status

    def run(self):
        time.sleep(self.delay)
        return ScanResult(bwb_id=self.bwb_id, status=self.status, probes=1)


class RecordingFactory:
    def __init__(self, make=None):
        self.calls = []
        self.running = 0
        self.peak = 0
        self._lock = threading.Lock()
        self._make = make or (lambda bwb_id, event: SleepyScanner(bwb_id))

    def __call__(self, bwb_id, cancel_event):
        with self._lock:
            self.calls.append(bwb_id)
        inner = self._make(bwb_id, cancel_event)
        factory = self

        class Tracked:
            def run(self_inner):
                with factory._lock:
                    factory.running += 1
                    factory.peak = max(factory.peak, factory.running)
                try:
                    return inner.run()
                finally:
                    with factory._lock:
                        factory.running -= 1

        return Tracked()


class TestSyncCoordinator(unittest.TestCase):
    def test_rejects_zero_concurrency(self):
        with self.assertRaises(ValueError):
            SyncCoordinator(RecordingFactory(), concurrency=0)

    def test_bounded_parallelism_over_many_documents(self):
        factory = RecordingFactory()
        coordinator = SyncCoordinator(factory, concurrency=4)
        ids = [f"BWBR{i:07d}" for i in range(20)]
        report = coordinator.run(ids)
        self.assertEqual(report.started, 20)
        self.assertEqual(report.completed, 20)
        self.assertEqual(report.probes, 20)
        self.assertLessEqual(report.max_active, 4)
        self.assertLessEqual(factory.peak, 4)
        self.assertEqual(sorted(factory.calls), ids)
        self.assertEqual(coordinator.active, 0)

    def test_stream_shorter_than_concurrency(self):
        factory = RecordingFactory()
        report = SyncCoordinator(factory, concurrency=8).run(iter(["BWBR0000001", "BWBR0000002"]))
        self.assertEqual(report.started, 2)
        self.assertEqual(report.completed, 2)
        self.assertLessEqual(report.max_active, 2)

    def test_empty_stream(self):
        report = SyncCoordinator(RecordingFactory(), concurrency=3).run([])
        self.assertEqual(report.started, 0)
        self.assertEqual(report.completed, 0)

    def test_one_failing_scan_does_not_stop_the_others(self):
        class Exploding:
            def run(self):
                raise RuntimeError("boom")

        def make(bwb_id, event):
            if bwb_id == "BAD":
                return Exploding()
            if bwb_id == "ABORT":
                return SleepyScanner(bwb_id, status=ScanStatus.ABORTED)
            return SleepyScanner(bwb_id)

        report = SyncCoordinator(RecordingFactory(make), concurrency=2).run(["A", "BAD", "B", "ABORT", "C"])
        self.assertEqual(report.started, 5)
        self.assertEqual(report.failed, 1)
        self.assertEqual(report.aborted, 1)
        self.assertEqual(report.completed, 3)

    def test_duplicate_ids_are_scanned_once(self):
        factory = RecordingFactory()
        report = SyncCoordinator(factory, concurrency=2).run(["A", "B", "A", "C", "B"])
        self.assertEqual(sorted(factory.calls), ["A", "B", "C"])
        self.assertEqual(report.skipped_duplicates, 2)
        self.assertEqual(report.started, 3)

    def test_cancel_before_run_dispatches_nothing(self):
        factory = RecordingFactory()
        coordinator = SyncCoordinator(factory, concurrency=2)
        coordinator.cancel()
        report = coordinator.run(["A", "B"])
        self.assertEqual(report.started, 0)
        self.assertEqual(factory.calls, [])

    def test_cancel_stops_consuming_an_unbounded_stream(self):
        def make(bwb_id, event):
            if int(bwb_id.split("-")[1]) >= 5:
                event.set()
                return SleepyScanner(bwb_id, delay=0, status=ScanStatus.CANCELLED)
            return SleepyScanner(bwb_id)

        ids = (f"doc-{i}" for i in itertools.count())
        report = SyncCoordinator(RecordingFactory(make), concurrency=2).run(ids)
        self.assertGreaterEqual(report.started, 6)
        self.assertLessEqual(report.started, 7)
        self.assertGreaterEqual(report.cancelled, 1)

    def test_real_scanners_share_one_store(self):
        min_date = ARCHIVE_MIN_DATE
        today = min_date + timedelta(days=400)
        change = min_date + timedelta(days=200)
        timelines = {
            f"BWBR{i:07d}": [
                (min_date, make_document(f"BWBR{i:07d}", "A")),
                (change, make_document(f"BWBR{i:07d}", "B")),
            ]
            for i in range(6)
        }
        store = MemorySnapshotStore()
        fetcher = TimelineFetcher(timelines)

        def make(bwb_id, event):
            if bwb_id == "BWBR0000003":
                return VersionScanner(bwb_id, FailingFetcher(), store, today=lambda: today, cancel_event=event)
            return VersionScanner(bwb_id, fetcher, store, today=lambda: today, cancel_event=event)

        report = SyncCoordinator(RecordingFactory(make), concurrency=3).run(sorted(timelines))
        self.assertEqual(report.completed, 5)
        self.assertEqual(report.aborted, 1)
        self.assertEqual(report.inserted, 10)
        for bwb_id in timelines:
            expected = [] if bwb_id == "BWBR0000003" else [min_date, change]
            self.assertEqual(store.publication_dates(bwb_id), expected)
        self.assertIsInstance(store.publication_dates("BWBR0000000")[0], date)


if __name__ == "__main__":
    unittest.main()
