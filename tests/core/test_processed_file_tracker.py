import threading

from hdfs_watcher.core.processed_file_tracker import ProcessedFileStore, ProcessedFileTracker


class TestProcessedFileTracker:
    def test_starts_empty(self):
        tracker = ProcessedFileTracker()

        assert tracker.count() == 0
        assert tracker.snapshot() == frozenset()

    def test_is_a_processed_file_store(self):
        assert isinstance(ProcessedFileTracker(), ProcessedFileStore)

    def test_mark_processed_is_idempotent(self):
        tracker = ProcessedFileTracker()

        tracker.mark_processed("h1")
        tracker.mark_processed("h1")

        assert tracker.is_processed("h1")
        assert tracker.count() == 1

    def test_mark_for_reprocessing_round_trip(self):
        tracker = ProcessedFileTracker()
        tracker.mark_processed("h1")

        assert tracker.mark_for_reprocessing("h1") is True
        assert not tracker.is_processed("h1")

    def test_mark_for_reprocessing_unknown_hash_is_noop(self):
        tracker = ProcessedFileTracker()

        assert tracker.mark_for_reprocessing("unknown") is False
        assert tracker.count() == 0

    def test_clear_all_returns_count_and_empties(self):
        tracker = ProcessedFileTracker()
        for h in ("h1", "h2", "h3"):
            tracker.mark_processed(h)

        assert tracker.clear_all() == 3
        assert tracker.count() == 0
        assert tracker.clear_all() == 0

    def test_snapshot_is_a_copy(self):
        tracker = ProcessedFileTracker()
        tracker.mark_processed("h1")

        snapshot = tracker.snapshot()
        tracker.mark_processed("h2")

        assert snapshot == frozenset({"h1"})

    def test_concurrent_marking_from_threads(self):
        tracker = ProcessedFileTracker()

        def mark_range(start):
            for i in range(start, start + 200):
                tracker.mark_processed(f"h{i}")

        threads = [threading.Thread(target=mark_range, args=(n * 100,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tracker.count() == 500
