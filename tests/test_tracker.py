"""Tests for fingerprint-based change tracking."""

import json
import os

import pytest

from lintdesk.exceptions import FileTrackingError
from lintdesk.tracking import ChangeTracker

from conftest import write_sources


class TestHasChanged:
    def test_untracked_file_counts_as_changed(self, tmp_path, tracker):
        (path,) = write_sources(tmp_path, ["A.swift"])
        assert tracker.has_changed(path)

    def test_recorded_file_is_unchanged(self, tmp_path, tracker):
        (path,) = write_sources(tmp_path, ["A.swift"])
        tracker.record_analyzed(path)
        assert not tracker.has_changed(path)

    def test_recording_twice_is_idempotent(self, tmp_path, tracker):
        (path,) = write_sources(tmp_path, ["A.swift"])
        tracker.record_analyzed(path)
        first = tracker.fingerprint(path)
        tracker.record_analyzed(path)
        assert tracker.fingerprint(path) == first
        assert len(tracker) == 1

    def test_size_change_is_detected(self, tmp_path, tracker):
        (path,) = write_sources(tmp_path, ["A.swift"])
        tracker.record_analyzed(path)
        st = os.stat(path)
        with open(path, "a") as f:
            f.write("let y = 2\n")
        # keep mtime identical so only the size differs
        os.utime(path, (st.st_atime, st.st_mtime))
        assert tracker.has_changed(path)

    def test_mtime_change_is_detected(self, tmp_path, tracker):
        (path,) = write_sources(tmp_path, ["A.swift"])
        tracker.record_analyzed(path)
        st = os.stat(path)
        os.utime(path, (st.st_atime, st.st_mtime + 10))
        assert tracker.has_changed(path)

    def test_deleted_file_counts_as_changed(self, tmp_path, tracker):
        """Unreadable attributes fail open: the file is re-analysed."""
        (path,) = write_sources(tmp_path, ["A.swift"])
        tracker.record_analyzed(path)
        os.remove(path)
        assert tracker.has_changed(path)

    def test_changed_files_preserves_order(self, tmp_path, tracker):
        paths = write_sources(tmp_path, ["C.swift", "A.swift", "B.swift"])
        tracker.record_analyzed(paths[1])
        assert tracker.changed_files(paths) == [paths[0], paths[2]]


class TestRecording:
    def test_missing_file_raises_tracking_error(self, tmp_path, tracker):
        with pytest.raises(FileTrackingError):
            tracker.record_analyzed(str(tmp_path / "missing.swift"))

    def test_batch_records_readable_files_before_raising(self, tmp_path, tracker):
        (path,) = write_sources(tmp_path, ["A.swift"])
        with pytest.raises(FileTrackingError):
            tracker.record_analyzed_many([str(tmp_path / "missing.swift"), path])
        assert not tracker.has_changed(path)

    def test_untrack_and_clear(self, tmp_path, tracker):
        paths = write_sources(tmp_path, ["A.swift", "B.swift"])
        tracker.record_analyzed_many(paths)
        tracker.untrack(paths[0])
        assert tracker.has_changed(paths[0])
        assert not tracker.has_changed(paths[1])
        tracker.clear()
        assert len(tracker) == 0


class TestCachePersistence:
    def test_fingerprints_survive_reload(self, tmp_path):
        cache = tmp_path / "cache.json"
        (path,) = write_sources(tmp_path, ["A.swift"])
        ChangeTracker(cache).record_analyzed(path)

        reloaded = ChangeTracker(cache)
        assert not reloaded.has_changed(path)

    def test_cache_format(self, tmp_path):
        cache = tmp_path / "cache.json"
        (path,) = write_sources(tmp_path, ["A.swift"])
        ChangeTracker(cache).record_analyzed(path)

        data = json.loads(cache.read_text())
        assert set(data) == {path}
        assert data[path]["fileSize"] == os.path.getsize(path)
        assert "lastModified" in data[path]

    def test_missing_files_are_pruned_on_load(self, tmp_path):
        cache = tmp_path / "cache.json"
        paths = write_sources(tmp_path, ["A.swift", "B.swift"])
        ChangeTracker(cache).record_analyzed_many(paths)
        os.remove(paths[0])

        reloaded = ChangeTracker(cache)
        assert reloaded.tracked_paths() == [paths[1]]

    def test_corrupt_cache_is_a_cold_start(self, tmp_path):
        cache = tmp_path / "cache.json"
        cache.write_text("{not json")
        tracker = ChangeTracker(cache)
        assert len(tracker) == 0

    def test_unwritable_cache_does_not_raise(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        (path,) = write_sources(tmp_path, ["A.swift"])
        tracker = ChangeTracker(blocker / "cache.json")

        tracker.record_analyzed(path)

        assert not tracker.has_changed(path)

    def test_in_memory_tracker(self, tmp_path):
        (path,) = write_sources(tmp_path, ["A.swift"])
        tracker = ChangeTracker()
        tracker.record_analyzed(path)
        assert tracker.cache_path is None
        assert not tracker.has_changed(path)
