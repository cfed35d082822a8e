"""Tests for usage history persistence and decay."""

import csv
import os

import pytest

from liftoff.core.errors import HistoryLoadError, HistorySaveError
from liftoff.core.history import SECONDS_PER_HOUR, UsageHistory, elapsed_windows


def write_history(path, rows, mtime=None):
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "value", "num_used"])
        writer.writerows(rows)
    if mtime is not None:
        os.utime(path, (mtime, mtime))


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "history.csv"


class TestElapsedWindows:
    """Decay window arithmetic."""

    def test_disabled(self):
        assert elapsed_windows(1_000_000, 0, 0) == 0

    def test_whole_windows_only(self):
        window = 48 * SECONDS_PER_HOUR
        assert elapsed_windows(window * 10 + 5, window * 10, 48) == 0
        assert elapsed_windows(window * 12, window * 10, 48) == 2

    def test_boundary_crossing_counts(self):
        window = SECONDS_PER_HOUR
        assert elapsed_windows(window * 5 + 1, window * 5 - 1, 1) == 1

    def test_future_mtime_is_clamped(self):
        assert elapsed_windows(0, 10 * SECONDS_PER_HOUR, 1) == 0


class TestLoad:
    """Reading the backing store."""

    def test_missing_file_is_empty(self, history_path):
        history = UsageHistory.load(history_path, 48)
        assert len(history) == 0
        assert history.path == history_path
        assert not history_path.exists()

    def test_empty_file_is_empty(self, history_path):
        history_path.write_text("")
        assert len(UsageHistory.load(history_path)) == 0

    def test_decay_scenario(self, history_path):
        window = 48 * SECONDS_PER_HOUR
        now = 1000 * window + window // 2
        write_history(history_path, [["cat", "cat", 3]], mtime=now - 100 * SECONDS_PER_HOUR)

        history = UsageHistory.load(history_path, 48, now=now)

        assert history.get("cat").num_used == 1

    def test_decayed_records_are_dropped(self, history_path):
        now = 500 * SECONDS_PER_HOUR
        write_history(
            history_path,
            [["a", "a", 1], ["b", "b", 3], ["c", "c", 2]],
            mtime=now - 2 * SECONDS_PER_HOUR
        )

        history = UsageHistory.load(history_path, 1, now=now)

        assert [(r.name, r.num_used) for r in history.records] == [("b", 1)]
        assert all(r.num_used > 0 for r in history.records)

    def test_no_decay_when_interval_zero(self, history_path):
        write_history(history_path, [["a", "a", 2]], mtime=0)
        history = UsageHistory.load(history_path, 0)
        assert history.get("a").num_used == 2

    def test_zero_count_rows_are_not_kept(self, history_path):
        write_history(history_path, [["a", "a", 0], ["b", "b", 1]])
        history = UsageHistory.load(history_path, 0)
        assert [r.name for r in history.records] == ["b"]

    @pytest.mark.parametrize("rows", [
        [["a", "a", "many"]],
        [["a", "a", -1]],
        [["", "x", 1]],
    ])
    def test_corrupt_rows_raise(self, history_path, rows):
        write_history(history_path, rows)
        with pytest.raises(HistoryLoadError):
            UsageHistory.load(history_path, 0)

    def test_missing_column_raises(self, history_path):
        history_path.write_text("name,value\na,a\n")
        with pytest.raises(HistoryLoadError):
            UsageHistory.load(history_path, 0)

    def test_unreadable_path_raises(self, tmp_path):
        directory = tmp_path / "dir.csv"
        directory.mkdir()
        with pytest.raises(HistoryLoadError):
            UsageHistory.load(directory, 0)


class TestIncrementAndSave:
    """Mutation and persistence."""

    def test_increment_new_name(self, history_path):
        history = UsageHistory(history_path)
        record = history.increment("htop", "htop")
        assert record.num_used == 1
        assert len(history) == 1

    def test_increment_existing_overwrites_value(self, history_path):
        history = UsageHistory(history_path)
        history.increment("edit", "vim a.txt")
        history.increment("edit", "vim b.txt")
        record = history.get("edit")
        assert record.num_used == 2
        assert record.value == "vim b.txt"

    def test_round_trip_adds_increments(self, history_path):
        write_history(history_path, [["git", "git", 4]])
        history = UsageHistory.load(history_path, 0)
        for _ in range(3):
            history.increment("git", "git status")
        history.save()

        reloaded = UsageHistory.load(history_path, 0)
        assert reloaded.get("git").num_used == 7
        assert reloaded.get("git").value == "git status"

    def test_save_replaces_contents(self, history_path):
        history = UsageHistory(history_path)
        history.increment("a", "a")
        history.save()
        history.save()

        reloaded = UsageHistory.load(history_path, 0)
        assert [(r.name, r.num_used) for r in reloaded.records] == [("a", 1)]

    def test_save_escapes_delimiters(self, history_path):
        history = UsageHistory(history_path)
        history.increment("say, hi", 'echo "a,b"\necho done')
        history.save()

        reloaded = UsageHistory.load(history_path, 0)
        assert len(reloaded) == 1
        assert reloaded.records[0].name == "say, hi"
        assert reloaded.records[0].value == 'echo "a,b"\necho done'

    def test_save_creates_parent_directories(self, tmp_path):
        path = tmp_path / "cache" / "liftoff" / "default.csv"
        history = UsageHistory(path)
        history.increment("x", "x")
        history.save()
        assert path.exists()

    def test_save_failure_keeps_memory_state(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        history = UsageHistory(blocker / "history.csv")
        history.increment("x", "x")

        with pytest.raises(HistorySaveError):
            history.save()

        assert history.get("x").num_used == 1
        assert list(tmp_path.iterdir()) == [blocker]
