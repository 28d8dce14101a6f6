"""Tests for tracker.store.progress module."""

from datetime import datetime, timezone

import pytest

from tracker.store.models import ProgressAction, ProgressEntry
from tracker.store.progress import ProgressLog, format_line, parse_line

NOW = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)


class TestLineFormat:
    """Reading and writing single progress lines."""

    def test_format_line(self):
        entry = ProgressEntry(
            timestamp=datetime(2026, 1, 15, 9, 30, 15, 500000, tzinfo=timezone.utc),
            action=ProgressAction.FEATURE_ADDED,
            description="Added feature-001: Login form",
        )
        line = format_line(entry)
        assert line.startswith("[2026-01-15T")
        assert line.endswith("] [feature_added] Added feature-001: Login form")
        # seconds precision, explicit offset
        stamp = line[1:line.index("]")]
        assert "." not in stamp
        assert stamp[-6] in "+-"

    def test_written_line_reads_back(self):
        entry = ProgressEntry(
            timestamp=datetime(2026, 1, 15, 9, 30, 15, tzinfo=timezone.utc),
            action=ProgressAction.FEATURE_COMPLETED,
            description="Completed feature-003: Checkout",
        )
        parsed = parse_line(format_line(entry))
        assert parsed.timestamp == entry.timestamp
        assert parsed.action == ProgressAction.FEATURE_COMPLETED
        assert parsed.description == "Completed feature-003: Checkout"
        assert parsed.feature_id == "feature-003"

    def test_multiline_description_flattened(self):
        entry = ProgressEntry(timestamp=NOW, action=ProgressAction.INFO, description="first\nsecond")
        assert format_line(entry).endswith("[info] first second")

    def test_legacy_line_without_offset_is_local_time(self):
        parsed = parse_line("[2026-01-15 09:00:00] [feature_started] Started feature-002: Search")
        assert parsed.timestamp == datetime(2026, 1, 15, 9, 0).astimezone()
        assert parsed.action == ProgressAction.FEATURE_STARTED
        assert parsed.feature_id == "feature-002"

    def test_simple_legacy_format(self):
        parsed = parse_line("2026-01-15 09:00:00 - Kicked off sprint")
        assert parsed.action == ProgressAction.INFO
        assert parsed.description == "Kicked off sprint"
        assert parsed.timestamp == datetime(2026, 1, 15, 9, 0).astimezone()

    def test_unknown_action_becomes_info(self):
        parsed = parse_line("[2026-01-15T09:00:00+00:00] [deployed] Shipped to staging")
        assert parsed.action == ProgressAction.INFO
        assert parsed.details == {"raw_action": "deployed"}

    def test_unparsable_line_stamped_with_load_time(self):
        parsed = parse_line("something happened to feature-010", now=NOW)
        assert parsed.timestamp == NOW
        assert parsed.action == ProgressAction.INFO
        assert parsed.description == "something happened to feature-010"
        assert parsed.feature_id == "feature-010"
        assert parsed.details["unparsed"] is True

    def test_bad_bracketed_timestamp_is_unparsed(self):
        parsed = parse_line("[yesterday] [info] note", now=NOW)
        assert parsed.timestamp == NOW
        assert parsed.details.get("unparsed") is True


class TestProgressLog:
    """Capped append-only log."""

    def test_append_stamps_entry(self):
        log = ProgressLog()
        entry = log.append(ProgressAction.INFO, "hello", details={"k": 1})
        assert entry.timestamp.tzinfo is not None
        assert log.entries() == [entry]

    def test_cap_evicts_oldest(self):
        log = ProgressLog(cap=1000)
        for i in range(1001):
            log.append(ProgressAction.INFO, f"entry {i}")
        entries = log.entries()
        assert len(entries) == 1000
        assert entries[0].description == "entry 1"
        assert entries[-1].description == "entry 1000"

    def test_entries_limit_returns_newest(self):
        log = ProgressLog()
        for i in range(5):
            log.append(ProgressAction.INFO, f"entry {i}")
        assert [e.description for e in log.entries(2)] == ["entry 3", "entry 4"]
        assert log.entries(0) == []
        assert len(log.entries(50)) == 5

    def test_cap_must_be_positive(self):
        with pytest.raises(ValueError, match="must be positive"):
            ProgressLog(cap=0)

    def test_from_text_applies_cap(self):
        text = "".join(f"[2026-01-15T09:00:{i:02d}+00:00] [info] line {i}\n" for i in range(10))
        log = ProgressLog.from_text(text, cap=3)
        assert [e.description for e in log.entries()] == ["line 7", "line 8", "line 9"]

    def test_from_text_skips_blank_lines_and_warns_on_garbage(self, caplog):
        text = "\n[2026-01-15T09:00:00+00:00] [info] ok\n\nrandom scribble\n"
        log = ProgressLog.from_text(text, now=NOW)
        assert len(log) == 2
        assert "1 progress line(s) had no recognizable timestamp" in caplog.text

    def test_empty_log_text(self):
        assert ProgressLog().to_text() == ""


class TestProgressFile:
    def test_save_and_load(self, tmp_path):
        path = tmp_path / "claude-progress.txt"
        log = ProgressLog()
        log.append(ProgressAction.FEATURE_ADDED, "Added feature-001: Login")
        log.append(ProgressAction.TEST_FAILED, "Test t1 failed for feature-001")
        log.save(path)

        loaded = ProgressLog.load(path)
        assert [e.action for e in loaded.entries()] == [
            ProgressAction.FEATURE_ADDED,
            ProgressAction.TEST_FAILED,
        ]
        assert all(e.feature_id == "feature-001" for e in loaded.entries())
        assert path.read_text().count("\n") == 2

    def test_load_missing(self, tmp_path):
        assert ProgressLog.load(tmp_path / "claude-progress.txt") is None
