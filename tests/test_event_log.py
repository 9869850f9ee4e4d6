#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""Tests for the append-only EventLog."""

import json
import os
from pathlib import Path

import pytest

from conftest import transition, write_log_lines
from tomatolog.event_log import EventLog, get_default_log_path, parse_line
from tomatolog.models import AppStartEvent, TransitionEvent


def read_lines(path: Path):
    return path.read_text(encoding="utf-8").splitlines()


# =============================================================================
# Construction
# =============================================================================


class TestOpen:
    """Tests for opening and creating the log."""

    def test_creates_missing_file_and_parents(self, tmp_path: Path):
        path = tmp_path / "nested" / "dir" / "tomatolog.log"
        with EventLog(path) as log:
            assert log.writable
        assert path.exists()
        assert path.read_bytes() == b""

    def test_default_path_uses_state_dir(self, temp_state_dir: Path):
        assert get_default_log_path() == temp_state_dir / "tomatolog.log"
        with EventLog() as log:
            assert log.log_path == temp_state_dir / "tomatolog.log"

    def test_open_failure_disables_writes(self, tmp_path: Path, capsys):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")

        log = EventLog(blocker / "tomatolog.log")

        assert not log.writable
        assert log.append(AppStartEvent(timestamp=1)) is False
        assert log.remove_events("X") == 0
        assert log.read_all() == []
        assert "cannot open log file" in capsys.readouterr().err

    def test_open_failure_is_reported_to_debug_log(self, tmp_path: Path, temp_state_dir: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        EventLog(blocker / "tomatolog.log")

        debug_lines = (temp_state_dir / "debug.log").read_text().splitlines()
        events = [json.loads(line) for line in debug_lines]
        assert any(e["event"] == "storage_error" and e["op"] == "open" for e in events)

    def test_close_makes_append_a_noop(self, log_path: Path):
        log = EventLog(log_path)
        log.close()
        assert log.append(AppStartEvent(timestamp=1)) is False
        assert log_path.read_text() == ""


# =============================================================================
# Append
# =============================================================================


class TestAppend:
    """Tests for EventLog.append()."""

    def test_appends_one_sorted_line_per_event(self, log_path: Path):
        with EventLog(log_path) as log:
            assert log.append(AppStartEvent(timestamp=10))
            assert log.append(TransitionEvent(timestamp=11, from_state="idle", to_state="work", project="A"))

        assert read_lines(log_path) == [
            '{"timestamp":10,"type":"appstart"}',
            '{"fromState":"idle","project":"A","timestamp":11,"toState":"work","type":"transition"}',
        ]

    def test_appends_after_existing_content(self, log_path: Path):
        log_path.write_text('{"type":"appstart","timestamp":1}\n')
        with EventLog(log_path) as log:
            log.append(AppStartEvent(timestamp=2))

        lines = read_lines(log_path)
        assert len(lines) == 2
        assert lines[0] == '{"type":"appstart","timestamp":1}'

    def test_append_is_visible_without_closing(self, log_path: Path):
        log = EventLog(log_path)
        log.append_transition("idle", "work", "A", timestamp=5)
        assert len(read_lines(log_path)) == 1
        log.close()

    def test_append_helpers_default_timestamp_to_now(self, log_path: Path, monkeypatch):
        monkeypatch.setattr("tomatolog.event_log.time.time", lambda: 1234.5)
        with EventLog(log_path) as log:
            log.append_app_start()
            log.append_transition("work", "rest", "A", event="timerFired")

        first, second = [json.loads(line) for line in read_lines(log_path)]
        assert first == {"timestamp": 1234.5, "type": "appstart"}
        assert second["timestamp"] == 1234.5
        assert second["event"] == "timerFired"

    def test_unencodable_project_is_not_written(self, log_path: Path):
        with EventLog(log_path) as log:
            assert log.append_transition("idle", "work", "\udcff", timestamp=1) is False
            assert log.append_transition("idle", "work", "A", timestamp=2) is True
        assert [json.loads(line)["project"] for line in read_lines(log_path)] == ["A"]

    def test_append_failure_returns_false(self, log_path: Path, monkeypatch):
        log = EventLog(log_path)

        def broken_fsync(fd):
            raise OSError("disk full")

        monkeypatch.setattr("tomatolog.event_log.os.fsync", broken_fsync)
        assert log.append(AppStartEvent(timestamp=1)) is False
        log.close()


# =============================================================================
# Read
# =============================================================================


class TestReadAll:
    """Tests for EventLog.read_all() and read_events()."""

    def test_missing_file_reads_empty(self, tmp_path: Path):
        log = EventLog(tmp_path / "tomatolog.log")
        log.close()
        (tmp_path / "tomatolog.log").unlink()
        assert log.read_all() == []

    def test_returns_only_transitions(self, log_path: Path):
        write_log_lines(log_path, [
            {"type": "appstart", "timestamp": 1},
            transition(2, "idle", "work", "A"),
            transition(3, "work", "rest", "A"),
        ])
        with EventLog(log_path) as log:
            events = log.read_all()
            assert [e.timestamp for e in events] == [2, 3]
            assert all(isinstance(e, TransitionEvent) for e in events)
            assert len(log.read_events()) == 3

    def test_skips_malformed_lines(self, log_path: Path):
        write_log_lines(log_path, [
            "not json at all",
            "",
            "[1, 2, 3]",
            '{"type": "transition", "timestamp": "soon"}',
            '{"type": "something-else", "timestamp": 4}',
            transition(5, "idle", "work", "A"),
            '{"type": "transition", "timestamp": 6, "project": 7}',
        ])
        with EventLog(log_path) as log:
            assert [e.timestamp for e in log.read_all()] == [5]

    def test_preserves_file_order(self, log_path: Path):
        write_log_lines(log_path, [transition(9, "idle", "work"), transition(3, "work", "idle")])
        with EventLog(log_path) as log:
            assert [e.timestamp for e in log.read_all()] == [9, 3]

    def test_non_utf8_file_reads_empty(self, log_path: Path):
        log_path.write_bytes(b'{"type":"appstart","timestamp":1}\n\xff\xfe\xfa\n')
        with EventLog(log_path) as log:
            assert log.read_all() == []
            assert log.read_events() == []

    def test_timestamp_too_large_for_float_is_skipped(self, log_path: Path):
        log_path.write_text(
            '{"type":"transition","timestamp":' + "9" * 400 + ',"toState":"work"}\n'
            + json.dumps(transition(5, "idle", "work", "A")) + "\n"
        )
        with EventLog(log_path) as log:
            assert [e.timestamp for e in log.read_all()] == [5]

    def test_deeply_nested_line_is_skipped(self, log_path: Path):
        log_path.write_text("[" * 100000 + "\n" + json.dumps(transition(5, "idle", "work", "A")) + "\n")
        with EventLog(log_path) as log:
            assert [e.timestamp for e in log.read_all()] == [5]

    def test_crlf_line_endings(self, log_path: Path):
        log_path.write_bytes(b'{"type":"transition","timestamp":1,"toState":"work"}\r\n')
        with EventLog(log_path) as log:
            assert len(log.read_all()) == 1


class TestParseLine:
    """Tests for parse_line()."""

    def test_blank(self):
        assert parse_line("   \n") is None

    def test_invalid_json(self):
        assert parse_line("{oops") is None

    def test_valid(self):
        assert parse_line('{"type":"appstart","timestamp":7}\n') == AppStartEvent(timestamp=7)


# =============================================================================
# Purge
# =============================================================================


class TestRemoveEvents:
    """Tests for EventLog.remove_events()."""

    def test_removes_matching_project_case_insensitively(self, log_path: Path):
        write_log_lines(log_path, [
            transition(1, "idle", "work", "Alpha"),
            transition(2, "work", "idle", "ALPHA"),
            transition(3, "idle", "work", "  alpha  "),
            transition(4, "idle", "work", "Beta"),
        ])
        with EventLog(log_path) as log:
            removed = log.remove_events("alpha")
            assert removed == 3
            assert [e.project for e in log.read_all()] == ["Beta"]

    def test_other_lines_preserved_byte_for_byte(self, log_path: Path):
        keep = [
            '{"fromState":"idle","project":"Beta","timestamp":1,"toState":"work","type":"transition"}',
            '{"timestamp":2,"type":"appstart"}',
            "garbage that is not json",
            '{"project": 12, "type": "transition"}',
            '{"project": "   ", "timestamp": 3}',
            '{"fromState":"idle","timestamp":4,"toState":"work","type":"transition"}',
        ]
        drop = '{"project":"Alpha","timestamp":5,"type":"transition"}'
        log_path.write_text("\n".join([keep[0], drop, *keep[1:]]) + "\n", encoding="utf-8")

        with EventLog(log_path) as log:
            log.remove_events("Alpha")

        assert read_lines(log_path) == keep

    def test_schema_free_match_on_any_record(self, log_path: Path):
        write_log_lines(log_path, [
            {"project": "Alpha", "note": "no type or timestamp"},
            {"project": "Beta"},
        ])
        with EventLog(log_path) as log:
            assert log.remove_events("Alpha") == 1
        assert read_lines(log_path) == ['{"project": "Beta"}']

    def test_blank_target_is_noop(self, log_path: Path):
        write_log_lines(log_path, [transition(1, "idle", "work", "A")])
        before = log_path.read_bytes()
        with EventLog(log_path) as log:
            assert log.remove_events("   ") == 0
            assert log.remove_events("") == 0
        assert log_path.read_bytes() == before

    def test_target_is_trimmed(self, log_path: Path):
        write_log_lines(log_path, [transition(1, "idle", "work", "A"), transition(2, "idle", "work", "B")])
        with EventLog(log_path) as log:
            assert log.remove_events("  a ") == 1

    def test_removing_everything_leaves_empty_file(self, log_path: Path):
        write_log_lines(log_path, [transition(1, "idle", "work", "A")])
        with EventLog(log_path) as log:
            log.remove_events("A")
        assert log_path.read_bytes() == b""

    def test_blank_lines_are_dropped(self, log_path: Path):
        log_path.write_text('{"timestamp":1,"type":"appstart"}\n\n\n{"timestamp":2,"type":"appstart"}\n')
        with EventLog(log_path) as log:
            log.remove_events("nothing-matches")
        assert read_lines(log_path) == ['{"timestamp":1,"type":"appstart"}', '{"timestamp":2,"type":"appstart"}']

    def test_append_after_purge_goes_to_rewritten_file(self, log_path: Path):
        write_log_lines(log_path, [transition(1, "idle", "work", "A"), transition(2, "idle", "work", "B")])
        with EventLog(log_path) as log:
            log.remove_events("A")
            log.append(TransitionEvent(timestamp=3, from_state="work", to_state="idle", project="B"))
            assert [e.timestamp for e in log.read_all()] == [2, 3]

    def test_no_temp_files_left_behind(self, log_path: Path):
        write_log_lines(log_path, [transition(1, "idle", "work", "A")])
        with EventLog(log_path) as log:
            log.remove_events("A")
        assert sorted(p.name for p in log_path.parent.iterdir() if p.name.endswith(".tmp")) == []

    def test_failed_rewrite_keeps_original(self, log_path: Path, monkeypatch):
        write_log_lines(log_path, [transition(1, "idle", "work", "A"), transition(2, "idle", "work", "B")])
        before = log_path.read_bytes()

        def broken_replace(src, dst):
            raise OSError("rename failed")

        with EventLog(log_path) as log:
            monkeypatch.setattr("tomatolog.event_log.os.replace", broken_replace)
            assert log.remove_events("A") == 0

        assert log_path.read_bytes() == before
        assert [p for p in log_path.parent.iterdir() if p.name.endswith(".tmp")] == []

    def test_deeply_nested_line_is_kept_verbatim(self, log_path: Path):
        nested = "[" * 100000
        log_path.write_text(nested + "\n" + json.dumps(transition(1, "idle", "work", "A")) + "\n")
        with EventLog(log_path) as log:
            assert log.remove_events("A") == 1
        assert log_path.read_text() == nested + "\n"

    def test_non_utf8_file_is_left_untouched(self, log_path: Path):
        log_path.write_bytes(b'{"project":"A"}\n\xff\n')
        with EventLog(log_path) as log:
            assert log.remove_events("A") == 0
        assert log_path.read_bytes() == b'{"project":"A"}\n\xff\n'

    def test_purge_is_logged(self, log_path: Path, temp_state_dir: Path):
        write_log_lines(log_path, [transition(1, "idle", "work", "A"), transition(2, "idle", "work", "B")])
        with EventLog(log_path) as log:
            log.remove_events("A")

        events = [json.loads(line) for line in (temp_state_dir / "debug.log").read_text().splitlines()]
        purged = [e for e in events if e["event"] == "events_purged"]
        assert purged and purged[-1]["removed"] == 1 and purged[-1]["kept"] == 1


@pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0, reason="root ignores file permissions")
def test_unreadable_log_reads_empty(log_path: Path):
    write_log_lines(log_path, [transition(1, "idle", "work", "A")])
    log = EventLog(log_path)
    os.chmod(log_path, 0o200)
    try:
        assert log.read_all() == []
    finally:
        os.chmod(log_path, 0o600)
        log.close()
