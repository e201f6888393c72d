# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the diagnostics sink.
"""

from pathlib import Path

from relief_intake.services.diagnostics import DiagnosticEntry, ErrorLog, describe_error


class TestDescribeError:

    def test_exception(self):
        assert describe_error(ValueError("bad row\nsecond line")) == "ValueError: bad row"

    def test_exception_without_message(self):
        assert describe_error(KeyError()) == "KeyError"

    def test_string_passes_through(self):
        assert describe_error("No open connection") == "No open connection"


class TestErrorLog:
    """Test the append-only error log."""

    def test_record_appends_lines(self, error_log):
        error_log.record("save_person", RuntimeError("disk full"))
        error_log.record("load_persons", "No open connection")

        lines = error_log.read_lines()
        assert len(lines) == 2
        assert lines[0].endswith("| save_person | RuntimeError: disk full")
        assert lines[1].endswith("| load_persons | No open connection")
        assert [entry.operation for entry in error_log.entries] == ["save_person", "load_persons"]

    def test_creates_parent_directory(self, tmp_path):
        log = ErrorLog(tmp_path / "nested" / "errorlog.txt")

        log.record("open_connection", "refused")

        assert (tmp_path / "nested" / "errorlog.txt").exists()

    def test_unwritable_path_keeps_entry(self, tmp_path, caplog):
        """Test a failing write is logged and the entry is still kept."""
        log = ErrorLog(tmp_path)

        entry = log.record("save_supply", "constraint failed")

        assert entry in log.entries
        assert "Could not append to error log" in caplog.text

    def test_default_path_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RELIEF_ERROR_LOG", str(tmp_path / "custom.txt"))

        assert ErrorLog().path == Path(tmp_path / "custom.txt")

    def test_missing_file_reads_empty(self, error_log):
        assert error_log.read_lines() == []

    def test_entry_format(self):
        entry = DiagnosticEntry(operation="save_person", detail="boom")

        assert entry.format().split(" | ")[1:] == ["save_person", "boom"]
