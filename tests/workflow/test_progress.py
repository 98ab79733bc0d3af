"""Tests for progress output and the error summary."""

import pytest

from discnorm.workflow.progress import ErrorLogger, ProgressTracker


@pytest.mark.unit
def test_tracker_counts_and_prints(capsys):
    tracker = ProgressTracker()
    tracker.start_run("compress", 3)
    tracker.log_item("Alpha", "success", "Alpha.chd")
    tracker.log_item("Broken", "failed", "no output")
    tracker.log_item("notes", "skipped")

    run = tracker.finish_run()

    assert (run.total, run.processed, run.succeeded, run.failed, run.skipped) == (3, 3, 1, 1, 1)
    output = capsys.readouterr().out
    assert "Compress: 3 item(s)" in output
    assert "✓ [1/3] Alpha - Alpha.chd" in output
    assert "✗ [2/3] Broken - no output" in output
    assert "○ [3/3] notes" in output
    assert "Succeeded: 1" in output


@pytest.mark.unit
def test_log_item_without_run_is_ignored(capsys):
    tracker = ProgressTracker()
    tracker.log_item("Alpha", "success")

    assert tracker.finish_run() is None
    assert capsys.readouterr().out == ""


@pytest.mark.unit
def test_error_logger_writes_summary(tmp_path):
    errors = ErrorLogger()
    assert not errors.has_errors()

    errors.log_error("Broken", "extraction failed")
    summary = tmp_path / "errors.txt"
    errors.write_summary(str(summary))

    assert errors.has_errors()
    text = summary.read_text()
    assert "Errors (1 total)" in text
    assert "Item: Broken" in text
    assert "Error: extraction failed" in text


@pytest.mark.unit
def test_error_logger_writes_nothing_without_errors(tmp_path):
    summary = tmp_path / "errors.txt"
    ErrorLogger().write_summary(str(summary))

    assert not summary.exists()
