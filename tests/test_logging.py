"""Tests for logging setup and helpers."""

from __future__ import annotations

import pytest

from drive_mounter import logging as logging_module


@pytest.fixture
def records():
    logging_module.logger.remove()
    captured: list[dict] = []

    def sink(message):
        captured.append(message.record)

    logging_module.logger.add(sink, level="TRACE", enqueue=False)
    yield captured
    logging_module.logger.remove()


def test_setup_logging_creates_log_files(tmp_path):
    """Test operations and structured sinks are created under log_dir."""
    log_dir = tmp_path / "logs"
    logging_module.setup_logging(log_dir=log_dir)

    try:
        assert (log_dir / "operations.log").exists()
        assert (log_dir / "structured.jsonl").exists()
        assert not (log_dir / "debug.log").exists()
    finally:
        logging_module.logger.remove()


def test_setup_logging_debug_sink(tmp_path):
    log_dir = tmp_path / "logs"
    logging_module.setup_logging(debug=True, log_dir=log_dir)

    try:
        assert (log_dir / "debug.log").exists()
    finally:
        logging_module.logger.remove()


def test_get_logger_preserves_context_metadata(records):
    """Test bound logger keeps job_id, tags, and source metadata."""
    log = logging_module.get_logger(job_id="job-123", tags=["fstab"], source="fstab")
    log.info("Context test")

    record = records[0]
    assert record["extra"]["job_id"] == "job-123"
    assert record["extra"]["tags"] == ["fstab"]
    assert record["extra"]["source"] == "fstab"


def test_factory_loggers_are_tagged(records):
    logging_module.LoggerFactory.for_btrfs().info("Creating subvolume")

    assert records[0]["extra"]["source"] == "btrfs"
    assert "btrfs" in records[0]["extra"]["tags"]


def test_command_output_hidden_above_trace():
    """Test raw command output only reaches the console when tracing."""
    record = {
        "message": "stdout: UUID=1111-AAAA",
        "extra": {"tags": ["command"]},
        "level": logging_module.logger.level("DEBUG"),
    }

    assert logging_module._should_log_command_output(record) is False

    record["level"] = logging_module.logger.level("TRACE")
    assert logging_module._should_log_command_output(record) is True


def test_command_warnings_always_shown():
    record = {
        "message": "stderr: blkid failed",
        "extra": {"tags": ["command"]},
        "level": logging_module.logger.level("WARNING"),
    }

    assert logging_module._should_log_command_output(record) is True


def test_operation_context_logs_completion(records):
    with logging_module.operation_context("provision", fstab="/etc/fstab") as log:
        log.info("Working")

    messages = [record["message"] for record in records]
    assert messages == ["Provision started", "Working", "Provision completed"]
    assert records[0]["extra"]["job_id"].startswith("provision-")


def test_operation_context_logs_failure(records):
    with pytest.raises(RuntimeError):
        with logging_module.operation_context("provision"):
            raise RuntimeError("boom")

    failure = records[-1]
    assert failure["message"] == "Provision failed"
    assert failure["extra"]["error_type"] == "RuntimeError"
