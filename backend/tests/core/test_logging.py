"""
Tests for core/logging module

Formatters, the logger adapter, correlation context variables, and the
LogTimer context manager.
"""

import json
import logging
import sys
from unittest.mock import MagicMock

import pytest

from promptmotion.core.logging import (
    DevelopmentFormatter,
    LoggerAdapter,
    LogTimer,
    StructuredFormatter,
    clear_context,
    conversation_id_var,
    get_logger,
    request_id_var,
    set_conversation_id,
    set_request_id,
    set_turn_id,
    setup_logging,
    turn_id_var,
)


def make_record(msg="Test message", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="test.module",
        level=level,
        pathname="/path/to/file.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def reset_context():
    clear_context()
    yield
    clear_context()


class TestStructuredFormatter:
    """Test suite for StructuredFormatter"""

    def test_format_basic_log(self):
        parsed = json.loads(StructuredFormatter().format(make_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "test.module"
        assert parsed["line"] == 42
        assert "timestamp" in parsed

    def test_format_with_extra_fields(self):
        record = make_record(component="edit_reconciler", edits_applied=2)
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["extra"]["component"] == "edit_reconciler"
        assert parsed["extra"]["edits_applied"] == 2

    def test_extra_data_is_merged(self):
        record = make_record(extra_data={"event": "llm_request", "model": "m"})
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["extra"]["event"] == "llm_request"
        assert "extra_data" not in parsed["extra"]

    def test_sensitive_values_are_redacted(self):
        record = make_record(api_key="sk-123", extra_data={"headers": {"Authorization": "Bearer x"}})
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["extra"]["api_key"] == "***REDACTED***"
        assert parsed["extra"]["headers"]["Authorization"] == "***REDACTED***"

    def test_correlation_ids_included(self):
        set_request_id("req-1")
        set_conversation_id("conv-1")
        set_turn_id("turn-1")
        parsed = json.loads(StructuredFormatter().format(make_record()))
        assert parsed["request_id"] == "req-1"
        assert parsed["conversation_id"] == "conv-1"
        assert parsed["turn_id"] == "turn-1"

    def test_format_with_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["exception"]["type"] == "ValueError"
        assert parsed["exception"]["message"] == "boom"


class TestDevelopmentFormatter:
    """Test suite for DevelopmentFormatter"""

    def test_format_basic_log(self):
        result = DevelopmentFormatter().format(make_record())
        assert "Test message" in result
        assert "INFO" in result

    def test_context_prefix(self):
        set_conversation_id("abcdef1234567890")
        set_turn_id("0123456789ab")
        result = DevelopmentFormatter().format(make_record())
        assert "conv:abcdef12" in result
        assert "turn:01234567" in result


class TestLoggerAdapter:
    """Test suite for LoggerAdapter"""

    def test_process_adds_bound_context(self):
        adapter = LoggerAdapter(MagicMock(), {"component": "skill_selector"})
        _, kwargs = adapter.process("msg", {})
        assert kwargs["extra"]["component"] == "skill_selector"

    def test_process_preserves_existing_extra(self):
        adapter = LoggerAdapter(MagicMock(), {"component": "skill_selector"})
        _, kwargs = adapter.process("msg", {"extra": {"skills": ["a"], "component": "override"}})
        assert kwargs["extra"]["skills"] == ["a"]
        assert kwargs["extra"]["component"] == "override"

    def test_process_adds_correlation_ids(self):
        set_turn_id("turn-9")
        adapter = LoggerAdapter(MagicMock(), {})
        _, kwargs = adapter.process("msg", {})
        assert kwargs["extra"]["turn_id"] == "turn-9"


class TestSetupLogging:
    """Test suite for setup_logging"""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_setup_logging_with_level(self):
        setup_logging(level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, DevelopmentFormatter)

    def test_setup_logging_json_mode(self):
        setup_logging(use_json=True)
        assert isinstance(logging.getLogger().handlers[0].formatter, StructuredFormatter)

    def test_setup_logging_with_files(self, tmp_path):
        setup_logging(log_file=tmp_path / "logs" / "app.log", pipeline_log_file=tmp_path / "logs" / "pipeline.log")
        root = logging.getLogger()
        assert len(root.handlers) == 3
        assert (tmp_path / "logs").is_dir()


class TestContextVariables:
    """Test suite for correlation context"""

    def test_set_and_clear(self):
        set_request_id("r")
        set_conversation_id("c")
        set_turn_id("t")
        assert (request_id_var.get(), conversation_id_var.get(), turn_id_var.get()) == ("r", "c", "t")

        clear_context()
        assert request_id_var.get() is None
        assert conversation_id_var.get() is None
        assert turn_id_var.get() is None


class TestLogTimer:
    """Test suite for LogTimer"""

    def test_log_timer_basic(self):
        logger = MagicMock()
        with LogTimer(logger, "generation turn") as timer:
            pass
        assert timer.duration is not None
        messages = [call.args[1] for call in logger.log.call_args_list]
        assert messages == ["Starting: generation turn", "Completed: generation turn"]

    def test_log_timer_with_exception(self):
        logger = MagicMock()
        with pytest.raises(RuntimeError):
            with LogTimer(logger, "compile"):
                raise RuntimeError("bad")
        logger.warning.assert_called_once()
        assert logger.warning.call_args.kwargs["extra"]["error"] == "bad"


def test_get_logger_binds_component():
    logger = get_logger("promptmotion.test", component="orchestrator")
    assert isinstance(logger, LoggerAdapter)
    assert logger.extra == {"component": "orchestrator"}
