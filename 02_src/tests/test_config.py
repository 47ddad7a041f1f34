"""Tests for configuration and logging setup."""

import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from panelsync.config import DEFAULT_HISTORY_LIMIT, BusConfig
from panelsync.logging_config import JSONFormatter, event_context, get_logger, setup_logging
from panelsync.models import EventDraft, Priority, SyncEvent


class TestBusConfig:
    """Tests for BusConfig."""

    def test_defaults(self):
        """Test default history limit and logging flag."""
        config = BusConfig()
        assert config.history_limit == DEFAULT_HISTORY_LIMIT == 100
        assert config.debug_logging is False

    def test_history_limit_must_be_positive(self):
        """Test history_limit below 1 is rejected."""
        with pytest.raises(ValidationError):
            BusConfig(history_limit=0)

    def test_from_env(self, monkeypatch):
        """Test reading PANELSYNC_* variables."""
        monkeypatch.setenv("PANELSYNC_HISTORY_LIMIT", "25")
        monkeypatch.setenv("PANELSYNC_DEBUG_LOGGING", "true")

        config = BusConfig.from_env()

        assert config.history_limit == 25
        assert config.debug_logging is True

    def test_from_env_defaults(self, monkeypatch):
        """Test unset variables fall back to defaults."""
        monkeypatch.delenv("PANELSYNC_HISTORY_LIMIT", raising=False)
        monkeypatch.delenv("PANELSYNC_DEBUG_LOGGING", raising=False)

        assert BusConfig.from_env() == BusConfig()

    def test_from_env_invalid(self, monkeypatch):
        """Test a non-numeric history limit raises."""
        monkeypatch.setenv("PANELSYNC_HISTORY_LIMIT", "lots")

        with pytest.raises(ValidationError):
            BusConfig.from_env()


class TestLogging:
    """Tests for structured logging."""

    def test_json_formatter_promotes_bus_fields(self):
        """Test bus context keys become top-level fields, the rest stays nested."""
        record = logging.LogRecord(
            name="panelsync.test",
            level=logging.WARNING,
            pathname=__file__,
            lineno=10,
            msg="Subscriber %s failed",
            args=("abc",),
            exc_info=None,
        )
        record.context = {"event_type": "select", "sequence_id": 3, "note": "x"}

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "panelsync.test"
        assert data["message"] == "Subscriber abc failed"
        assert data["event_type"] == "select"
        assert data["sequence_id"] == 3
        assert data["context"] == {"note": "x"}

    def test_json_formatter_without_context(self):
        """Test a plain record has no context key."""
        record = logging.LogRecord("panelsync.test", logging.INFO, __file__, 1, "hi", (), None)

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "hi"
        assert "context" not in data

    def test_json_formatter_exception(self):
        """Test exception info is included."""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "panelsync.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        data = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]

    def test_event_context(self):
        """Test event_context describes an event and skips None fields."""
        event = SyncEvent(
            type="select",
            payload=None,
            source="map",
            timestamp=datetime.now(timezone.utc),
            sequence_id=7,
            priority=Priority.HIGH,
        )

        extra = event_context(event, subscription_id="sub-1", panel_id=None)

        assert extra == {
            "context": {
                "event_type": "select",
                "sequence_id": 7,
                "priority": "high",
                "source": "map",
                "subscription_id": "sub-1",
            }
        }

    @pytest.mark.asyncio
    async def test_subscriber_error_line_carries_ids(self, event_bus, caplog):
        """Test a failing subscriber is logged with its subscription and event ids."""

        def failing(event):
            raise RuntimeError("nope")

        handle = event_bus.subscribe(failing)
        with caplog.at_level(logging.ERROR, logger="panelsync.event_bus.dispatcher"):
            event = event_bus.broadcast(EventDraft(type="select", source="map"))
            await event_bus.join()

        data = json.loads(JSONFormatter().format(caplog.records[-1]))

        assert data["subscription_id"] == handle.id
        assert data["event_type"] == "select"
        assert data["sequence_id"] == event.sequence_id
        assert data["source"] == "map"

    def test_setup_logging_writes_json(self, tmp_path):
        """Test setup_logging writes JSON lines to the log file."""
        log_file = tmp_path / "logs" / "test.log"

        with restored_logging():
            setup_logging(log_level="debug", log_file=str(log_file))
            get_logger("panelsync.test").info("hello")
            for handler in logging.getLogger().handlers:
                handler.flush()

            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            assert json.loads(line)["message"] == "hello"
            assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_debug_logging(self, tmp_path):
        """Test debug_logging lowers the panelsync loggers to DEBUG."""
        log_file = str(tmp_path / "test.log")
        package = logging.getLogger("panelsync")

        with restored_logging():
            setup_logging("warning", log_file, BusConfig(debug_logging=True))
            assert package.level == logging.DEBUG
            assert get_logger("panelsync.entity_sync.sync").isEnabledFor(logging.DEBUG)

            setup_logging("warning", log_file, BusConfig())
            assert package.level == logging.NOTSET
            assert not get_logger("panelsync.entity_sync.sync").isEnabledFor(logging.INFO)


@contextmanager
def restored_logging():
    root = logging.getLogger()
    package = logging.getLogger("panelsync")
    saved_handlers, saved_level = root.handlers[:], root.level
    saved_package_level = package.level
    try:
        yield
    finally:
        for handler in root.handlers:
            if handler not in saved_handlers:
                handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        package.setLevel(saved_package_level)
