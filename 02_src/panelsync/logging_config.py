"""JSON log lines for the panel sync bus and its consumers."""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .config import DEFAULT_LOG_PATH

if TYPE_CHECKING:
    from .config import BusConfig
    from .models import SyncEvent

# Context keys promoted to top-level fields of a log line
EVENT_FIELDS = ("event_type", "sequence_id", "priority", "source")
CONSUMER_FIELDS = ("subscription_id", "panel_id", "entity_type", "entity_id")

PACKAGE_LOGGER = "panelsync"


def event_context(event: "SyncEvent | None" = None, **fields: Any) -> dict:
    """
    Build the `extra=` mapping for a log call about a bus event.

    The event contributes its type, sequence id, priority and source; keyword
    fields (subscription_id, panel_id, ...) are added when not None.
    """
    context: dict[str, Any] = {}
    if event is not None:
        context.update(
            event_type=event.type,
            sequence_id=event.sequence_id,
            priority=event.priority.value,
            source=event.source,
        )
    context.update({k: v for k, v in fields.items() if v is not None})
    return {"context": context}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; bus context keys become real fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        for key in EVENT_FIELDS + CONSUMER_FIELDS:
            if key in context:
                log_data[key] = context.pop(key)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    config: "BusConfig | None" = None,
) -> None:
    """
    Configure JSON logging to stdout and a rotating file.

    Args:
        log_level: Root level. Defaults to the LOG_LEVEL env var or INFO.
        log_file: Defaults to 04_logs/panelsync.log.
        config: With `debug_logging` set, the panelsync loggers drop to DEBUG
                so channel and entity-sync traces (stale responses, teardown)
                are written next to the bus's per-event lines.
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")
    if log_file is None:
        log_file = str(DEFAULT_LOG_PATH)
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    debug = config is not None and config.debug_logging

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "panelsync.logging_config.JSONFormatter"},
            },
            "handlers": {
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": log_file,
                    "maxBytes": 10 * 1024 * 1024,
                    "backupCount": 5,
                    "formatter": "json",
                    "encoding": "utf-8",
                },
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {PACKAGE_LOGGER: {"level": "DEBUG" if debug else "NOTSET"}},
            "root": {
                "level": log_level.upper(),
                "handlers": ["file", "console"],
            },
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
