"""Project-level configuration and path helpers."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_LOG_PATH = LOGS_DIR / "panelsync.log"

DEFAULT_HISTORY_LIMIT = 100

HISTORY_LIMIT_ENV = "PANELSYNC_HISTORY_LIMIT"
DEBUG_LOGGING_ENV = "PANELSYNC_DEBUG_LOGGING"

_TRUTHY = {"1", "true", "yes", "on"}


class BusConfig(BaseModel):
    """Settings accepted by EventBus at construction."""

    history_limit: int = Field(DEFAULT_HISTORY_LIMIT, ge=1)
    debug_logging: bool = False

    @classmethod
    def from_env(cls) -> "BusConfig":
        """Build config from PANELSYNC_* environment variables."""
        values: dict = {}

        history_limit = os.getenv(HISTORY_LIMIT_ENV)
        if history_limit:
            values["history_limit"] = history_limit

        debug_logging = os.getenv(DEBUG_LOGGING_ENV)
        if debug_logging:
            values["debug_logging"] = debug_logging.strip().lower() in _TRUTHY

        return cls(**values)
