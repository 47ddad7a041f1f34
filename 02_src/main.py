"""Main entry point for the panelsync demo."""

import json
from pathlib import Path

from dotenv import load_dotenv

from panelsync.config import BusConfig
from panelsync.logging_config import setup_logging
from sim import run_sim


def main():
    """Run the scripted dashboard scenario."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")

    # LOG_LEVEL and PANELSYNC_* come from the environment
    config = BusConfig.from_env()
    setup_logging(config=config)

    summary = run_sim(config)
    print(json.dumps(summary, indent=2, default=str))


if __name__ == "__main__":
    main()
