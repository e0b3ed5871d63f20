"""Selek CLI entry point.

Usage:
    python main.py
    # or, after installation
    selek
"""

from __future__ import annotations

import asyncio
import logging

from selekAgent.cli import SelekCLI
from selekAgent.config import get_settings
from selekAgent.runtime import build_application
from selekAgent.utils import get_logger, log_error, setup_logging


async def async_main():
    settings = get_settings()
    level = getattr(logging, settings.observability.log_level.upper(), logging.INFO)
    setup_logging(level, settings.observability.log_dir)
    logger = get_logger()

    try:
        app = await build_application(settings)
    except Exception as e:
        print(f"\n❌ Startup failed: {e}")
        log_error(logger, e, context="async_main() initialization")
        return

    logger.info(f"New session started, orchestration log at {app.orchestration_log.path}")
    await SelekCLI(app, logger).run()


def main():
    """Entry point that runs the async main function."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        print("\nGoodbye!")


if __name__ == "__main__":
    main()
