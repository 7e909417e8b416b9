# memory_janitor/cli.py

"""
Entry points for the scheduler.

    memory-cleanup          nightly cleanup (DRY_RUN=true to preview)
    memory-dedup-review     weekly review with Confirm/Skip

Both always exit 0, even on failure, so a process manager does not restart
them in a loop. Missing configuration stops them before anything is opened.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from .config import load_config
from .errors import ConfigError
from .janitor import MemoryJanitor

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _run(routine: str, janitor: MemoryJanitor) -> None:
    try:
        if routine == "cleanup":
            await janitor.cleanup()
        else:
            await janitor.review()
    except Exception as e:
        logger.exception("[%s] routine failed: %s", routine, e)
        await janitor.notify_failure(f"Memory {routine}", e)
    finally:
        await janitor.close()


def run_routine(routine: str) -> int:
    _setup_logging()
    try:
        config = load_config()
    except ConfigError as e:
        logger.error("[%s] %s", routine, e)
        return 0

    try:
        janitor = MemoryJanitor(config)
    except Exception as e:
        logger.exception("[%s] could not start: %s", routine, e)
        return 0

    asyncio.run(_run(routine, janitor))
    return 0


def cleanup_main() -> int:
    return run_routine("cleanup")


def review_main() -> int:
    return run_routine("review")


if __name__ == "__main__":
    name = sys.argv[1] if len(sys.argv) > 1 else "cleanup"
    if name not in ("cleanup", "review"):
        print("usage: python -m memory_janitor.cli [cleanup|review]", file=sys.stderr)
        sys.exit(0)
    sys.exit(run_routine(name))
