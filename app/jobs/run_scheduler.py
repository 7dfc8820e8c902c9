"""
Dedicated scheduler worker: runs the campaign jobs without the HTTP API.

Run via: python -m app.jobs.run_scheduler
Keep SCHEDULER_ENABLED=false on the API processes when this worker is deployed,
otherwise every campaign runs twice (DispatchLog still dedupes sends).
"""

import argparse
import asyncio
import logging
import signal

from app.core.log_config import configure_logging
from app.services.scheduler import get_scheduler_health, shutdown_scheduler, start_scheduler

logger = logging.getLogger(__name__)


async def run_forever() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops
            pass

    start_scheduler()
    health = get_scheduler_health()
    for job in health["jobs"]:
        logger.info(f"Job {job['id']}: next run {job['next_run_time']}")
    try:
        await stop.wait()
    finally:
        shutdown_scheduler()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the campaign scheduler worker")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    asyncio.run(run_forever())


if __name__ == "__main__":
    main()
