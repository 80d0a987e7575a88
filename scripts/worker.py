#!/usr/bin/env python3
"""Background worker script for processing queued tasks"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from backend.app.core.config import settings
from backend.app.core.logging import setup_logging
from backend.app.core.task_queue import task_queue
from backend.app.services.archive_service import AUTO_ARCHIVE_TASK
from backend.app.services.background_processor import background_processor

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


class WorkerManager:
    """Runs the background workers until SIGTERM or SIGINT"""

    def __init__(self, num_workers: int = 2, archive_every: int = 0):
        self.num_workers = num_workers
        self.archive_every = archive_every
        self.shutdown_event = asyncio.Event()

    async def start(self):
        logger.info(f"Starting worker manager with {self.num_workers} workers")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.shutdown_event.set)

        try:
            await background_processor.start_workers(self.num_workers)
            if self.archive_every:
                await self._schedule_archiving()
            else:
                await self.shutdown_event.wait()
        finally:
            await background_processor.stop_workers()
            await task_queue.disconnect()
            logger.info("Worker manager stopped")

    async def _schedule_archiving(self):
        """Queue the auto-archive task every ``archive_every`` seconds until shutdown"""
        while not self.shutdown_event.is_set():
            task_id = await background_processor.enqueue_task(AUTO_ARCHIVE_TASK, {})
            logger.info("Scheduled auto-archive", extra={"task_id": task_id})
            try:
                await asyncio.wait_for(self.shutdown_event.wait(), timeout=self.archive_every)
            except asyncio.TimeoutError:
                continue


async def main():
    """Main worker entry point"""
    parser = argparse.ArgumentParser(description="HirePath background worker")
    parser.add_argument(
        "--workers",
        type=int,
        default=2,
        help="Number of concurrent workers (default: 2)"
    )
    parser.add_argument(
        "--archive-every",
        type=int,
        default=0,
        metavar="SECONDS",
        help="Also queue the auto-archive task at this interval (default: off)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help="Log level"
    )

    args = parser.parse_args()
    logging.getLogger().setLevel(getattr(logging, args.log_level))

    logger.info("Starting HirePath worker")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Redis URL: {settings.REDIS_URL}")
    logger.info(f"Task types: {', '.join(sorted(background_processor.task_handlers))}")

    manager = WorkerManager(num_workers=args.workers, archive_every=args.archive_every)
    try:
        await manager.start()
    except Exception as e:
        logger.error(f"Worker failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
