"""Background processor service for managing async tasks"""

import asyncio
import logging
import time
from typing import Dict, Any, Optional, Callable, List

from backend.app.core.database import AsyncSessionLocal
from backend.app.core.task_queue import task_queue, TaskQueue, TaskStatus
from backend.app.services.archive_service import AUTO_ARCHIVE_TASK, ArchiveService

logger = logging.getLogger(__name__)


class BackgroundProcessor:
    """Runs registered task handlers for tasks popped off the Redis queue"""

    def __init__(self, queue: Optional[TaskQueue] = None):
        self.task_queue = queue or task_queue
        self.task_handlers: Dict[str, Callable] = {}
        self.is_running = False
        self.worker_tasks: List[asyncio.Task] = []
        self.max_retries = 3
        self.retry_delay = 60  # seconds

    def register_task_handler(self, task_type: str, handler: Callable) -> None:
        self.task_handlers[task_type] = handler
        logger.info(f"Registered handler for task type: {task_type}")

    async def enqueue_task(
        self,
        task_type: str,
        task_data: Dict[str, Any],
        priority: int = 0,
        delay_seconds: int = 0
    ) -> str:
        """
        Enqueue a task for background processing

        Raises:
            ValueError: If no handler is registered for ``task_type``
        """
        if task_type not in self.task_handlers:
            raise ValueError(f"No handler registered for task type: {task_type}")

        return await self.task_queue.enqueue_task(
            task_type=task_type,
            task_data=task_data,
            priority=priority,
            delay_seconds=delay_seconds
        )

    async def get_task_status(self, task_id: str) -> Optional[Dict[str, Any]]:
        return await self.task_queue.get_task_status(task_id)

    async def start_workers(self, num_workers: int = 2) -> None:
        if self.is_running:
            logger.warning("Workers are already running")
            return

        self.is_running = True
        for i in range(num_workers):
            self.worker_tasks.append(asyncio.create_task(
                self._worker_loop(worker_id=i),
                name=f"background_worker_{i}"
            ))

        logger.info(f"Started {num_workers} background workers")

    async def stop_workers(self) -> None:
        if not self.is_running:
            logger.warning("Workers are not running")
            return

        self.is_running = False
        for task in self.worker_tasks:
            task.cancel()

        if self.worker_tasks:
            await asyncio.gather(*self.worker_tasks, return_exceptions=True)

        self.worker_tasks.clear()
        logger.info("Stopped all background workers")

    async def _worker_loop(self, worker_id: int) -> None:
        logger.info(f"Worker {worker_id} started")

        while self.is_running:
            try:
                task_payload = await self.task_queue.dequeue_task(timeout=5)
                if not task_payload:
                    continue

                await self.process_task(task_payload, worker_id)

            except asyncio.CancelledError:
                logger.info(f"Worker {worker_id} cancelled")
                break
            except Exception as e:
                logger.error(f"Worker {worker_id} error: {e}", exc_info=True)
                await asyncio.sleep(1)

        logger.info(f"Worker {worker_id} stopped")

    async def process_task(self, task_payload: Dict[str, Any], worker_id: int = 0) -> None:
        """
        Run one task and record its outcome

        A failing task is requeued after ``retry_delay`` seconds until
        ``max_retries`` is reached, then marked failed.
        """
        task_id = task_payload["task_id"]
        task_type = task_payload["task_type"]
        extra = {"task_id": task_id}

        handler = self.task_handlers.get(task_type)
        if not handler:
            logger.error(f"No handler registered for task type: {task_type}", extra=extra)
            await self.task_queue.set_task_status(
                task_id, TaskStatus.FAILED, task_type=task_type,
                error_message=f"Unknown task type: {task_type}",
            )
            return

        logger.info(f"Worker {worker_id} processing task {task_type}", extra=extra)
        started = time.perf_counter()

        try:
            result = await handler(task_payload.get("task_data") or {})
        except Exception as e:
            logger.error(f"Task {task_type} failed: {e}", extra=extra, exc_info=True)
            requeued = await self.task_queue.retry_failed_task(
                task_id, max_retries=self.max_retries, delay_seconds=self.retry_delay
            )
            if not requeued:
                await self.task_queue.set_task_status(
                    task_id, TaskStatus.FAILED, task_type=task_type,
                    error_message=f"Task failed: {str(e)}",
                )
            return

        await self.task_queue.set_task_status(
            task_id,
            TaskStatus.COMPLETED,
            task_type=task_type,
            result_data={
                "result": result,
                "processing_time_seconds": round(time.perf_counter() - started, 3),
            },
        )
        logger.info(f"Worker {worker_id} completed task {task_type}", extra=extra)

    async def get_queue_stats(self) -> Dict[str, Any]:
        return {
            "queue": await self.task_queue.get_queue_stats(),
            "workers_running": len(self.worker_tasks),
            "is_processing": self.is_running,
            "task_types": sorted(self.task_handlers),
        }


# Global background processor instance
background_processor = BackgroundProcessor()


def task_handler(task_type: str):
    """Decorator registering a coroutine as the handler for ``task_type``"""
    def decorator(func: Callable):
        background_processor.register_task_handler(task_type, func)
        return func
    return decorator


@task_handler(AUTO_ARCHIVE_TASK)
async def auto_archive_applications(task_data: dict) -> dict:
    async with AsyncSessionLocal() as session:
        return await ArchiveService(session).archive_stale_applications(task_data.get("days"))
