"""Task queue abstraction using Redis"""

import enum
import json
import uuid
from typing import Any, Dict, Optional
from datetime import datetime, timedelta, timezone
import redis.asyncio as redis
from redis.asyncio import Redis
import logging
from backend.app.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "hirepath"
STATUS_TTL = timedelta(days=7)


class TaskStatus(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskQueue:
    """
    Redis-based task queue for background work

    Ready tasks live in a sorted set scored by priority; delayed tasks in a
    second sorted set scored by the time they become ready. Status and the
    original payload are kept per task id so failed tasks can be retried.
    """

    def __init__(self, redis_url: Optional[str] = None, client: Optional[Redis] = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self._redis: Optional[Redis] = client
        self.queue_name = f"{KEY_PREFIX}:tasks"
        self.delayed_queue_name = f"{KEY_PREFIX}:tasks:delayed"
        self.status_prefix = f"{KEY_PREFIX}:status"
        self.payload_prefix = f"{KEY_PREFIX}:payloads"
        self.retry_prefix = f"{KEY_PREFIX}:retries"

    async def connect(self) -> None:
        """Establish Redis connection"""
        try:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True
            )
            await self._redis.ping()
            logger.info("Connected to Redis task queue")
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis task queue")

    async def _client(self) -> Redis:
        if not self._redis:
            await self.connect()
        return self._redis

    async def enqueue_task(
        self,
        task_type: str,
        task_data: Dict[str, Any],
        priority: int = 0,
        delay_seconds: int = 0
    ) -> str:
        """
        Enqueue a task for background processing

        Args:
            task_type: Handler name, e.g. 'auto_archive_applications'
            task_data: Task input data
            priority: Task priority (higher = more priority)
            delay_seconds: Delay before task becomes available

        Returns:
            task_id: Unique identifier for the task
        """
        client = await self._client()

        task_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        ready_at = now + timedelta(seconds=delay_seconds)
        task_payload = {
            "task_id": task_id,
            "task_type": task_type,
            "task_data": task_data,
            "priority": priority,
            "created_at": now.isoformat(),
            "scheduled_at": ready_at.isoformat(),
        }
        task_json = json.dumps(task_payload)

        await client.setex(f"{self.payload_prefix}:{task_id}", STATUS_TTL, task_json)
        await self.set_task_status(task_id, TaskStatus.QUEUED, task_type=task_type)

        if delay_seconds > 0:
            await client.zadd(self.delayed_queue_name, {task_json: ready_at.timestamp()})
        else:
            await client.zadd(self.queue_name, {task_json: priority})

        logger.info(f"Enqueued task {task_type}", extra={"task_id": task_id})
        return task_id

    async def dequeue_task(self, timeout: int = 10) -> Optional[Dict[str, Any]]:
        """
        Pop the highest priority ready task

        Blocks up to ``timeout`` seconds and returns None when nothing arrives.
        """
        client = await self._client()
        await self._move_ready_delayed_tasks()

        result = await client.bzpopmax(self.queue_name, timeout=timeout)
        if not result:
            return None

        _, task_json, _ = result
        task_payload = json.loads(task_json)
        task_id = task_payload["task_id"]
        await self.set_task_status(task_id, TaskStatus.PROCESSING, task_type=task_payload["task_type"])

        logger.info(f"Dequeued task {task_payload['task_type']}", extra={"task_id": task_id})
        return task_payload

    async def _move_ready_delayed_tasks(self) -> None:
        client = await self._client()
        now = datetime.now(timezone.utc).timestamp()

        ready_tasks = await client.zrangebyscore(self.delayed_queue_name, 0, now)
        if not ready_tasks:
            return

        pipe = client.pipeline()
        for task_json in ready_tasks:
            priority = json.loads(task_json).get("priority", 0)
            pipe.zadd(self.queue_name, {task_json: priority})
            pipe.zrem(self.delayed_queue_name, task_json)
        await pipe.execute()

        logger.info(f"Moved {len(ready_tasks)} delayed tasks to main queue")

    async def set_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        task_type: Optional[str] = None,
        result_data: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None
    ) -> None:
        """
        Update task status in Redis

        Args:
            task_id: Task ID
            status: New status
            task_type: Handler name, kept alongside the status
            result_data: Task result data (for completed tasks)
            error_message: Error message (for failed tasks)
        """
        client = await self._client()

        status_data: Dict[str, Any] = {
            "task_id": task_id,
            "status": status.value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if task_type:
            status_data["task_type"] = task_type
        if result_data is not None:
            status_data["result_data"] = result_data
        if error_message:
            status_data["error_message"] = error_message

        await client.setex(f"{self.status_prefix}:{task_id}", STATUS_TTL, json.dumps(status_data))
        logger.debug(f"Updated task {task_id} status to {status.value}")

    async def get_task_status(self, task_id: str) -> Optional[Dict[str, Any]]:
        client = await self._client()
        status_json = await client.get(f"{self.status_prefix}:{task_id}")
        return json.loads(status_json) if status_json else None

    async def get_queue_stats(self) -> Dict[str, int]:
        client = await self._client()
        queued = await client.zcard(self.queue_name)
        delayed = await client.zcard(self.delayed_queue_name)
        return {"queued_tasks": queued, "delayed_tasks": delayed, "total_tasks": queued + delayed}

    async def retry_failed_task(self, task_id: str, max_retries: int = 3, delay_seconds: int = 0) -> bool:
        """
        Put a failed task back on the queue

        Returns:
            True if the task was requeued, False once ``max_retries`` is reached
            or the original payload has expired
        """
        client = await self._client()

        retry_key = f"{self.retry_prefix}:{task_id}"
        retry_count = int(await client.get(retry_key) or 0)
        if retry_count >= max_retries:
            logger.warning(f"Task {task_id} exceeded max retries ({max_retries})")
            return False

        task_json = await client.get(f"{self.payload_prefix}:{task_id}")
        if not task_json:
            logger.warning(f"Task {task_id} payload expired, cannot retry")
            return False

        await client.setex(retry_key, timedelta(days=1), retry_count + 1)
        task_payload = json.loads(task_json)
        await self.set_task_status(task_id, TaskStatus.QUEUED, task_type=task_payload["task_type"])

        if delay_seconds > 0:
            ready_at = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
            await client.zadd(self.delayed_queue_name, {task_json: ready_at.timestamp()})
        else:
            await client.zadd(self.queue_name, {task_json: task_payload.get("priority", 0)})

        logger.info(f"Retrying task {task_id} (attempt {retry_count + 1})")
        return True

    async def clear_queue(self) -> None:
        client = await self._client()
        await client.delete(self.queue_name, self.delayed_queue_name)
        logger.info("Cleared task queue")


# Global task queue instance
task_queue = TaskQueue()
