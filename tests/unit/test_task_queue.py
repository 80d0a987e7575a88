"""Unit tests for task queue functionality"""

import pytest
import json
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime, timedelta, timezone

import redis.asyncio as redis

from backend.app.core.task_queue import TaskQueue, TaskStatus


class TestTaskQueue:
    """Test cases for TaskQueue class"""

    @pytest.fixture
    def mock_redis(self):
        return AsyncMock()

    @pytest.fixture
    def task_queue(self, mock_redis):
        """Task queue wired to a mocked Redis client"""
        return TaskQueue("redis://localhost:6379/1", client=mock_redis)

    @pytest.mark.asyncio
    async def test_connect_success(self):
        """Test successful Redis connection"""
        queue = TaskQueue("redis://localhost:6379/1")

        with patch("redis.asyncio.from_url") as mock_from_url:
            mock_client = AsyncMock()
            mock_from_url.return_value = mock_client

            await queue.connect()

            assert queue._redis is mock_client
            mock_client.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        """Test Redis connection failure"""
        queue = TaskQueue("redis://invalid:6379/1")

        with patch("redis.asyncio.from_url") as mock_from_url:
            mock_client = AsyncMock()
            mock_client.ping.side_effect = redis.ConnectionError("Connection failed")
            mock_from_url.return_value = mock_client

            with pytest.raises(redis.ConnectionError, match="Connection failed"):
                await queue.connect()

    @pytest.mark.asyncio
    async def test_disconnect_closes_client(self, task_queue, mock_redis):
        await task_queue.disconnect()

        mock_redis.aclose.assert_awaited_once()
        assert task_queue._redis is None

    @pytest.mark.asyncio
    async def test_enqueue_task_immediate(self, task_queue, mock_redis):
        """Test enqueueing an immediate task"""
        task_id = await task_queue.enqueue_task("auto_archive_applications", {"days": 30}, priority=5)

        assert isinstance(task_id, str)

        mock_redis.zadd.assert_awaited_once()
        queue_name, mapping = mock_redis.zadd.call_args.args
        assert queue_name == task_queue.queue_name

        task_json, score = next(iter(mapping.items()))
        assert score == 5
        payload = json.loads(task_json)
        assert payload["task_id"] == task_id
        assert payload["task_type"] == "auto_archive_applications"
        assert payload["task_data"] == {"days": 30}

        # Payload copy plus the queued status
        assert mock_redis.setex.await_count == 2
        status_call = mock_redis.setex.call_args_list[1]
        assert status_call.args[0] == f"{task_queue.status_prefix}:{task_id}"
        assert json.loads(status_call.args[2])["status"] == TaskStatus.QUEUED.value

    @pytest.mark.asyncio
    async def test_enqueue_task_delayed(self, task_queue, mock_redis):
        """Delayed tasks are scored by the time they become ready"""
        before = datetime.now(timezone.utc)

        await task_queue.enqueue_task("auto_archive_applications", {}, delay_seconds=300)

        queue_name, mapping = mock_redis.zadd.call_args.args
        assert queue_name == task_queue.delayed_queue_name
        ready_at = next(iter(mapping.values()))
        assert ready_at >= (before + timedelta(seconds=300)).timestamp()

    @pytest.mark.asyncio
    async def test_dequeue_task(self, task_queue, mock_redis):
        payload = {"task_id": "t-1", "task_type": "auto_archive_applications", "task_data": {}, "priority": 0}
        mock_redis.zrangebyscore.return_value = []
        mock_redis.bzpopmax.return_value = (task_queue.queue_name, json.dumps(payload), 0)

        result = await task_queue.dequeue_task(timeout=1)

        assert result == payload
        status_json = mock_redis.setex.call_args.args[2]
        assert json.loads(status_json)["status"] == TaskStatus.PROCESSING.value

    @pytest.mark.asyncio
    async def test_dequeue_timeout(self, task_queue, mock_redis):
        mock_redis.zrangebyscore.return_value = []
        mock_redis.bzpopmax.return_value = None

        assert await task_queue.dequeue_task(timeout=1) is None

    @pytest.mark.asyncio
    async def test_ready_delayed_tasks_are_moved(self, task_queue, mock_redis):
        task_json = json.dumps({"task_id": "t-2", "task_type": "x", "priority": 3})
        pipe = MagicMock()
        pipe.execute = AsyncMock()
        mock_redis.pipeline = MagicMock(return_value=pipe)
        mock_redis.zrangebyscore.return_value = [task_json]

        await task_queue._move_ready_delayed_tasks()

        pipe.zadd.assert_called_once_with(task_queue.queue_name, {task_json: 3})
        pipe.zrem.assert_called_once_with(task_queue.delayed_queue_name, task_json)
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_set_task_status_with_result(self, task_queue, mock_redis):
        await task_queue.set_task_status(
            "t-1", TaskStatus.COMPLETED, task_type="x", result_data={"archived": 2}
        )

        key, ttl, status_json = mock_redis.setex.call_args.args
        assert key == f"{task_queue.status_prefix}:t-1"
        data = json.loads(status_json)
        assert data["status"] == "completed"
        assert data["result_data"] == {"archived": 2}
        assert "error_message" not in data

    @pytest.mark.asyncio
    async def test_get_task_status(self, task_queue, mock_redis):
        mock_redis.get.return_value = json.dumps({"task_id": "t-1", "status": "failed"})
        assert (await task_queue.get_task_status("t-1"))["status"] == "failed"

        mock_redis.get.return_value = None
        assert await task_queue.get_task_status("missing") is None

    @pytest.mark.asyncio
    async def test_get_queue_stats(self, task_queue, mock_redis):
        mock_redis.zcard.side_effect = [4, 1]

        stats = await task_queue.get_queue_stats()

        assert stats == {"queued_tasks": 4, "delayed_tasks": 1, "total_tasks": 5}

    @pytest.mark.asyncio
    async def test_retry_failed_task(self, task_queue, mock_redis):
        task_json = json.dumps({"task_id": "t-1", "task_type": "x", "priority": 2})
        mock_redis.get.side_effect = ["1", task_json]

        assert await task_queue.retry_failed_task("t-1", max_retries=3)

        mock_redis.zadd.assert_awaited_once_with(task_queue.queue_name, {task_json: 2})

    @pytest.mark.asyncio
    async def test_retry_gives_up_after_max_retries(self, task_queue, mock_redis):
        mock_redis.get.return_value = "3"

        assert not await task_queue.retry_failed_task("t-1", max_retries=3)
        mock_redis.zadd.assert_not_called()

    @pytest.mark.asyncio
    async def test_retry_without_payload(self, task_queue, mock_redis):
        mock_redis.get.side_effect = [None, None]

        assert not await task_queue.retry_failed_task("t-1")

    @pytest.mark.asyncio
    async def test_clear_queue(self, task_queue, mock_redis):
        await task_queue.clear_queue()

        mock_redis.delete.assert_awaited_once_with(task_queue.queue_name, task_queue.delayed_queue_name)
