"""Background task API endpoints"""

from fastapi import APIRouter, Depends, status
from redis.exceptions import RedisError

from backend.app.core.exceptions import ExternalServiceException, NotFoundException
from backend.app.core.security import require_admin
from backend.app.models.user import User
from backend.app.services.archive_service import AUTO_ARCHIVE_TASK
from backend.app.services.background_processor import background_processor
from backend.app.schemas.task import AutoArchiveRequest, QueueStatsResponse, TaskEnqueueResponse, TaskStatusResponse
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/auto-archive", response_model=TaskEnqueueResponse, status_code=status.HTTP_202_ACCEPTED)
async def schedule_auto_archive(
    payload: AutoArchiveRequest,
    current_user: User = Depends(require_admin)
):
    """
    Queue archiving of stale applications

    Applications older than `days` (default `AUTO_ARCHIVE_DAYS`) that are
    not hired or archived yet move to `archived`. A worker process picks
    the task up; poll `/tasks/{task_id}` for the outcome.
    """
    try:
        task_id = await background_processor.enqueue_task(
            AUTO_ARCHIVE_TASK,
            {"days": payload.days, "requested_by": str(current_user.id)},
            delay_seconds=payload.delay_seconds,
        )
    except RedisError as e:
        logger.error(f"Failed to enqueue {AUTO_ARCHIVE_TASK}: {e}")
        raise ExternalServiceException("redis", "Task queue unavailable")

    return TaskEnqueueResponse(task_id=task_id, message="Auto-archive task queued")


@router.get("/stats", response_model=QueueStatsResponse)
async def get_queue_stats(current_user: User = Depends(require_admin)):
    try:
        return await background_processor.get_queue_stats()
    except RedisError as e:
        logger.error(f"Failed to get queue stats: {e}")
        raise ExternalServiceException("redis", "Task queue unavailable")


@router.get("/{task_id}", response_model=TaskStatusResponse)
async def get_task_status(task_id: str, current_user: User = Depends(require_admin)):
    try:
        task_status = await background_processor.get_task_status(task_id)
    except RedisError as e:
        logger.error(f"Failed to get status of task {task_id}: {e}")
        raise ExternalServiceException("redis", "Task queue unavailable")

    if not task_status:
        raise NotFoundException(f"Task {task_id} not found")
    return task_status
