"""Background task schemas"""

from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, Field

from backend.app.core.task_queue import TaskStatus


class TaskStatusResponse(BaseModel):
    """Response schema for background task status"""
    task_id: str = Field(..., description="Unique task identifier")
    task_type: Optional[str] = Field(None, description="Type of background task")
    status: TaskStatus = Field(..., description="Current task status")
    result_data: Optional[Dict[str, Any]] = Field(None, description="Result data (for completed tasks)")
    error_message: Optional[str] = Field(None, description="Error message (for failed tasks)")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class QueueStatsResponse(BaseModel):
    """Response schema for queue statistics"""
    queue: Dict[str, int] = Field(..., description="Redis queue statistics")
    workers_running: int = Field(..., description="Number of active workers in this process")
    is_processing: bool = Field(..., description="Whether processing is active in this process")
    task_types: List[str] = Field(..., description="Registered task types")


class AutoArchiveRequest(BaseModel):
    """Request schema for enqueueing the auto-archive task"""
    days: Optional[int] = Field(None, ge=1, description="Age threshold; defaults to AUTO_ARCHIVE_DAYS")
    delay_seconds: int = Field(0, ge=0, description="Delay before the task becomes available")


class TaskEnqueueResponse(BaseModel):
    """Response schema for task enqueue operation"""
    task_id: str = Field(..., description="Unique task identifier")
    message: str = Field(..., description="Success message")
