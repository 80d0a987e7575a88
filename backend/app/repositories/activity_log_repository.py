"""Activity log repository"""

from typing import List, Optional, Dict, Any
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.activity_log import ActivityLog
from backend.app.core.logging import get_logger

logger = get_logger(__name__)


class ActivityLogRepository:
    """Append-only audit trail"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id=None,
        user_id: Optional[UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityLog:
        """
        Record an action

        Args:
            action: Short human-readable description, e.g. "status_changed"
            entity_type: Kind of row acted on, e.g. "application"
            entity_id: Id of that row; stored as text
            user_id: Acting user, None for system actions
            details: Free-form JSON payload

        Returns:
            The new log entry
        """
        entry = ActivityLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details,
        )
        self.session.add(entry)
        await self.session.flush()

        logger.debug(
            f"Activity: {action} on {entity_type} {entry.entity_id}",
            extra={"user_id": str(user_id) if user_id else None},
        )
        return entry

    async def list_recent(
        self,
        user_id: Optional[UUID] = None,
        entity_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[ActivityLog]:
        stmt = select(ActivityLog)
        if user_id is not None:
            stmt = stmt.where(ActivityLog.user_id == user_id)
        if entity_type is not None:
            stmt = stmt.where(ActivityLog.entity_type == entity_type)

        stmt = stmt.order_by(ActivityLog.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
