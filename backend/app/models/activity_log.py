"""Activity log model"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Uuid
from backend.app.core.database import Base
from backend.app.models.base import utcnow
import uuid


class ActivityLog(Base):
    """Audit trail of user and admin actions"""

    __tablename__ = "activity_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(255), nullable=False)
    entity_type = Column(String(100), nullable=False, index=True)
    entity_id = Column(String(100), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<ActivityLog(action={self.action}, entity_type={self.entity_type}, entity_id={self.entity_id})>"
