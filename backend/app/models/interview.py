"""Interview model"""

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from backend.app.core.database import Base
from backend.app.models.base import TimestampMixin, enum_type
import uuid
import enum


class InterviewStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InterviewDecision(str, enum.Enum):
    PASS = "pass"
    FAIL = "fail"


class Interview(Base, TimestampMixin):
    """Manager interview with a candidate"""

    __tablename__ = "interviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    candidate_id = Column(Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    manager_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        enum_type(InterviewStatus, "interviewstatus"),
        nullable=False,
        default=InterviewStatus.SCHEDULED,
        index=True,
    )
    decision = Column(enum_type(InterviewDecision, "interviewdecision"), nullable=True)
    notes = Column(Text, nullable=True)
    feedback = Column(Text, nullable=True)

    manager = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<Interview(id={self.id}, candidate_id={self.candidate_id}, status={self.status})>"
