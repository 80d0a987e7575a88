"""Training module, video and progress models"""

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
)
from sqlalchemy.orm import relationship
from backend.app.core.database import Base
from backend.app.models.base import TimestampMixin, utcnow
import uuid


class TrainingModule(Base, TimestampMixin):
    """Ordered bundle of videos with an optional quiz"""

    __tablename__ = "training_modules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    module = Column(String(100), nullable=False, unique=True, index=True)  # slug, e.g. "product"
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0, index=True)
    archived = Column(Boolean, nullable=False, default=False)
    quiz_assessment_id = Column(Uuid, ForeignKey("assessments.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    videos = relationship(
        "Video",
        back_populates="training_module",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Video.position",
    )

    @property
    def active_videos(self):
        return [video for video in self.videos if not video.archived]

    def __repr__(self):
        return f"<TrainingModule(id={self.id}, module={self.module}, position={self.position})>"


class Video(Base, TimestampMixin):
    """Training video, owned by exactly one module"""

    __tablename__ = "videos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    module_id = Column(Uuid, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    url = Column(String(1000), nullable=False)  # external URL or storage key
    duration = Column(String(20), nullable=True)
    thumbnail = Column(String(1000), nullable=True)
    file_size = Column(Integer, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    archived = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    training_module = relationship("TrainingModule", back_populates="videos")

    def __repr__(self):
        return f"<Video(id={self.id}, title={self.title}, module_id={self.module_id})>"


class VideoProgress(Base, TimestampMixin):
    """Per-user video watch state"""

    __tablename__ = "video_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(Uuid, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False, index=True)
    completed = Column(Boolean, nullable=False, default=False)
    time_spent = Column(Integer, nullable=False, default=0)  # seconds
    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_video_progress_user_video"),
    )

    def __repr__(self):
        return f"<VideoProgress(user_id={self.user_id}, video_id={self.video_id}, completed={self.completed})>"


class QuizResult(Base):
    """One attempt at a module quiz"""

    __tablename__ = "quiz_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(Uuid, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    passed = Column(Boolean, nullable=False, default=False)
    answers = Column(JSON, nullable=True)
    completed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<QuizResult(user_id={self.user_id}, module_id={self.module_id}, score={self.score}, passed={self.passed})>"
