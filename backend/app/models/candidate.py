"""Candidate model"""

from sqlalchemy import Column, String, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from backend.app.core.database import Base
from backend.app.models.base import TimestampMixin, enum_type
from backend.app.models.user import Region
import enum


class CandidateStatus(str, enum.Enum):
    """Hiring pipeline status shared by candidates and their applications"""
    PROFILE_CREATED = "profile_created"
    APPLICATION_IN_PROGRESS = "application_in_progress"
    APPLIED = "applied"
    HR_REVIEW = "hr_review"
    HR_APPROVED = "hr_approved"
    TRAINING = "training"
    MANAGER_INTERVIEW = "manager_interview"
    PAID_PROJECT = "paid_project"
    HIRED = "hired"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class Candidate(Base, TimestampMixin):
    """Candidate profile, one row per candidate user"""

    __tablename__ = "candidates"

    id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    phone = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    region = Column(enum_type(Region, "region"), nullable=True, index=True)
    status = Column(
        enum_type(CandidateStatus, "candidatestatus"),
        nullable=False,
        default=CandidateStatus.PROFILE_CREATED,
        index=True,
    )
    current_step = Column(Integer, nullable=False, default=1)

    # Object storage keys
    resume = Column(String(500), nullable=True)
    about_me_video = Column(String(500), nullable=True)
    sales_pitch_video = Column(String(500), nullable=True)

    assigned_manager_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    version = Column(Integer, nullable=False, default=1)

    user = relationship("User", foreign_keys=[id], lazy="joined")
    assigned_manager = relationship("User", foreign_keys=[assigned_manager_id], lazy="joined")
    applications = relationship(
        "JobApplication",
        back_populates="candidate",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def name(self):
        return self.user.name if self.user else None

    @property
    def email(self):
        return self.user.email if self.user else None

    def __repr__(self):
        return f"<Candidate(id={self.id}, status={self.status}, current_step={self.current_step})>"
