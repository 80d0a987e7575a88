"""Job, application and application history models"""

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, String, Table, Text, UniqueConstraint, Uuid
)
from sqlalchemy.orm import relationship
from backend.app.core.database import Base
from backend.app.models.base import TimestampMixin, enum_type, utcnow
from backend.app.models.candidate import CandidateStatus
import uuid
import enum


class JobStatus(str, enum.Enum):
    """Job status enumeration"""
    ACTIVE = "active"
    INACTIVE = "inactive"


job_training = Table(
    "job_training",
    Base.metadata,
    Column("job_id", Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), primary_key=True),
    Column("training_module_id", Uuid, ForeignKey("training_modules.id", ondelete="CASCADE"), primary_key=True),
)

job_assessments = Table(
    "job_assessments",
    Base.metadata,
    Column("job_id", Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), primary_key=True),
    Column("assessment_id", Uuid, ForeignKey("assessments.id", ondelete="CASCADE"), primary_key=True),
)


class Job(Base, TimestampMixin):
    """Job posting model"""

    __tablename__ = "jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    department = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    employment_type = Column(String(100), nullable=True)
    salary_range = Column(String(100), nullable=True)
    status = Column(enum_type(JobStatus, "jobstatus"), nullable=False, default=JobStatus.ACTIVE, index=True)
    is_public = Column(Boolean, nullable=False, default=True)
    archived = Column(Boolean, nullable=False, default=False, index=True)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)

    training_modules = relationship(
        "TrainingModule",
        secondary=job_training,
        lazy="selectin",
        order_by="TrainingModule.position",
    )
    assessments = relationship("Assessment", secondary=job_assessments, lazy="selectin")
    applications = relationship(
        "JobApplication",
        back_populates="job",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    def __repr__(self):
        return f"<Job(id={self.id}, title={self.title}, status={self.status})>"


class JobApplication(Base, TimestampMixin):
    """A candidate's application to a job"""

    __tablename__ = "job_applications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    candidate_id = Column(Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        enum_type(CandidateStatus, "candidatestatus"),
        nullable=False,
        default=CandidateStatus.APPLIED,
        index=True,
    )

    candidate = relationship("Candidate", back_populates="applications", lazy="noload")
    job = relationship("Job", back_populates="applications", lazy="joined")
    history = relationship(
        "ApplicationStatusHistory",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="noload",
        order_by="ApplicationStatusHistory.changed_at",
    )

    __table_args__ = (
        UniqueConstraint("candidate_id", "job_id", name="uq_application_candidate_job"),
    )

    def __repr__(self):
        return f"<JobApplication(id={self.id}, candidate_id={self.candidate_id}, status={self.status})>"


class ApplicationStatusHistory(Base):
    """One row per status transition of an application"""

    __tablename__ = "application_status_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id = Column(Uuid, ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(enum_type(CandidateStatus, "candidatestatus"), nullable=True)
    to_status = Column(enum_type(CandidateStatus, "candidatestatus"), nullable=False)
    changed_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    note = Column(Text, nullable=True)
    changed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    application = relationship("JobApplication", back_populates="history")

    def __repr__(self):
        return f"<ApplicationStatusHistory(application_id={self.application_id}, {self.from_status}->{self.to_status})>"
