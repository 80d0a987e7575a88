"""Assessment, section, question and result models"""

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
)
from sqlalchemy.orm import relationship
from backend.app.core.database import Base
from backend.app.models.base import TimestampMixin, utcnow
import uuid


class Assessment(Base, TimestampMixin):
    """Assessment made of ordered sections of multiple-choice questions"""

    __tablename__ = "assessments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    difficulty = Column(String(50), nullable=True)
    topic = Column(String(255), nullable=True)
    time_limit = Column(Integer, nullable=True)  # minutes
    randomize_questions = Column(Boolean, nullable=False, default=False)
    prevent_backtracking = Column(Boolean, nullable=False, default=False)
    archived = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    sections = relationship(
        "AssessmentSection",
        back_populates="assessment",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AssessmentSection.created_at",
    )

    @property
    def questions(self):
        return [question for section in self.sections for question in section.questions]

    def __repr__(self):
        return f"<Assessment(id={self.id}, title={self.title})>"


class AssessmentSection(Base, TimestampMixin):
    __tablename__ = "assessment_sections"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    assessment_id = Column(Uuid, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    assessment = relationship("Assessment", back_populates="sections")
    questions = relationship(
        "Question",
        back_populates="section",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Question.created_at",
    )


class Question(Base, TimestampMixin):
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    section_id = Column(Uuid, ForeignKey("assessment_sections.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_answer = Column(Integer, nullable=False)  # index into options
    score = Column(Integer, nullable=False, default=1)  # points for a correct answer
    explanation = Column(Text, nullable=True)
    time_limit = Column(Integer, nullable=True)  # seconds

    section = relationship("AssessmentSection", back_populates="questions")


class AssessmentResult(Base, TimestampMixin):
    """A candidate's attempt at an assessment"""

    __tablename__ = "assessment_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    assessment_id = Column(Uuid, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    candidate_id = Column(Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    answers = Column(JSON, nullable=True)
    answer_timings = Column(JSON, nullable=True)
    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    feedback = Column(Text, nullable=True)
    reviewed_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    assessment = relationship("Assessment", lazy="joined")

    def __repr__(self):
        return f"<AssessmentResult(id={self.id}, assessment_id={self.assessment_id}, score={self.score})>"
