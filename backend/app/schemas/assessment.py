"""Assessment schemas for authoring, attempts and AI question generation"""

from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict


class QuestionCreate(BaseModel):
    """A multiple-choice question; ``correct_answer`` indexes ``options``"""
    text: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2, max_length=10)
    correct_answer: int = Field(..., ge=0)
    score: int = Field(1, ge=0, description="Points for a correct answer")
    explanation: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=1, description="Seconds")

    @model_validator(mode='after')
    def check_answer_index(self):
        if self.correct_answer >= len(self.options):
            raise ValueError('correct_answer must index into options')
        return self


class QuestionUpdate(BaseModel):
    text: Optional[str] = Field(None, min_length=1)
    options: Optional[List[str]] = Field(None, min_length=2, max_length=10)
    correct_answer: Optional[int] = Field(None, ge=0)
    score: Optional[int] = Field(None, ge=0)
    explanation: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=1)


class SectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    questions: List[QuestionCreate] = Field(default_factory=list)


class AssessmentCreateRequest(BaseModel):
    """Request schema for creating an assessment"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    difficulty: Optional[str] = Field(None, max_length=50)
    topic: Optional[str] = Field(None, max_length=255)
    time_limit: Optional[int] = Field(None, ge=1, description="Minutes")
    randomize_questions: bool = False
    prevent_backtracking: bool = False
    sections: List[SectionCreate] = Field(default_factory=list)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Assessment title cannot be empty')
        return v.strip()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Sales Fundamentals",
                "difficulty": "beginner",
                "time_limit": 30,
                "randomize_questions": True,
                "sections": [
                    {
                        "title": "Objection handling",
                        "questions": [
                            {
                                "text": "A customer says the price is too high. What do you do first?",
                                "options": ["Discount", "Ask what they compare it to", "Leave", "Argue"],
                                "correct_answer": 1,
                                "score": 2
                            }
                        ]
                    }
                ]
            }
        }
    )


class AssessmentUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    difficulty: Optional[str] = Field(None, max_length=50)
    topic: Optional[str] = Field(None, max_length=255)
    time_limit: Optional[int] = Field(None, ge=1)
    randomize_questions: Optional[bool] = None
    prevent_backtracking: Optional[bool] = None
    archived: Optional[bool] = None


class QuestionResponse(BaseModel):
    """Full question, including the answer key"""
    id: UUID
    section_id: UUID
    text: str
    options: List[str]
    correct_answer: int
    score: int
    explanation: Optional[str]
    time_limit: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class CandidateQuestionResponse(BaseModel):
    """Question as shown during an attempt, without the answer key"""
    id: UUID
    section_id: UUID
    text: str
    options: List[str]
    score: int
    time_limit: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class SectionResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str]
    questions: List[QuestionResponse]

    model_config = ConfigDict(from_attributes=True)


class AssessmentResponse(BaseModel):
    """Response schema for assessment details"""
    id: UUID
    title: str
    description: Optional[str]
    difficulty: Optional[str]
    topic: Optional[str]
    time_limit: Optional[int]
    randomize_questions: bool
    prevent_backtracking: bool
    archived: bool
    sections: List[SectionResponse]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AttemptResponse(BaseModel):
    """An open or finished attempt with the questions in display order"""
    result_id: UUID
    assessment_id: UUID
    title: str
    time_limit: Optional[int]
    prevent_backtracking: bool
    started_at: datetime
    completed: bool
    questions: List[CandidateQuestionResponse]


class AttemptSubmitRequest(BaseModel):
    answers: Dict[UUID, int] = Field(..., description="Chosen option index per question id")
    answer_timings: Dict[UUID, float] = Field(default_factory=dict, description="Seconds spent per question")


class AssessmentResultResponse(BaseModel):
    """Response schema for an assessment attempt"""
    id: UUID
    assessment_id: UUID
    candidate_id: UUID
    score: int
    completed: bool
    started_at: datetime
    completed_at: Optional[datetime]
    feedback: Optional[str]
    reviewed_by: Optional[UUID]
    reviewed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class FeedbackRequest(BaseModel):
    feedback: str = Field(..., min_length=1, max_length=5000)


class GeneratedQuestion(BaseModel):
    """One question as returned by the language model"""
    text: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: int = Field(..., ge=0, le=3)
    explanation: Optional[str] = None


class GeneratedQuestionSet(BaseModel):
    questions: List[GeneratedQuestion]


class GenerateQuestionsRequest(BaseModel):
    """Request schema for AI question generation"""
    topic: str = Field(..., min_length=2, max_length=255)
    difficulty: Optional[str] = Field(None, max_length=50, description="e.g. beginner, advanced")
    num_questions: int = Field(5, ge=1, le=20)
    section_id: Optional[UUID] = Field(None, description="Save the generated questions into this section")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "topic": "Residential solar panel sales",
                "difficulty": "intermediate",
                "num_questions": 5
            }
        }
    )


class GenerateQuestionsResponse(BaseModel):
    questions: List[GeneratedQuestion]
    saved: List[QuestionResponse] = Field(default_factory=list)


class AssessmentStatsResponse(BaseModel):
    completed_attempts: int
    average_score: Optional[float] = None
    pass_rate: Optional[float] = None
