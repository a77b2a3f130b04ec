"""
Course and exam definition schemas
"""

from typing import List, Optional, Any
from pydantic import Field, field_validator

from app.schemas.response import CamelModel


class ExamQuestion(CamelModel):
    """One multiple-choice question; correctAnswer is a zero-based option index"""
    question: str
    options: List[str] = Field(default_factory=list)
    correct_answer: int
    points: float = Field(default=1, gt=0)

    @field_validator("points", mode="before")
    @classmethod
    def default_points(cls, value):
        # unset or zero points count as one point
        return value if value else 1


class ExamDefinition(CamelModel):
    """Exam embedded in a course"""
    questions: List[ExamQuestion] = Field(default_factory=list)
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)
    time_limit: Optional[int] = Field(default=None, description="minutes")
    instructions: Optional[str] = None


class CourseSummary(CamelModel):
    """Course fields embedded in enrollment, certificate and plan responses"""
    id: int
    name: str
    description: Optional[str] = None
    course_number: Optional[str] = None
    price: Optional[float] = None
    exam: Optional[Any] = None
    exam_paper_url: Optional[str] = None
    certificate_template: Optional[str] = None
