"""
Enrollment and exam submission schemas
"""

from datetime import datetime
from typing import List, Optional, Literal
from pydantic import Field

from app.schemas.response import CamelModel
from app.schemas.course import CourseSummary
from app.schemas.certificate import CertificateResponse


class EnrollmentCreate(CamelModel):
    """Enrollment request; paymentId + paymentStatus='paid' is proof of purchase"""
    student_id: int
    course_id: int
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None


class StudentSummary(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class EnrollmentResponse(CamelModel):
    """Enrollment as returned by the API"""
    id: int
    student_id: int
    course_id: int
    state: str
    status: str
    progress: float = 0.0
    exam_score: Optional[float] = None
    exam_attempts: int = 0
    exam_passed: bool = False
    certificate_issued: bool = False
    certificate_id: Optional[int] = None
    access_type: str
    payment_status: Optional[str] = None
    payment_id: Optional[str] = None
    membership_id: Optional[int] = None
    discount_applied: float = 0.0
    enrolled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    student: Optional[StudentSummary] = None
    course: Optional[CourseSummary] = None

    @classmethod
    def from_enrollment(cls, enrollment, student=None, course=None) -> "EnrollmentResponse":
        return cls(
            id=enrollment.id,
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            state=enrollment.state.value,
            status=enrollment.status,
            progress=enrollment.progress or 0.0,
            exam_score=enrollment.exam_score,
            exam_attempts=enrollment.exam_attempts or 0,
            exam_passed=enrollment.exam_passed,
            certificate_issued=enrollment.certificate_issued,
            certificate_id=enrollment.certificate_id,
            access_type=enrollment.access_type.value,
            payment_status=enrollment.payment_status,
            payment_id=enrollment.payment_id,
            membership_id=enrollment.membership_id,
            discount_applied=enrollment.discount_applied or 0.0,
            enrolled_at=enrollment.enrolled_at,
            completed_at=enrollment.completed_at,
            student=StudentSummary.model_validate(student) if student is not None else None,
            course=CourseSummary.model_validate(course) if course is not None else None,
        )


class ProgressUpdate(CamelModel):
    progress: float


class PaymentUpdate(CamelModel):
    """Payment collaborator callback"""
    payment_status: Literal["pending", "paid", "failed"]
    payment_id: Optional[str] = None


class ExamSubmission(CamelModel):
    """Answers in question order; -1 marks an unanswered question"""
    answers: List[int] = Field(default_factory=list)
    student_id: Optional[int] = None
    course_id: Optional[int] = None


class ExamResult(CamelModel):
    score: float
    passed: bool
    enrollment: EnrollmentResponse
    certificate: Optional[CertificateResponse] = None
