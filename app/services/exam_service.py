"""
Exam service
Scores exam submissions against a course's exam definition and records the outcome
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.config import settings
from app.core import enrollment_state
from app.core.exceptions import AccessDeniedError, CourseServiceError, NotFoundError, ValidationError
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.schemas.course import ExamDefinition, ExamQuestion
from app.services.certificate_service import CertificateService
from app.services.enrollment_service import EnrollmentService
from app.services.school_service import SchoolConfig


@dataclass
class ExamOutcome:
    score: float
    passed: bool
    enrollment: Enrollment
    certificate: Optional[Certificate] = None


def load_exam(course: Optional[Course]) -> ExamDefinition:
    """Parse the course exam; a course without questions has no exam"""
    raw = course.exam if course is not None else None
    if not raw:
        raise NotFoundError("Course does not have an exam", error_code="exam_not_found")
    try:
        exam = ExamDefinition.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError("Course exam definition is invalid", details=[err["msg"] for err in e.errors()]) from e
    if not exam.questions:
        raise NotFoundError("Course does not have an exam", error_code="exam_not_found")
    return exam


def score_answers(questions: Sequence[ExamQuestion], answers: Sequence[int]) -> Tuple[float, float, float]:
    """
    Score answers in question order

    Returns:
        (earned_points, total_points, percentage)
    """
    if len(answers) != len(questions):
        raise ValidationError(
            f"Expected {len(questions)} answers, but received {len(answers)}",
            error_code="answer_count_mismatch",
            details={"expected": len(questions), "received": len(answers)}
        )

    total = sum(q.points for q in questions)
    if total <= 0:
        raise ValidationError("Exam has no scorable points")

    earned = sum(q.points for q, answer in zip(questions, answers) if answer >= 0 and answer == q.correct_answer)
    return earned, total, 100 * earned / total


def passing_score_for(exam: ExamDefinition) -> float:
    return exam.passing_score or settings.default_passing_score


class ExamService:
    """Exam service"""

    @classmethod
    async def submit(
        cls,
        db: AsyncSession,
        enrollment: Enrollment,
        answers: List[int],
        school: Optional[SchoolConfig] = None,
    ) -> ExamOutcome:
        """
        Score a submission and record it on the enrollment

        Every submission counts as an attempt. completed_at is set by the
        first passing submission only. With AUTO_ISSUE_CERTIFICATE a passing
        submission also issues the certificate; failing to issue is logged.
        """
        if not answers:
            raise ValidationError("Answers array is required")

        await EnrollmentService.verify_access(db, enrollment)

        state = enrollment.get_state()
        if isinstance(state, enrollment_state.Pending):
            raise AccessDeniedError(
                "Payment has not been confirmed for this enrollment",
                error_code="payment_pending"
            )

        course = await db.get(Course, enrollment.course_id)
        exam = load_exam(course)
        earned, total, percentage = score_answers(exam.questions, answers)
        passing_score = passing_score_for(exam)
        passed = percentage >= passing_score

        attempts = (enrollment.exam_attempts or 0) + 1
        enrollment.exam_attempts = attempts
        enrollment.exam_score = percentage
        enrollment.set_state(enrollment_state.record_exam(state, passed, percentage, attempts))
        if passed and enrollment.completed_at is None:
            enrollment.completed_at = datetime.utcnow()

        await db.commit()
        await db.refresh(enrollment)
        logger.info(
            f"Exam scored: enrollment={enrollment.id} attempt={attempts} "
            f"points={earned}/{total} score={percentage:.2f} passed={passed} (passing={passing_score})"
        )

        outcome = ExamOutcome(score=percentage, passed=passed, enrollment=enrollment)
        if passed and settings.auto_issue_certificate:
            outcome.certificate = await cls._auto_issue(db, enrollment, school)
        return outcome

    @classmethod
    async def _auto_issue(cls, db: AsyncSession, enrollment: Enrollment,
                          school: Optional[SchoolConfig]) -> Optional[Certificate]:
        enrollment_id = enrollment.id
        try:
            certificate, _ = await CertificateService.generate(db, enrollment_id, school)
        except (CourseServiceError, SQLAlchemyError, OSError) as e:
            logger.warning(f"Automatic certificate issue failed for enrollment={enrollment_id}: {e}")
            await db.rollback()
            certificate = None
        await db.refresh(enrollment)
        return certificate

    @classmethod
    async def submit_for_student(
        cls,
        db: AsyncSession,
        student_id: int,
        course_id: int,
        answers: List[int],
        school: Optional[SchoolConfig] = None,
    ) -> ExamOutcome:
        """Submit by (student, course), enrolling first when needed"""
        if not answers:
            raise ValidationError("Answers array is required")
        enrollment, _ = await EnrollmentService.create_enrollment(db, student_id, course_id)
        return await cls.submit(db, enrollment, answers, school)
