"""
Enrollment service
Entitlement-gated enrollment creation, idempotent lookup, progress and payment updates
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.config import settings
from app.core import enrollment_state
from app.core.exceptions import AccessDeniedError, NotFoundError
from app.models.course import Course
from app.models.enrollment import Enrollment, AccessType
from app.models.user import User
from app.services.membership_service import MembershipService

ACCESS_DENIED_MESSAGE = (
    "You do not have access to this course. "
    "Please upgrade your membership plan or complete payment."
)
ACCESS_LOOKUP_FAILED_MESSAGE = "Could not verify your course access right now. Please try again later."


def _access_denied() -> AccessDeniedError:
    return AccessDeniedError(ACCESS_DENIED_MESSAGE)


def _access_lookup_failed(detail) -> AccessDeniedError:
    return AccessDeniedError(
        ACCESS_LOOKUP_FAILED_MESSAGE,
        error_code="access_lookup_failed",
        details=detail.to_dict() if detail is not None else None
    )


class EnrollmentService:
    """Enrollment service"""

    @classmethod
    async def get_enrollment(cls, db: AsyncSession, enrollment_id: int) -> Enrollment:
        enrollment = await db.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        return enrollment

    @classmethod
    async def find_enrollment(cls, db: AsyncSession, student_id: int, course_id: int) -> Optional[Enrollment]:
        result = await db.execute(
            select(Enrollment).where(
                Enrollment.student_id == student_id,
                Enrollment.course_id == course_id,
            )
        )
        return result.scalar_one_or_none()

    @classmethod
    async def verify_access(cls, db: AsyncSession, enrollment: Enrollment):
        """
        Re-check access for an existing enrollment

        Membership enrollments must still be covered by an effective
        membership that includes the course. Free and purchased enrollments
        keep access.
        """
        if enrollment.access_type != AccessType.MEMBERSHIP:
            return

        course = await db.get(Course, enrollment.course_id)
        if course is not None and (course.price or 0) == 0:
            return

        result = await MembershipService.check_access(db, enrollment.student_id, enrollment.course_id)
        if result.is_failure():
            raise _access_lookup_failed(result.error)
        if not result.data.has_access:
            logger.info(f"Membership access lapsed: enrollment={enrollment.id} student={enrollment.student_id}")
            raise _access_denied()

    @classmethod
    async def create_enrollment(
        cls,
        db: AsyncSession,
        student_id: int,
        course_id: int,
        payment_id: Optional[str] = None,
        payment_status: Optional[str] = None,
        skip_access_check: bool = False,
    ) -> Tuple[Enrollment, bool]:
        """
        Create an enrollment, or return the existing one for the pair

        Args:
            payment_id / payment_status: proof of purchase when
                payment_status is 'paid' and a payment id is given
            skip_access_check: internal auto-enrollment (practice exam)

        Returns:
            (enrollment, created)
        """
        existing = await cls.find_enrollment(db, student_id, course_id)
        if existing is not None:
            if not skip_access_check:
                await cls.verify_access(db, existing)
            return existing, False

        student = await db.get(User, student_id)
        course = await db.get(Course, course_id)
        if student is None or course is None:
            raise NotFoundError("Student or course not found")

        price = course.price or 0.0
        enrollment = Enrollment(
            student_id=student_id,
            course_id=course_id,
            payment_status="paid",
            payment_id=payment_id,
            progress=0.0,
            exam_attempts=0,
            enrolled_at=datetime.utcnow(),
        )

        if skip_access_check:
            enrollment.access_type = AccessType.FREE
            enrollment.discount_applied = 0.0
        elif price == 0:
            enrollment.access_type = AccessType.FREE
            enrollment.discount_applied = 0.0
            # free courses still record the student's membership
            result = await MembershipService.check_access(db, student_id, course_id)
            if result.is_success() and result.data.membership is not None:
                enrollment.membership_id = result.data.membership.id
        else:
            result = await MembershipService.check_access(db, student_id, course_id)
            decision = result.data if result.is_success() else None
            has_payment = bool(payment_id) and payment_status == "paid"

            if decision is not None and decision.has_access:
                enrollment.access_type = AccessType.MEMBERSHIP
                enrollment.membership_id = decision.membership.id
                enrollment.discount_applied = price
            elif has_payment:
                enrollment.access_type = AccessType.PURCHASE
                enrollment.discount_applied = 0.0
                if decision is not None and decision.membership is not None:
                    enrollment.membership_id = decision.membership.id
                    enrollment.discount_applied = price * decision.discount_percent / 100
            elif result.is_failure():
                raise _access_lookup_failed(result.error)
            else:
                logger.info(f"Enrollment denied: student={student_id} course={course_id}")
                raise _access_denied()

        enrollment.set_state(enrollment_state.AwaitingExam())
        db.add(enrollment)
        try:
            await db.commit()
        except IntegrityError:
            # lost a race on (student_id, course_id)
            await db.rollback()
            existing = await cls.find_enrollment(db, student_id, course_id)
            if existing is None:
                raise
            if not skip_access_check:
                await cls.verify_access(db, existing)
            return existing, False

        await db.refresh(enrollment)
        logger.info(
            f"Enrollment created: id={enrollment.id} student={student_id} course={course_id} "
            f"access={enrollment.access_type.value} discount={enrollment.discount_applied}"
        )
        return enrollment, True

    @classmethod
    async def list_enrollments(cls, db: AsyncSession) -> List[Tuple[Enrollment, Optional[User], Optional[Course]]]:
        """All enrollments with student and course, newest first"""
        result = await db.execute(
            select(Enrollment, User, Course)
            .outerjoin(User, Enrollment.student_id == User.id)
            .outerjoin(Course, Enrollment.course_id == Course.id)
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        )
        return [(enrollment, student, course) for enrollment, student, course in result.all()]

    @classmethod
    async def list_student_enrollments(cls, db: AsyncSession, student_id: int) -> List[Tuple[Enrollment, Optional[Course]]]:
        result = await db.execute(
            select(Enrollment, Course)
            .outerjoin(Course, Enrollment.course_id == Course.id)
            .where(Enrollment.student_id == student_id)
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        )
        return [(enrollment, course) for enrollment, course in result.all()]

    @classmethod
    async def get_practice_course(cls, db: AsyncSession) -> Optional[Course]:
        result = await db.execute(
            select(Course).where(Course.course_number == settings.practice_exam_course_number)
        )
        return result.scalar_one_or_none()

    @classmethod
    async def ensure_practice_enrollment(cls, db: AsyncSession, student_id: int) -> Tuple[Enrollment, bool]:
        """Enroll the student in the free practice exam course, bypassing entitlement"""
        student = await db.get(User, student_id)
        if student is None:
            raise NotFoundError("Student not found")
        course = await cls.get_practice_course(db)
        if course is None:
            raise NotFoundError("Practice exam course not found")
        return await cls.create_enrollment(db, student_id, course.id, skip_access_check=True)

    @classmethod
    async def update_progress(cls, db: AsyncSession, enrollment_id: int, progress: float) -> Enrollment:
        """Clamp to [0, 100]; the first time 100 is reached sets completed_at"""
        enrollment = await cls.get_enrollment(db, enrollment_id)
        progress = max(0.0, min(100.0, float(progress)))
        enrollment.progress = progress
        if progress >= 100 and enrollment.completed_at is None:
            enrollment.completed_at = datetime.utcnow()
        await db.commit()
        await db.refresh(enrollment)
        return enrollment

    @classmethod
    async def update_payment(cls, db: AsyncSession, enrollment_id: int, payment_status: str,
                             payment_id: Optional[str] = None) -> Enrollment:
        """Payment collaborator callback: moves pending <-> awaiting_exam only"""
        enrollment = await cls.get_enrollment(db, enrollment_id)
        enrollment.payment_status = payment_status
        if payment_id:
            enrollment.payment_id = payment_id

        state = enrollment.get_state()
        if payment_status == "paid":
            new_state = enrollment_state.confirm_payment(state)
        else:
            new_state = enrollment_state.revoke_payment(state)
        enrollment.set_state(new_state)

        await db.commit()
        await db.refresh(enrollment)
        logger.info(f"Enrollment payment updated: id={enrollment.id} payment={payment_status} state={new_state.name.value}")
        return enrollment
