"""
Enrollment service tests
Entitlement-gated creation, idempotency, access re-verification, progress and payment
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.enrollment_state import EnrollmentStateName
from app.core.exceptions import AccessDeniedError, NotFoundError
from app.models.enrollment import AccessType
from app.models.membership import MembershipStatus
from app.services.enrollment_service import EnrollmentService, ACCESS_DENIED_MESSAGE
from app.services.membership_service import MembershipService


def _raise_operational_error(*args, **kwargs):
    raise OperationalError("SELECT memberships", {}, Exception("database is locked"))


class TestCreateEnrollment:
    """EnrollmentService.create_enrollment"""

    @pytest.mark.asyncio
    async def test_free_course(self, test_db_session, create_student, create_course):
        student = await create_student()
        course = await create_course(price=0)

        enrollment, created = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        assert created is True
        assert enrollment.access_type == AccessType.FREE
        assert enrollment.state == EnrollmentStateName.AWAITING_EXAM
        assert enrollment.status == "active"
        assert enrollment.payment_status == "paid"
        assert enrollment.discount_applied == 0
        assert enrollment.progress == 0
        assert enrollment.exam_attempts == 0
        assert enrollment.membership_id is None

    @pytest.mark.asyncio
    async def test_free_course_records_membership(self, test_db_session, create_student, create_course,
                                                  create_plan, create_membership):
        student = await create_student()
        course = await create_course(price=0)
        plan = await create_plan(courses=[course], discount_percent=25)
        membership = await create_membership(student, plan)

        enrollment, created = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        assert created is True
        assert enrollment.access_type == AccessType.FREE
        assert enrollment.membership_id == membership.id
        assert enrollment.discount_applied == 0

    @pytest.mark.asyncio
    async def test_free_course_ignores_lookup_failure(self, test_db_session, create_student, create_course,
                                                      monkeypatch):
        student = await create_student()
        course = await create_course(price=0)
        monkeypatch.setattr(MembershipService, "get_active_membership", _raise_operational_error)

        enrollment, created = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        assert created is True
        assert enrollment.access_type == AccessType.FREE
        assert enrollment.membership_id is None

    @pytest.mark.asyncio
    async def test_membership_includes_course(self, test_db_session, create_student, create_course,
                                              create_plan, create_membership):
        student = await create_student()
        course = await create_course(price=80)
        plan = await create_plan(courses=[course], discount_percent=25)
        membership = await create_membership(student, plan)

        enrollment, created = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        assert created is True
        assert enrollment.access_type == AccessType.MEMBERSHIP
        assert enrollment.membership_id == membership.id
        assert enrollment.discount_applied == 80

    @pytest.mark.asyncio
    async def test_paid_with_membership_discount(self, test_db_session, create_student, create_course,
                                                 create_plan, create_membership):
        student = await create_student()
        course = await create_course(price=100)
        plan = await create_plan(discount_percent=25)
        membership = await create_membership(student, plan)

        enrollment, _ = await EnrollmentService.create_enrollment(
            test_db_session, student.id, course.id, payment_id="pi_123", payment_status="paid"
        )

        assert enrollment.access_type == AccessType.PURCHASE
        assert enrollment.membership_id == membership.id
        assert enrollment.discount_applied == 25
        assert enrollment.payment_id == "pi_123"

    @pytest.mark.asyncio
    async def test_paid_without_membership(self, test_db_session, create_student, create_course):
        student = await create_student()
        course = await create_course(price=50)

        enrollment, _ = await EnrollmentService.create_enrollment(
            test_db_session, student.id, course.id, payment_id="pi_456", payment_status="paid"
        )

        assert enrollment.access_type == AccessType.PURCHASE
        assert enrollment.membership_id is None
        assert enrollment.discount_applied == 0

    @pytest.mark.asyncio
    async def test_denied_without_access(self, test_db_session, create_student, create_course,
                                         create_plan, create_membership):
        student = await create_student()
        course = await create_course(price=50)
        # discount-only membership is not access
        plan = await create_plan(discount_percent=10)
        await create_membership(student, plan)

        with pytest.raises(AccessDeniedError) as exc_info:
            await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        assert exc_info.value.message == ACCESS_DENIED_MESSAGE
        assert exc_info.value.error_code == "access_denied"
        assert await EnrollmentService.find_enrollment(test_db_session, student.id, course.id) is None

    @pytest.mark.asyncio
    async def test_unpaid_payment_is_not_proof(self, test_db_session, create_student, create_course):
        student = await create_student()
        course = await create_course(price=50)

        with pytest.raises(AccessDeniedError):
            await EnrollmentService.create_enrollment(
                test_db_session, student.id, course.id, payment_id="pi_789", payment_status="pending"
            )

    @pytest.mark.asyncio
    async def test_lookup_failure_reported_separately(self, test_db_session, create_student, create_course,
                                                      monkeypatch):
        student = await create_student()
        course = await create_course(price=50)
        monkeypatch.setattr(MembershipService, "get_active_membership", _raise_operational_error)

        with pytest.raises(AccessDeniedError) as exc_info:
            await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        assert exc_info.value.error_code == "access_lookup_failed"
        assert exc_info.value.message != ACCESS_DENIED_MESSAGE

    @pytest.mark.asyncio
    async def test_lookup_failure_with_payment_still_enrolls(self, test_db_session, create_student,
                                                             create_course, monkeypatch):
        student = await create_student()
        course = await create_course(price=50)
        monkeypatch.setattr(MembershipService, "get_active_membership", _raise_operational_error)

        enrollment, created = await EnrollmentService.create_enrollment(
            test_db_session, student.id, course.id, payment_id="pi_1", payment_status="paid"
        )

        assert created is True
        assert enrollment.access_type == AccessType.PURCHASE

    @pytest.mark.asyncio
    async def test_unknown_student_or_course(self, test_db_session, create_course):
        course = await create_course(price=0)
        with pytest.raises(NotFoundError, match="Student or course not found"):
            await EnrollmentService.create_enrollment(test_db_session, 999, course.id)

    @pytest.mark.asyncio
    async def test_idempotent(self, test_db_session, create_student, create_course):
        student = await create_student()
        course = await create_course(price=0)

        first, created_first = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)
        second, created_second = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        assert created_first is True
        assert created_second is False
        assert first.id == second.id


class TestAccessReverification:
    """Existing enrollments are re-checked on later requests"""

    @pytest.mark.asyncio
    async def test_lapsed_membership_loses_access(self, test_db_session, create_student, create_course,
                                                  create_plan, create_membership):
        student = await create_student()
        course = await create_course(price=50)
        plan = await create_plan(courses=[course])
        membership = await create_membership(student, plan)
        enrollment, _ = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        membership.status = MembershipStatus.CANCELED
        await test_db_session.commit()

        with pytest.raises(AccessDeniedError):
            await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)
        with pytest.raises(AccessDeniedError):
            await EnrollmentService.verify_access(test_db_session, enrollment)

    @pytest.mark.asyncio
    async def test_expired_membership_loses_access(self, test_db_session, create_student, create_course,
                                                   create_plan, create_membership):
        student = await create_student()
        course = await create_course(price=50)
        plan = await create_plan(courses=[course])
        membership = await create_membership(student, plan)
        enrollment, _ = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)

        membership.expires_at = datetime.utcnow() - timedelta(seconds=1)
        await test_db_session.commit()

        with pytest.raises(AccessDeniedError):
            await EnrollmentService.verify_access(test_db_session, enrollment)

    @pytest.mark.asyncio
    async def test_purchased_enrollment_keeps_access(self, test_db_session, create_student, create_course,
                                                     create_plan, create_membership):
        student = await create_student()
        course = await create_course(price=50)
        plan = await create_plan(discount_percent=10)
        membership = await create_membership(student, plan)
        enrollment, _ = await EnrollmentService.create_enrollment(
            test_db_session, student.id, course.id, payment_id="pi_2", payment_status="paid"
        )

        membership.status = MembershipStatus.CANCELED
        await test_db_session.commit()

        await EnrollmentService.verify_access(test_db_session, enrollment)
        again, created = await EnrollmentService.create_enrollment(test_db_session, student.id, course.id)
        assert created is False
        assert again.id == enrollment.id

    @pytest.mark.asyncio
    async def test_free_course_never_rechecked(self, test_db_session, create_student, create_course,
                                               create_enrollment):
        student = await create_student()
        course = await create_course(price=0)
        enrollment = await create_enrollment(student, course, access_type=AccessType.MEMBERSHIP)

        await EnrollmentService.verify_access(test_db_session, enrollment)


class TestProgressAndPayment:
    """Progress clamping and payment callbacks"""

    @pytest.mark.asyncio
    async def test_progress_is_clamped(self, test_db_session, create_student, create_course, create_enrollment):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course)

        updated = await EnrollmentService.update_progress(test_db_session, enrollment.id, -5)
        assert updated.progress == 0
        assert updated.completed_at is None

        updated = await EnrollmentService.update_progress(test_db_session, enrollment.id, 150)
        assert updated.progress == 100
        assert updated.completed_at is not None

    @pytest.mark.asyncio
    async def test_completed_at_is_sticky(self, test_db_session, create_student, create_course,
                                          create_enrollment):
        student = await create_student()
        course = await create_course()
        done = datetime(2024, 5, 1, 12, 0, 0)
        enrollment = await create_enrollment(student, course, completed_at=done)

        updated = await EnrollmentService.update_progress(test_db_session, enrollment.id, 100)
        assert updated.completed_at == done

    @pytest.mark.asyncio
    async def test_missing_enrollment(self, test_db_session):
        with pytest.raises(NotFoundError, match="Enrollment not found"):
            await EnrollmentService.update_progress(test_db_session, 404, 50)

    @pytest.mark.asyncio
    async def test_payment_moves_between_pending_and_awaiting(self, test_db_session, create_student,
                                                              create_course, create_enrollment):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course)

        updated = await EnrollmentService.update_payment(test_db_session, enrollment.id, "pending")
        assert updated.state == EnrollmentStateName.PENDING
        assert updated.status == "pending"

        updated = await EnrollmentService.update_payment(test_db_session, enrollment.id, "paid", "pi_new")
        assert updated.state == EnrollmentStateName.AWAITING_EXAM
        assert updated.payment_id == "pi_new"

    @pytest.mark.asyncio
    async def test_payment_does_not_touch_exam_outcome(self, test_db_session, create_student, create_course,
                                                       create_enrollment):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course, state=EnrollmentStateName.PASSED, exam_score=90)

        updated = await EnrollmentService.update_payment(test_db_session, enrollment.id, "failed")

        assert updated.state == EnrollmentStateName.PASSED
        assert updated.payment_status == "failed"


class TestPracticeEnrollment:
    """Automatic practice exam enrollment"""

    @pytest.mark.asyncio
    async def test_practice_enrollment_bypasses_entitlement(self, test_db_session, create_student,
                                                            create_course):
        student = await create_student()
        await create_course(price=25, course_number="exam2", name="Practice Exam")

        enrollment, created = await EnrollmentService.ensure_practice_enrollment(test_db_session, student.id)
        assert created is True
        assert enrollment.access_type == AccessType.FREE

        again, created = await EnrollmentService.ensure_practice_enrollment(test_db_session, student.id)
        assert created is False
        assert again.id == enrollment.id

    @pytest.mark.asyncio
    async def test_practice_course_missing(self, test_db_session, create_student):
        student = await create_student()
        with pytest.raises(NotFoundError, match="Practice exam course not found"):
            await EnrollmentService.ensure_practice_enrollment(test_db_session, student.id)
