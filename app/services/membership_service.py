"""
Membership service
Entitlement resolution, membership plan store and student memberships
"""

import calendar
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, and_, or_, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.exceptions import ValidationError, NotFoundError
from app.core.service_result import ServiceResult, ErrorDetail, ErrorCode
from app.models.course import Course
from app.models.membership import (
    MembershipPlan, MembershipTierCourse, Membership,
    PlanType, BillingInterval, MembershipStatus
)
from app.models.user import User
from app.schemas.course import CourseSummary
from app.schemas.membership import (
    MembershipPlanCreate, MembershipPlanUpdate, MembershipPlanResponse, MembershipResponse
)

LIFETIME_YEARS = 100


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an entitlement lookup"""
    has_access: bool
    membership: Optional[Membership] = None
    plan: Optional[MembershipPlan] = None

    @property
    def discount_percent(self) -> float:
        if self.plan is None:
            return 0.0
        return self.plan.discount_percent or 0.0


def _add_months(moment: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day to the target month"""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _effectively_active(now: datetime):
    """Active status, not expired, current period not over"""
    return and_(
        Membership.status == MembershipStatus.ACTIVE,
        or_(Membership.expires_at.is_(None), Membership.expires_at > now),
        or_(Membership.current_period_end.is_(None), Membership.current_period_end > now),
    )


class MembershipService:
    """Membership service"""

    # ------------------------------------------------------------------
    # entitlement resolver
    # ------------------------------------------------------------------

    @classmethod
    async def get_active_membership(
        cls, db: AsyncSession, student_id: int
    ) -> Optional[Tuple[Membership, MembershipPlan]]:
        """The student's effective membership (most recently started) and its plan"""
        result = await db.execute(
            select(Membership, MembershipPlan)
            .join(MembershipPlan, Membership.membership_plan_id == MembershipPlan.id)
            .where(Membership.student_id == student_id, _effectively_active(datetime.utcnow()))
            .order_by(Membership.started_at.desc(), Membership.id.desc())
            .limit(1)
        )
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    @classmethod
    async def resolve_entitlement(cls, db: AsyncSession, student_id: int, course_id: int) -> AccessDecision:
        """
        Decide membership access to a course; raises on lookup failure

        No membership -> no access. A membership grants access only to the
        courses in its plan; otherwise it is still returned for the discount.
        """
        found = await cls.get_active_membership(db, student_id)
        if found is None:
            return AccessDecision(has_access=False)

        membership, plan = found
        included = await db.execute(
            select(MembershipTierCourse.id).where(
                MembershipTierCourse.membership_plan_id == plan.id,
                MembershipTierCourse.course_id == course_id,
            )
        )
        return AccessDecision(
            has_access=included.first() is not None,
            membership=membership,
            plan=plan,
        )

    @classmethod
    async def check_access(cls, db: AsyncSession, student_id: int, course_id: int) -> ServiceResult[AccessDecision]:
        """
        Entitlement check that never raises

        Returns:
            ServiceResult: success with an AccessDecision, or failure with
            DATABASE_ERROR when access could not be determined
        """
        try:
            return ServiceResult.ok(await cls.resolve_entitlement(db, student_id, course_id))
        except SQLAlchemyError as e:
            logger.warning(f"Membership access lookup failed for student={student_id} course={course_id}: {e}")
            return ServiceResult.failure(
                ErrorDetail(
                    code=ErrorCode.DATABASE_ERROR,
                    message="Could not determine course access",
                    context={"student_id": student_id, "course_id": course_id},
                )
            )

    @classmethod
    async def get_discount(cls, db: AsyncSession, student_id: int) -> float:
        """Discount percent of the effective membership, 0 when none or on failure"""
        try:
            found = await cls.get_active_membership(db, student_id)
        except SQLAlchemyError as e:
            logger.warning(f"Membership discount lookup failed for student={student_id}: {e}")
            return 0.0
        if found is None:
            return 0.0
        return found[1].discount_percent or 0.0

    @classmethod
    async def is_membership_active(cls, db: AsyncSession, membership_id: int) -> bool:
        try:
            result = await db.execute(
                select(Membership.id).where(
                    Membership.id == membership_id, _effectively_active(datetime.utcnow())
                )
            )
        except SQLAlchemyError as e:
            logger.warning(f"Membership status lookup failed for membership={membership_id}: {e}")
            return False
        return result.first() is not None

    @classmethod
    async def _plan_courses(cls, db: AsyncSession, plan_id: int, active_only: bool = False) -> List[Course]:
        query = (
            select(Course)
            .join(MembershipTierCourse, MembershipTierCourse.course_id == Course.id)
            .where(MembershipTierCourse.membership_plan_id == plan_id)
            .order_by(Course.id)
        )
        if active_only:
            query = query.where(Course.is_active == True)  # noqa: E712
        result = await db.execute(query)
        return list(result.scalars().all())

    @classmethod
    async def get_membership_courses(cls, db: AsyncSession, student_id: int) -> List[Course]:
        """Active courses included in the student's effective plan; empty on failure"""
        try:
            found = await cls.get_active_membership(db, student_id)
            if found is None:
                return []
            return await cls._plan_courses(db, found[1].id, active_only=True)
        except SQLAlchemyError as e:
            logger.warning(f"Membership course lookup failed for student={student_id}: {e}")
            return []

    @classmethod
    def _membership_response(cls, membership: Membership, plan: Optional[MembershipPlan] = None,
                             courses: Optional[List[Course]] = None, student: Optional[User] = None) -> MembershipResponse:
        response = MembershipResponse.model_validate(membership)
        if plan is not None:
            response.plan_name = plan.name
            response.plan_description = plan.description
            response.type = plan.type
            response.billing_interval = plan.billing_interval
            response.discount_percent = plan.discount_percent
        if courses:
            response.courses = [CourseSummary.model_validate(c) for c in courses]
        if student is not None:
            response.student_name = student.full_name
            response.student_email = student.email
        return response

    @classmethod
    async def get_student_membership(cls, db: AsyncSession, student_id: int) -> Optional[MembershipResponse]:
        """Effective membership with plan details and included courses; None when none or on failure"""
        try:
            found = await cls.get_active_membership(db, student_id)
            if found is None:
                return None
            membership, plan = found
            courses = await cls._plan_courses(db, plan.id)
        except SQLAlchemyError as e:
            logger.warning(f"Student membership lookup failed for student={student_id}: {e}")
            return None
        return cls._membership_response(membership, plan, courses)

    # ------------------------------------------------------------------
    # plan store
    # ------------------------------------------------------------------

    @classmethod
    async def _plan_response(cls, db: AsyncSession, plan: MembershipPlan) -> MembershipPlanResponse:
        response = MembershipPlanResponse.model_validate(plan)
        response.courses = [CourseSummary.model_validate(c) for c in await cls._plan_courses(db, plan.id)]
        return response

    @classmethod
    async def list_plans(cls, db: AsyncSession) -> List[MembershipPlanResponse]:
        """Active plans, cheapest first"""
        result = await db.execute(
            select(MembershipPlan)
            .where(MembershipPlan.is_active == True)  # noqa: E712
            .order_by(MembershipPlan.price.asc(), MembershipPlan.id.asc())
        )
        return [await cls._plan_response(db, plan) for plan in result.scalars().all()]

    @classmethod
    async def _get_plan_model(cls, db: AsyncSession, plan_id: int) -> MembershipPlan:
        plan = await db.get(MembershipPlan, plan_id)
        if plan is None:
            raise NotFoundError("Membership plan not found")
        return plan

    @classmethod
    async def get_plan(cls, db: AsyncSession, plan_id: int) -> MembershipPlanResponse:
        return await cls._plan_response(db, await cls._get_plan_model(db, plan_id))

    @classmethod
    async def get_plan_courses(cls, db: AsyncSession, plan_id: int) -> List[CourseSummary]:
        await cls._get_plan_model(db, plan_id)
        return [CourseSummary.model_validate(c) for c in await cls._plan_courses(db, plan_id)]

    @classmethod
    async def _replace_plan_courses(cls, db: AsyncSession, plan_id: int, course_ids: List[int]):
        unique_ids = list(dict.fromkeys(course_ids))
        if unique_ids:
            result = await db.execute(select(Course.id).where(Course.id.in_(unique_ids)))
            missing = set(unique_ids) - set(result.scalars().all())
            if missing:
                raise NotFoundError(
                    f"Course not found: {', '.join(str(i) for i in sorted(missing))}",
                    details={"course_ids": sorted(missing)}
                )

        await db.execute(delete(MembershipTierCourse).where(MembershipTierCourse.membership_plan_id == plan_id))
        for course_id in unique_ids:
            db.add(MembershipTierCourse(membership_plan_id=plan_id, course_id=course_id))

    @classmethod
    async def create_plan(cls, db: AsyncSession, data: MembershipPlanCreate) -> MembershipPlanResponse:
        plan = MembershipPlan(
            name=data.name,
            description=data.description,
            type=data.type,
            billing_interval=data.billing_interval if data.type == PlanType.RECURRING else None,
            price=data.price,
            discount_percent=data.discount_percent,
            is_active=True,
        )
        db.add(plan)
        await db.flush()
        await cls._replace_plan_courses(db, plan.id, data.course_ids)
        await db.commit()
        await db.refresh(plan)
        logger.info(f"Membership plan created: {plan.name} (id={plan.id}, courses={len(data.course_ids)})")
        return await cls._plan_response(db, plan)

    @classmethod
    async def update_plan(cls, db: AsyncSession, plan_id: int, data: MembershipPlanUpdate) -> MembershipPlanResponse:
        plan = await cls._get_plan_model(db, plan_id)
        changes = data.model_dump(exclude_unset=True, exclude={"course_ids"})
        for key, value in changes.items():
            setattr(plan, key, value)

        if plan.type == PlanType.RECURRING and plan.billing_interval is None:
            raise ValidationError("billingInterval is required for recurring plans")
        if plan.type == PlanType.LIFETIME:
            plan.billing_interval = None

        if data.course_ids is not None:
            await cls._replace_plan_courses(db, plan.id, data.course_ids)

        plan.updated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(plan)
        logger.info(f"Membership plan updated: id={plan.id}")
        return await cls._plan_response(db, plan)

    @classmethod
    async def deactivate_plan(cls, db: AsyncSession, plan_id: int) -> MembershipPlan:
        """Soft delete; existing memberships keep their plan"""
        plan = await cls._get_plan_model(db, plan_id)
        plan.is_active = False
        plan.updated_at = datetime.utcnow()
        await db.commit()
        logger.info(f"Membership plan deactivated: id={plan.id}")
        return plan

    # ------------------------------------------------------------------
    # student memberships
    # ------------------------------------------------------------------

    @classmethod
    async def assign_membership(cls, db: AsyncSession, student_id: int, plan_id: int,
                                expires_at: Optional[datetime] = None) -> MembershipResponse:
        """Start a membership; a second concurrently active one is rejected"""
        student = await db.get(User, student_id)
        if student is None:
            raise NotFoundError("Student not found")

        plan = await db.get(MembershipPlan, plan_id)
        if plan is None or not plan.is_active:
            raise NotFoundError("Membership plan not found or inactive")

        if await cls.get_active_membership(db, student_id) is not None:
            raise ValidationError(
                "Student already has an active membership",
                error_code="membership_exists"
            )

        now = datetime.utcnow()
        membership = Membership(
            student_id=student_id,
            membership_plan_id=plan.id,
            status=MembershipStatus.ACTIVE,
            started_at=now,
        )
        if plan.type == PlanType.LIFETIME:
            membership.expires_at = expires_at or _add_months(now, 12 * LIFETIME_YEARS)
        else:
            months = 12 if plan.billing_interval == BillingInterval.YEARLY else 1
            membership.current_period_start = now
            membership.current_period_end = _add_months(now, months)
            membership.expires_at = expires_at or membership.current_period_end

        db.add(membership)
        await db.commit()
        await db.refresh(membership)
        logger.info(f"Membership assigned: student={student_id} plan={plan.name} membership={membership.id}")
        return cls._membership_response(membership, plan, await cls._plan_courses(db, plan.id))

    @classmethod
    async def cancel_membership(cls, db: AsyncSession, membership_id: int) -> Tuple[MembershipResponse, bool]:
        """
        Cancel a membership

        Returns:
            (membership, changed) - changed is False when it was already canceled
        """
        membership = await db.get(Membership, membership_id)
        if membership is None:
            raise NotFoundError("Membership not found")

        if membership.status == MembershipStatus.CANCELED:
            return cls._membership_response(membership), False

        membership.status = MembershipStatus.CANCELED
        membership.canceled_at = datetime.utcnow()
        membership.updated_at = membership.canceled_at
        await db.commit()
        logger.info(f"Membership canceled: id={membership.id} student={membership.student_id}")
        return cls._membership_response(membership), True

    @classmethod
    async def list_memberships(cls, db: AsyncSession) -> List[MembershipResponse]:
        """Every membership with plan and student details, newest first"""
        result = await db.execute(
            select(Membership, MembershipPlan, User)
            .outerjoin(MembershipPlan, Membership.membership_plan_id == MembershipPlan.id)
            .outerjoin(User, Membership.student_id == User.id)
            .order_by(Membership.created_at.desc(), Membership.id.desc())
        )
        return [
            cls._membership_response(membership, plan, student=student)
            for membership, plan, student in result.all()
        ]
