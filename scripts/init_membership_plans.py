"""
Seed the default membership plans

Plans:
- Basic (monthly): 29.99, 10% discount, first two active courses included
- Premium (monthly): 49.99, 25% discount, every active course included
- Premium (yearly): 479.99, 25% discount, every active course included
- Lifetime: 999.99, 30% discount, every active course included

Skipped when any plan already exists.

Run:
  python -m scripts.init_membership_plans
"""
import asyncio

from sqlalchemy import select
from loguru import logger

from app.database import AsyncSessionLocal, init_db
from app.models.course import Course
from app.models.membership import MembershipPlan, PlanType, BillingInterval
from app.schemas.membership import MembershipPlanCreate
from app.services.membership_service import MembershipService


def default_plans(course_ids):
    return [
        MembershipPlanCreate(
            name="Basic",
            description="Access to selected courses with a discount on all other courses",
            type=PlanType.RECURRING,
            billing_interval=BillingInterval.MONTHLY,
            price=29.99,
            discount_percent=10,
            course_ids=course_ids[:2],
        ),
        MembershipPlanCreate(
            name="Premium",
            description="Full access to all courses plus maximum discount on additional purchases",
            type=PlanType.RECURRING,
            billing_interval=BillingInterval.MONTHLY,
            price=49.99,
            discount_percent=25,
            course_ids=course_ids,
        ),
        MembershipPlanCreate(
            name="Premium Yearly",
            description="Full access to all courses plus maximum discount on additional purchases (Yearly - Save 20%)",
            type=PlanType.RECURRING,
            billing_interval=BillingInterval.YEARLY,
            price=479.99,
            discount_percent=25,
            course_ids=course_ids,
        ),
        MembershipPlanCreate(
            name="Lifetime",
            description="Lifetime access to all courses with maximum discount on future courses",
            type=PlanType.LIFETIME,
            price=999.99,
            discount_percent=30,
            course_ids=course_ids,
        ),
    ]


async def init_membership_plans():
    await init_db()
    async with AsyncSessionLocal() as session:
        existing = (await session.execute(select(MembershipPlan))).scalars().all()
        if existing:
            logger.info(f"{len(existing)} membership plans already exist, skipping")
            for plan in existing:
                logger.info(f"- {plan.name} (ID: {plan.id})")
            return

        result = await session.execute(
            select(Course.id).where(Course.is_active == True).order_by(Course.id)  # noqa: E712
        )
        course_ids = list(result.scalars().all())
        if not course_ids:
            logger.warning("No active courses found; plans will be created without included courses")

        for data in default_plans(course_ids):
            plan = await MembershipService.create_plan(session, data)
            logger.info(f"Created {plan.name} (ID: {plan.id}) with {len(plan.courses)} courses")


if __name__ == '__main__':
    asyncio.run(init_membership_plans())
