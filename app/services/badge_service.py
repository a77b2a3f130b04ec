"""
Badge service - awarding and listing student badges
"""

from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.exceptions import NotFoundError
from app.models.badge import Badge
from app.models.course import Course


class BadgeService:
    """Badge service"""

    CERTIFICATE_BADGE_TYPE = "certificate"

    @classmethod
    async def get_badge(cls, db: AsyncSession, badge_id: int) -> Badge:
        badge = await db.get(Badge, badge_id)
        if badge is None:
            raise NotFoundError("Badge not found")
        return badge

    @classmethod
    async def list_badges(cls, db: AsyncSession) -> List[Badge]:
        result = await db.execute(select(Badge).order_by(Badge.earned_at.desc(), Badge.id.desc()))
        return list(result.scalars().all())

    @classmethod
    async def list_student_badges(cls, db: AsyncSession, student_id: int) -> List[Tuple[Badge, Optional[Course]]]:
        """A student's badges with their course"""
        result = await db.execute(
            select(Badge, Course)
            .outerjoin(Course, Badge.course_id == Course.id)
            .where(Badge.student_id == student_id)
            .order_by(Badge.earned_at.desc(), Badge.id.desc())
        )
        return [(badge, course) for badge, course in result.all()]

    @classmethod
    async def _find(cls, db: AsyncSession, student_id: int, course_id: int,
                    enrollment_id: int, badge_type: str) -> Optional[Badge]:
        result = await db.execute(
            select(Badge).where(
                Badge.student_id == student_id,
                Badge.course_id == course_id,
                Badge.enrollment_id == enrollment_id,
                Badge.badge_type == badge_type,
            )
        )
        return result.scalar_one_or_none()

    @classmethod
    def _new_badge(cls, student_id, course_id, enrollment_id, badge_type, badge_name, badge_description) -> Badge:
        return Badge(
            student_id=student_id,
            course_id=course_id,
            enrollment_id=enrollment_id,
            badge_type=badge_type,
            badge_name=badge_name,
            badge_description=badge_description,
        )

    @classmethod
    async def award_badge(
        cls,
        db: AsyncSession,
        student_id: int,
        course_id: int,
        enrollment_id: int,
        badge_name: str,
        badge_type: str = CERTIFICATE_BADGE_TYPE,
        badge_description: Optional[str] = None,
    ) -> Tuple[Badge, bool]:
        """
        Award a badge; an existing award is returned unchanged

        Returns:
            (badge, created)
        """
        existing = await cls._find(db, student_id, course_id, enrollment_id, badge_type)
        if existing is not None:
            return existing, False

        badge = cls._new_badge(student_id, course_id, enrollment_id, badge_type, badge_name, badge_description)
        db.add(badge)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await cls._find(db, student_id, course_id, enrollment_id, badge_type)
            if existing is None:
                # foreign key failure, not a duplicate
                raise
            return existing, False

        await db.refresh(badge)
        logger.info(f"Badge awarded: {badge_type} student={student_id} enrollment={enrollment_id}")
        return badge, True

    @classmethod
    async def stage_certificate_badge(cls, db: AsyncSession, student_id: int, course_id: int,
                                      enrollment_id: int, course_name: str) -> Optional[Badge]:
        """Add the certificate badge to the caller's unit of work (no commit)"""
        if await cls._find(db, student_id, course_id, enrollment_id, cls.CERTIFICATE_BADGE_TYPE):
            return None
        badge = cls._new_badge(
            student_id, course_id, enrollment_id, cls.CERTIFICATE_BADGE_TYPE,
            f"{course_name} Certificate",
            f"Earned for completing {course_name}",
        )
        db.add(badge)
        return badge
