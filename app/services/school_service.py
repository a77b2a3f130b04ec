"""
School configuration service

The school row is the single tenant configuration. It is loaded once at
startup (seeded from settings when missing) into an immutable SchoolConfig
that routes receive through a dependency.
"""

from dataclasses import dataclass, fields
from typing import List, Optional

from fastapi import Request
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.config import settings
from app.models.school import School

REQUIRED_FIELDS = ("name", "license_number", "instructor_name")


@dataclass(frozen=True)
class SchoolConfig:
    """Immutable snapshot of the school row"""
    name: str
    license_number: str
    instructor_name: str
    instructor_signature: Optional[str] = None
    business_representative: Optional[str] = None
    business_representative_signature: Optional[str] = None
    logo: Optional[str] = None
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None

    @classmethod
    def from_model(cls, school: School) -> "SchoolConfig":
        return cls(**{f.name: getattr(school, f.name) for f in fields(cls)})

    def missing_fields(self) -> List[str]:
        """Required fields that are empty"""
        return [name for name in REQUIRED_FIELDS if not (getattr(self, name) or "").strip()]


class SchoolService:
    """School configuration service"""

    @classmethod
    async def load(cls, db: AsyncSession) -> Optional[SchoolConfig]:
        """Read the school row; the lowest id wins if several exist"""
        result = await db.execute(select(School).order_by(School.id).limit(1))
        school = result.scalar_one_or_none()
        if school is None:
            return None

        count = (await db.execute(select(func.count(School.id)))).scalar() or 0
        if count > 1:
            logger.warning(f"{count} school rows found, using id={school.id}")
        return SchoolConfig.from_model(school)

    @classmethod
    async def seed_from_settings(cls, db: AsyncSession) -> Optional[School]:
        """Create the school row from settings when none exists"""
        existing = (await db.execute(select(School.id).limit(1))).scalar_one_or_none()
        if existing is not None:
            return None

        if not (settings.school_name and settings.school_license_number and settings.instructor_name):
            logger.warning("No school configured and SCHOOL_NAME / SCHOOL_LICENSE_NUMBER / INSTRUCTOR_NAME not set")
            return None

        school = School(
            name=settings.school_name,
            license_number=settings.school_license_number,
            instructor_name=settings.instructor_name,
            instructor_signature=settings.instructor_signature_path or None,
            business_representative=settings.business_representative or None,
            business_representative_signature=settings.business_representative_signature_path or None,
            logo=settings.school_logo_path or None,
            address_street=settings.school_street or None,
            address_city=settings.school_city or None,
            address_state=settings.school_state or None,
            address_zip_code=settings.school_zip or None,
            phone=settings.school_phone or None,
            email=settings.school_email or None,
            website=settings.school_website or None,
        )
        db.add(school)
        await db.commit()
        await db.refresh(school)
        logger.info(f"School created from settings: {school.name} (id={school.id})")
        return school

    @classmethod
    async def initialize(cls, db: AsyncSession) -> Optional[SchoolConfig]:
        """Seed if needed, then load"""
        await cls.seed_from_settings(db)
        config = await cls.load(db)
        if config is None:
            logger.warning("School information not configured; certificates cannot be issued")
        else:
            logger.info(f"School loaded: {config.name}")
        return config


def get_school_config(request: Request) -> Optional[SchoolConfig]:
    """Dependency: the school loaded at startup"""
    return getattr(request.app.state, "school", None)
