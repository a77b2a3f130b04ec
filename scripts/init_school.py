"""
Create the school configuration row

Usage:
- reads SCHOOL_NAME, SCHOOL_LICENSE_NUMBER, INSTRUCTOR_NAME and the other
  SCHOOL_* / signature / logo settings (environment or .env)
- does nothing when a school row already exists

Run:
  python -m scripts.init_school
"""
import asyncio

from loguru import logger

from app.database import AsyncSessionLocal, init_db
from app.services.school_service import SchoolService


async def init_school():
    await init_db()
    async with AsyncSessionLocal() as session:
        created = await SchoolService.seed_from_settings(session)
        if created is None:
            config = await SchoolService.load(session)
            if config is not None:
                logger.info(f"School already configured: {config.name}")
            return

        logger.info(f"School created: {created.name} (license {created.license_number})")
        missing = [name for name, value in (
            ("instructor signature", created.instructor_signature),
            ("logo", created.logo),
        ) if not value]
        if missing:
            logger.warning(f"Certificates will be drawn without: {', '.join(missing)}")


if __name__ == '__main__':
    asyncio.run(init_school())
