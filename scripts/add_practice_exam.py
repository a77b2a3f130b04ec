"""
Create or update the free practice exam course

The course number comes from PRACTICE_EXAM_COURSE_NUMBER (default exam2).
The exam definition file is JSON:

  {
    "name": "...", "description": "...", "duration": "1 hour",
    "exam": {"passingScore": 70, "timeLimit": 60, "instructions": "...",
             "questions": [{"question": "...", "options": [...], "correctAnswer": 0, "points": 1}]}
  }

Run:
  python -m scripts.add_practice_exam path/to/exam.json
"""
import asyncio
import json
import sys

from sqlalchemy import select
from loguru import logger

from app.config import settings
from app.database import AsyncSessionLocal, init_db
from app.models.course import Course
from app.schemas.course import ExamDefinition


async def add_practice_exam(path: str):
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)

    exam = ExamDefinition.model_validate(payload.get("exam", payload))
    if not exam.questions:
        raise SystemExit("Exam definition has no questions")
    exam_json = exam.model_dump_json(by_alias=True, exclude_none=True)

    await init_db()
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(Course).where(Course.course_number == settings.practice_exam_course_number)
        )
        course = result.scalar_one_or_none()
        if course is None:
            course = Course(course_number=settings.practice_exam_course_number, is_active=True)
            session.add(course)
            action = "Created"
        else:
            action = "Updated"

        course.name = payload.get("name", course.name or "Practice Examination")
        course.description = payload.get("description", course.description or "")
        course.duration = payload.get("duration", course.duration)
        course.price = 0.0
        course.exam_json = exam_json
        await session.commit()
        await session.refresh(course)
        logger.info(
            f"{action} practice exam course {course.course_number} (ID: {course.id}) "
            f"with {len(exam.questions)} questions"
        )


if __name__ == '__main__':
    if len(sys.argv) != 2:
        print("Usage: python -m scripts.add_practice_exam <exam.json>")
        sys.exit(1)
    asyncio.run(add_practice_exam(sys.argv[1]))
