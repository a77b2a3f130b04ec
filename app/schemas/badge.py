"""
Badge schemas
"""

from datetime import datetime
from typing import Optional

from app.schemas.response import CamelModel
from app.schemas.course import CourseSummary


class BadgeCreate(CamelModel):
    student_id: int
    course_id: int
    enrollment_id: int
    badge_type: str = "certificate"
    badge_name: str
    badge_description: Optional[str] = None


class BadgeResponse(CamelModel):
    id: int
    student_id: int
    course_id: int
    enrollment_id: int
    badge_type: str
    badge_name: str
    badge_description: Optional[str] = None
    earned_at: Optional[datetime] = None

    course: Optional[CourseSummary] = None


class BadgeAwardResponse(CamelModel):
    message: str
    badge: BadgeResponse
