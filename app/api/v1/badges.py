"""
Badge API endpoints
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.badge import BadgeCreate, BadgeResponse, BadgeAwardResponse
from app.schemas.course import CourseSummary
from app.schemas.response import ErrorResponse
from app.services.badge_service import BadgeService

router = APIRouter(prefix="/badges", tags=["Badges"])


@router.get("", response_model=List[BadgeResponse], summary="List all badges")
async def list_badges(db: AsyncSession = Depends(get_db)):
    return [BadgeResponse.model_validate(badge) for badge in await BadgeService.list_badges(db)]


@router.get("/student/{student_id}", response_model=List[BadgeResponse], summary="List a student's badges")
async def list_student_badges(student_id: int, db: AsyncSession = Depends(get_db)):
    badges = []
    for badge, course in await BadgeService.list_student_badges(db, student_id):
        item = BadgeResponse.model_validate(badge)
        if course is not None:
            item.course = CourseSummary.model_validate(course)
        badges.append(item)
    return badges


@router.get("/{badge_id}", response_model=BadgeResponse, responses={404: {"model": ErrorResponse}}, summary="Get a badge")
async def get_badge(badge_id: int, db: AsyncSession = Depends(get_db)):
    return BadgeResponse.model_validate(await BadgeService.get_badge(db, badge_id))


@router.post(
    "",
    response_model=BadgeAwardResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Award a badge"
)
async def award_badge(data: BadgeCreate, response: Response, db: AsyncSession = Depends(get_db)):
    """Idempotent per (student, course, enrollment, badge type)"""
    badge, created = await BadgeService.award_badge(
        db,
        student_id=data.student_id,
        course_id=data.course_id,
        enrollment_id=data.enrollment_id,
        badge_name=data.badge_name,
        badge_type=data.badge_type,
        badge_description=data.badge_description,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
        return BadgeAwardResponse(message="Badge already exists", badge=BadgeResponse.model_validate(badge))
    return BadgeAwardResponse(message="Badge awarded successfully", badge=BadgeResponse.model_validate(badge))
