"""
Membership API endpoints
Membership plans, plan course sets and student memberships
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.course import CourseSummary
from app.schemas.membership import (
    MembershipPlanCreate, MembershipPlanUpdate, MembershipPlanResponse,
    MembershipAssign, MembershipResponse, MembershipActionResponse
)
from app.schemas.response import ErrorResponse, MessageResponse
from app.services.membership_service import MembershipService

router = APIRouter(prefix="/memberships", tags=["Memberships"])


@router.get("/plans", response_model=List[MembershipPlanResponse], summary="List active membership plans")
async def list_plans(db: AsyncSession = Depends(get_db)):
    """Active plans ordered by price, each with its included courses"""
    return await MembershipService.list_plans(db)


@router.get(
    "/plans/{plan_id}",
    response_model=MembershipPlanResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a membership plan"
)
async def get_plan(plan_id: int, db: AsyncSession = Depends(get_db)):
    return await MembershipService.get_plan(db, plan_id)


@router.get(
    "/plans/{plan_id}/courses",
    response_model=List[CourseSummary],
    responses={404: {"model": ErrorResponse}},
    summary="Courses included in a plan"
)
async def get_plan_courses(plan_id: int, db: AsyncSession = Depends(get_db)):
    return await MembershipService.get_plan_courses(db, plan_id)


@router.post(
    "/plans",
    response_model=MembershipPlanResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create a membership plan"
)
async def create_plan(data: MembershipPlanCreate, db: AsyncSession = Depends(get_db)):
    """Recurring plans need billingInterval; courseIds become the included course set"""
    return await MembershipService.create_plan(db, data)


@router.put(
    "/plans/{plan_id}",
    response_model=MembershipPlanResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update a membership plan"
)
async def update_plan(plan_id: int, data: MembershipPlanUpdate, db: AsyncSession = Depends(get_db)):
    """Partial update; courseIds, when given, replaces the included course set"""
    return await MembershipService.update_plan(db, plan_id, data)


@router.delete(
    "/plans/{plan_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Deactivate a membership plan"
)
async def deactivate_plan(plan_id: int, db: AsyncSession = Depends(get_db)):
    await MembershipService.deactivate_plan(db, plan_id)
    return MessageResponse(message="Membership plan deactivated")


@router.get("/student/{student_id}", response_model=Optional[MembershipResponse], summary="Student's active membership")
async def get_student_membership(student_id: int, db: AsyncSession = Depends(get_db)):
    """The effective membership with plan details and included courses, or null"""
    return await MembershipService.get_student_membership(db, student_id)


@router.post(
    "/assign",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Assign a membership to a student"
)
async def assign_membership(data: MembershipAssign, db: AsyncSession = Depends(get_db)):
    return await MembershipService.assign_membership(
        db, data.student_id, data.membership_plan_id, expires_at=data.expires_at
    )


@router.post(
    "/remove/{membership_id}",
    response_model=MembershipActionResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Cancel a membership"
)
async def cancel_membership(membership_id: int, db: AsyncSession = Depends(get_db)):
    membership, changed = await MembershipService.cancel_membership(db, membership_id)
    message = "Membership canceled successfully" if changed else "Membership already canceled"
    return MembershipActionResponse(message=message, membership=membership)


@router.get("/all", response_model=List[MembershipResponse], summary="List all memberships")
async def list_memberships(db: AsyncSession = Depends(get_db)):
    return await MembershipService.list_memberships(db)
