"""
Membership plan and membership schemas
"""

from datetime import datetime
from typing import List, Optional
from pydantic import Field, model_validator

from app.models.membership import PlanType, BillingInterval, MembershipStatus
from app.schemas.response import CamelModel
from app.schemas.course import CourseSummary


class MembershipPlanCreate(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: PlanType
    billing_interval: Optional[BillingInterval] = None
    price: float = Field(..., ge=0)
    discount_percent: float = Field(default=0, ge=0, le=100)
    course_ids: List[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_billing_interval(self):
        if self.type == PlanType.RECURRING and self.billing_interval is None:
            raise ValueError("billingInterval is required for recurring plans")
        return self


class MembershipPlanUpdate(CamelModel):
    """Partial update; courseIds replaces the inclusion set when given"""
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[PlanType] = None
    billing_interval: Optional[BillingInterval] = None
    price: Optional[float] = Field(default=None, ge=0)
    discount_percent: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None
    course_ids: Optional[List[int]] = None


class MembershipPlanResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    type: PlanType
    billing_interval: Optional[BillingInterval] = None
    price: float
    discount_percent: float = 0.0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    courses: List[CourseSummary] = Field(default_factory=list)


class MembershipAssign(CamelModel):
    student_id: int
    membership_plan_id: int
    expires_at: Optional[datetime] = None


class MembershipResponse(CamelModel):
    id: int
    student_id: int
    membership_plan_id: int
    status: MembershipStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    started_at: Optional[datetime] = None

    # plan details
    plan_name: Optional[str] = None
    plan_description: Optional[str] = None
    type: Optional[PlanType] = None
    billing_interval: Optional[BillingInterval] = None
    discount_percent: Optional[float] = None
    courses: List[CourseSummary] = Field(default_factory=list)

    # admin listing
    student_name: Optional[str] = None
    student_email: Optional[str] = None


class MembershipActionResponse(CamelModel):
    message: str
    membership: MembershipResponse
