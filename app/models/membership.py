"""
Membership models - plans, plan course inclusion, student memberships
"""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text, ForeignKey, UniqueConstraint, Enum
from datetime import datetime

from app.database import Base


class PlanType(str, enum.Enum):
    RECURRING = "recurring"
    LIFETIME = "lifetime"


class BillingInterval(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class MembershipStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    EXPIRED = "expired"
    PAST_DUE = "past_due"


class MembershipPlan(Base):
    """Membership plan (soft-deactivated, never deleted)"""
    __tablename__ = "membership_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(PlanType), nullable=False)
    billing_interval = Column(Enum(BillingInterval), nullable=True, comment="recurring plans only")
    price = Column(Float, nullable=False)
    discount_percent = Column(Float, default=0.0, comment="applied to courses not included in the plan")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<MembershipPlan(id={self.id}, name='{self.name}')>"


class MembershipTierCourse(Base):
    """Course included (free) in a plan"""
    __tablename__ = "membership_tier_courses"

    id = Column(Integer, primary_key=True, index=True)
    membership_plan_id = Column(
        Integer, ForeignKey("membership_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("membership_plan_id", "course_id", name="uq_tier_course"),
    )


class Membership(Base):
    """A student's subscription to one plan"""
    __tablename__ = "memberships"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    membership_plan_id = Column(Integer, ForeignKey("membership_plans.id"), nullable=False)
    status = Column(Enum(MembershipStatus), nullable=False, default=MembershipStatus.ACTIVE)

    current_period_start = Column(DateTime, nullable=True)
    current_period_end = Column(DateTime, nullable=True)
    canceled_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Membership(id={self.id}, student_id={self.student_id}, status={self.status})>"
