"""
Course Enrollment Service - data models

SQLAlchemy ORM model definitions
"""

from .user import User
from .course import Course
from .membership import (
    MembershipPlan, MembershipTierCourse, Membership,
    PlanType, BillingInterval, MembershipStatus
)
from .enrollment import Enrollment, AccessType
from .certificate import Certificate
from .school import School
from .badge import Badge

__all__ = [
    "User",
    "Course",
    "MembershipPlan",
    "MembershipTierCourse",
    "Membership",
    "PlanType",
    "BillingInterval",
    "MembershipStatus",
    "Enrollment",
    "AccessType",
    "Certificate",
    "School",
    "Badge",
]
