"""
Course Enrollment Service - API v1

Version 1 API endpoints
"""

from fastapi import APIRouter
from .enrollments import router as enrollments_router
from .certificates import router as certificates_router
from .memberships import router as memberships_router
from .badges import router as badges_router

api_router = APIRouter()

api_router.include_router(enrollments_router)  # prefix set on the router
api_router.include_router(certificates_router)
api_router.include_router(memberships_router)
api_router.include_router(badges_router)
