"""
Course Enrollment Service - application entry point

Features:
- Enrollment with membership / purchase entitlement
- Exam scoring
- Certificate PDF issuance
- Membership plans and student memberships
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from sqlalchemy.exc import IntegrityError
import time
import traceback
import uvicorn
from loguru import logger

from app.config import settings
from app.core.exceptions import CourseServiceError, ConflictError
from app.database import init_db, close_db, check_db_connection, AsyncSessionLocal
from app.api.v1 import api_router
from app.middleware.optimized_logging import setup_logger, request_logging_middleware
from app.services.school_service import SchoolService

setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    # startup
    await init_db()
    async with AsyncSessionLocal() as session:
        app.state.school = await SchoolService.initialize(session)

    logger.info(f"{settings.app_name} started")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Host: {settings.host}:{settings.port}")

    yield

    await close_db()
    logger.info(f"{settings.app_name} stopped")


app = FastAPI(
    title=settings.app_name,
    description="Course enrollment, exam scoring, certificates and memberships",
    version="1.0.0",
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# request logging
@app.middleware("http")
async def request_logging_middleware_handler(request: Request, call_next):
    return await request_logging_middleware(request, call_next)


def _error_body(message: str, code: str, details=None) -> dict:
    return {"success": False, "error": message, "code": code, "details": details}


@app.exception_handler(CourseServiceError)
async def course_service_error_handler(request: Request, exc: CourseServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.error_code, exc.details)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=400,
        content=_error_body(message, "validation_error", [err.get("msg") for err in errors])
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"{request.method} {request.url.path} integrity error: {exc.orig}")
    error = ConflictError("Duplicate entry", details=str(exc.orig) if settings.debug else None)
    return JSONResponse(
        status_code=error.status_code,
        content=_error_body(error.message, error.error_code, error.details)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            **_error_body(str(exc) or "Internal server error", "internal_error"),
            "traceback": traceback.format_exc() if settings.debug else None,
        }
    )


# routes
app.include_router(api_router, prefix="/api/v1")

# generated certificates and other uploads
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")


@app.get("/")
async def root():
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "features": [
            "enrollments",
            "exams",
            "certificates",
            "memberships",
            "badges"
        ]
    }


@app.get("/health")
async def health_check():
    db_ok = await check_db_connection()
    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "disconnected",
        "timestamp": time.time(),
        "environment": settings.environment
    }


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )
