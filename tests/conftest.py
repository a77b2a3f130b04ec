"""
Test configuration and shared fixtures
Throwaway SQLite database per test, an API client wired to it, and data factories
"""

import json
from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import app.models  # noqa: F401  registers every table on Base.metadata
from app.config import settings
from app.database import Base, create_engine, get_db
from app.main import app as fastapi_app
from app.models.course import Course
from app.models.enrollment import Enrollment, AccessType
from app.models.membership import (
    MembershipPlan, MembershipTierCourse, Membership,
    PlanType, BillingInterval, MembershipStatus
)
from app.models.user import User
from app.core.enrollment_state import EnrollmentStateName
from app.services.school_service import SchoolConfig, get_school_config


def make_exam(correct_answers, passing_score=70, points=None):
    """Exam definition dict with one question per correct answer index"""
    questions = []
    for i, correct in enumerate(correct_answers):
        question = {
            "question": f"Question {i + 1}",
            "options": ["A", "B", "C", "D"],
            "correctAnswer": correct,
        }
        if points is not None:
            question["points"] = points[i]
        questions.append(question)
    return {"questions": questions, "passingScore": passing_score, "timeLimit": 60}


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Certificates are written under a per-test directory"""
    directory = tmp_path / "uploads"
    directory.mkdir()
    monkeypatch.setattr(settings, "upload_dir", str(directory))
    monkeypatch.setattr(settings, "assets_dir", str(tmp_path))
    monkeypatch.setattr(settings, "auto_issue_certificate", False)
    return directory


@pytest.fixture
async def test_engine(tmp_path):
    """Test database engine on a temporary SQLite file"""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db_session(session_factory, upload_dir) -> AsyncGenerator[AsyncSession, None]:
    """Database session for service level tests"""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def school_config():
    return SchoolConfig(
        name="Lone Star Security Academy",
        license_number="C-12345",
        instructor_name="Jane Instructor",
        business_representative="Bob Owner",
    )


@pytest.fixture
async def client(session_factory, school_config, upload_dir) -> AsyncGenerator[AsyncClient, None]:
    """API client with the database and school dependencies overridden"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_school_config] = lambda: school_config

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


# ----------------------------------------------------------------------
# factories
# ----------------------------------------------------------------------

@pytest.fixture
def create_student(test_db_session):
    counter = {"n": 0}

    async def _create(first_name="John", last_name="Smith", ssn="123456789", **kwargs) -> User:
        counter["n"] += 1
        student = User(
            first_name=first_name,
            last_name=last_name,
            email=kwargs.pop("email", f"student{counter['n']}@example.com"),
            ssn=ssn,
            **kwargs
        )
        test_db_session.add(student)
        await test_db_session.commit()
        await test_db_session.refresh(student)
        return student

    return _create


@pytest.fixture
def create_course(test_db_session):
    counter = {"n": 0}

    async def _create(price=50.0, exam=None, **kwargs) -> Course:
        counter["n"] += 1
        course = Course(
            name=kwargs.pop("name", f"Course {counter['n']}"),
            description=kwargs.pop("description", "Level II security officer training"),
            course_number=kwargs.pop("course_number", f"C-{counter['n']:03d}"),
            price=price,
            exam_json=json.dumps(exam) if exam is not None else None,
            is_active=kwargs.pop("is_active", True),
            **kwargs
        )
        test_db_session.add(course)
        await test_db_session.commit()
        await test_db_session.refresh(course)
        return course

    return _create


@pytest.fixture
def create_plan(test_db_session):
    async def _create(courses=(), discount_percent=0.0, plan_type=PlanType.RECURRING,
                      billing_interval=BillingInterval.MONTHLY, price=29.99, name="Basic",
                      is_active=True) -> MembershipPlan:
        plan = MembershipPlan(
            name=name,
            type=plan_type,
            billing_interval=billing_interval if plan_type == PlanType.RECURRING else None,
            price=price,
            discount_percent=discount_percent,
            is_active=is_active,
        )
        test_db_session.add(plan)
        await test_db_session.flush()
        for course in courses:
            test_db_session.add(MembershipTierCourse(membership_plan_id=plan.id, course_id=course.id))
        await test_db_session.commit()
        await test_db_session.refresh(plan)
        return plan

    return _create


@pytest.fixture
def create_membership(test_db_session):
    async def _create(student, plan, status=MembershipStatus.ACTIVE, expires_at=None,
                      current_period_end=None, started_at=None) -> Membership:
        membership = Membership(
            student_id=student.id,
            membership_plan_id=plan.id,
            status=status,
            expires_at=expires_at,
            current_period_end=current_period_end,
            started_at=started_at or datetime.utcnow() - timedelta(days=1),
        )
        test_db_session.add(membership)
        await test_db_session.commit()
        await test_db_session.refresh(membership)
        return membership

    return _create


@pytest.fixture
def create_enrollment(test_db_session):
    """Insert an enrollment directly in a given state"""
    async def _create(student, course, state=EnrollmentStateName.AWAITING_EXAM,
                      access_type=AccessType.PURCHASE, exam_score=None, exam_attempts=0,
                      completed_at=None, membership_id=None) -> Enrollment:
        enrollment = Enrollment(
            student_id=student.id,
            course_id=course.id,
            state=state,
            access_type=access_type,
            payment_status="paid",
            payment_id="pi_test" if access_type == AccessType.PURCHASE else None,
            exam_score=exam_score,
            exam_attempts=exam_attempts,
            completed_at=completed_at,
            membership_id=membership_id,
            discount_applied=0.0,
        )
        test_db_session.add(enrollment)
        await test_db_session.commit()
        await test_db_session.refresh(enrollment)
        return enrollment

    return _create
