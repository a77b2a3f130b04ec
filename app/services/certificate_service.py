"""
Certificate service
Idempotent certificate issuance, PDF persistence and lookup
"""

import asyncio
import os
import time
from datetime import datetime
from typing import List, Optional, Tuple

import aiofiles
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.config import settings
from app.core import enrollment_state
from app.core.exceptions import CourseServiceError, NotFoundError, ValidationError
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.user import User
from app.services.badge_service import BadgeService
from app.services.certificate_renderer import CertificateData, render_certificate
from app.services.school_service import SchoolConfig

CERTIFICATE_URL_PREFIX = "/uploads/certificates"


def split_student_name(first_name: str) -> Tuple[str, str]:
    """
    First name and middle initial from the stored first name

    "John Michael" -> ("John", "M.")
    """
    parts = (first_name or "").split()
    if not parts:
        return "", ""
    middle_initial = parts[1][0].upper() + "." if len(parts) > 1 else ""
    return parts[0], middle_initial


def make_certificate_number(enrollment_id: int) -> str:
    return f"{settings.certificate_number_prefix}-{int(time.time() * 1000)}-{enrollment_id}"


def certificate_file_path(certificate_number: str) -> Tuple[str, str]:
    """(absolute file path, public url) for a certificate number"""
    filename = f"certificate-{certificate_number}.pdf"
    return os.path.join(settings.certificates_dir, filename), f"{CERTIFICATE_URL_PREFIX}/{filename}"


def _remove_file(path: str):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Could not remove orphan certificate file {path}: {e}")


class CertificateService:
    """Certificate service"""

    @classmethod
    async def find_by_enrollment(cls, db: AsyncSession, enrollment_id: int) -> Optional[Certificate]:
        result = await db.execute(select(Certificate).where(Certificate.enrollment_id == enrollment_id))
        return result.scalar_one_or_none()

    @classmethod
    def _check_school(cls, school: Optional[SchoolConfig]) -> SchoolConfig:
        if school is None:
            raise ValidationError(
                "School information not configured. Please configure school details before generating certificates.",
                error_code="school_not_configured"
            )
        missing = school.missing_fields()
        if missing:
            raise ValidationError(
                f"School information is incomplete. Missing: {', '.join(missing)}",
                error_code="school_incomplete",
                details={"missing": missing}
            )
        return school

    @classmethod
    def _check_student(cls, student: User):
        if not (student.first_name or "").strip() or not (student.last_name or "").strip():
            raise ValidationError("Student name information is incomplete.", error_code="student_incomplete")
        if not student.ssn or len(student.ssn) < 4:
            raise ValidationError(
                "Student SSN is required for certificate generation. "
                "Please ensure the student has a valid SSN (at least 4 digits).",
                error_code="student_incomplete"
            )

    @classmethod
    def build_certificate_data(cls, student: User, enrollment: Enrollment, school: SchoolConfig) -> CertificateData:
        first_name, middle_initial = split_student_name(student.first_name)
        completed = enrollment.completed_at or datetime.utcnow()
        return CertificateData(
            last_name=student.last_name.strip(),
            first_name=first_name,
            middle_initial=middle_initial,
            id_number=student.ssn[-4:],
            business_name=school.name,
            license_number=school.license_number,
            instructor_name=school.instructor_name,
            business_representative=school.business_representative or school.instructor_name,
            completion_date=completed.strftime("%m/%d/%Y"),
            online_training=settings.certificate_online_training,
            logo_path=school.logo,
            instructor_signature_path=school.instructor_signature,
            business_representative_signature_path=school.business_representative_signature or school.instructor_signature,
        )

    @classmethod
    async def generate(cls, db: AsyncSession, enrollment_id: int,
                       school: Optional[SchoolConfig]) -> Tuple[Certificate, bool]:
        """
        Issue the certificate for an enrollment

        Preconditions, in order: enrollment exists, exam passed, no existing
        certificate (returned unchanged if there is one), student and course
        exist, school configured and complete, student name and SSN present.

        Returns:
            (certificate, created)
        """
        enrollment = await db.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")

        state = enrollment.get_state()
        if not enrollment_state.exam_passed(state):
            raise ValidationError(
                "Student must pass exam before certificate can be issued",
                error_code="exam_not_passed"
            )

        existing = await cls.find_by_enrollment(db, enrollment.id)
        if existing is not None:
            return existing, False

        student = await db.get(User, enrollment.student_id)
        course = await db.get(Course, enrollment.course_id)
        if student is None or course is None:
            raise CourseServiceError("Student or course not found")

        school = cls._check_school(school)
        cls._check_student(student)

        data = cls.build_certificate_data(student, enrollment, school)
        certificate_number = make_certificate_number(enrollment.id)
        file_path, pdf_url = certificate_file_path(certificate_number)

        loop = asyncio.get_running_loop()
        pdf_bytes = await loop.run_in_executor(None, render_certificate, data, course.certificate_template)

        os.makedirs(settings.certificates_dir, exist_ok=True)
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(pdf_bytes)

        certificate = Certificate(
            student_id=student.id,
            course_id=course.id,
            enrollment_id=enrollment.id,
            certificate_number=certificate_number,
            student_name=f"{data.first_name} {data.last_name}",
            ssn_last_four=data.id_number,
            completion_date=data.completion_date,
            school_name=school.name,
            instructor_name=school.instructor_name,
            school_license_number=school.license_number,
            pdf_url=pdf_url,
            issued_at=datetime.utcnow(),
        )
        try:
            db.add(certificate)
            await db.flush()
            enrollment.set_state(enrollment_state.certify(state, certificate.id))
            await BadgeService.stage_certificate_badge(db, student.id, course.id, enrollment.id, course.name)
            await db.commit()
        except IntegrityError:
            # another request issued it first
            await db.rollback()
            _remove_file(file_path)
            existing = await cls.find_by_enrollment(db, enrollment_id)
            if existing is None:
                raise
            return existing, False
        except Exception:
            await db.rollback()
            _remove_file(file_path)
            raise

        await db.refresh(certificate)
        logger.info(
            f"Certificate issued: {certificate.certificate_number} enrollment={enrollment.id} "
            f"student={student.id} course={course.id}"
        )
        return certificate, True

    @classmethod
    async def get_certificate(cls, db: AsyncSession, certificate_id: int) -> Certificate:
        certificate = await db.get(Certificate, certificate_id)
        if certificate is None:
            raise NotFoundError("Certificate not found")
        return certificate

    @classmethod
    async def get_certificate_file(cls, db: AsyncSession, certificate_id: int) -> Tuple[Certificate, str]:
        """Certificate and its PDF path on disk"""
        certificate = await cls.get_certificate(db, certificate_id)
        file_path = os.path.join(settings.certificates_dir, os.path.basename(certificate.pdf_url))
        if not os.path.exists(file_path):
            logger.error(f"Certificate file missing: {file_path} (certificate={certificate.id})")
            raise NotFoundError("Certificate file not found", error_code="file_not_found")
        return certificate, file_path

    @classmethod
    async def list_certificates(cls, db: AsyncSession) -> List[Tuple[Certificate, Optional[Course]]]:
        result = await db.execute(
            select(Certificate, Course)
            .outerjoin(Course, Certificate.course_id == Course.id)
            .order_by(Certificate.issued_at.desc(), Certificate.id.desc())
        )
        return [(certificate, course) for certificate, course in result.all()]

    @classmethod
    async def list_student_certificates(cls, db: AsyncSession, student_id: int) -> List[Tuple[Certificate, Optional[Course]]]:
        result = await db.execute(
            select(Certificate, Course)
            .outerjoin(Course, Certificate.course_id == Course.id)
            .where(Certificate.student_id == student_id)
            .order_by(Certificate.issued_at.desc(), Certificate.id.desc())
        )
        return [(certificate, course) for certificate, course in result.all()]
