"""
Certificate service tests
Issuance preconditions, idempotency, PDF rendering and template overlay
"""

import io
import os
from dataclasses import replace
from datetime import datetime

import pytest
from pypdf import PdfReader
from reportlab.pdfgen import canvas
from sqlalchemy import select

from app.config import settings
from app.core.enrollment_state import EnrollmentStateName
from app.core.exceptions import NotFoundError, ValidationError
from app.models.badge import Badge
from app.models.certificate import Certificate
from app.services.certificate_renderer import CertificateData, render_certificate
from app.services.certificate_service import CertificateService, split_student_name


def _pdf_text(pdf_bytes: bytes) -> str:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return reader.pages[0].extract_text()


def _sample_data(**overrides) -> CertificateData:
    data = CertificateData(
        last_name="Smith",
        first_name="John",
        middle_initial="M.",
        id_number="6789",
        business_name="Lone Star Security Academy",
        license_number="C-12345",
        instructor_name="Jane Instructor",
        business_representative="Bob Owner",
        completion_date="03/05/2024",
    )
    return replace(data, **overrides)


class TestSplitStudentName:
    """First name / middle initial split"""

    def test_with_middle_name(self):
        assert split_student_name("John Michael") == ("John", "M.")

    def test_lowercase_middle_name(self):
        assert split_student_name("mary ann") == ("mary", "A.")

    def test_single_name(self):
        assert split_student_name("John") == ("John", "")

    def test_empty(self):
        assert split_student_name("") == ("", "")
        assert split_student_name(None) == ("", "")


class TestRenderCertificate:
    """PDF rendering"""

    def test_renders_from_scratch(self):
        pdf_bytes = render_certificate(_sample_data())

        assert pdf_bytes.startswith(b"%PDF")
        reader = PdfReader(io.BytesIO(pdf_bytes))
        assert len(reader.pages) == 1
        assert float(reader.pages[0].mediabox.width) == 792
        text = reader.pages[0].extract_text()
        assert "Smith" in text
        assert "6789" in text
        assert "03/05/2024" in text

    def test_missing_template_falls_back(self):
        pdf_bytes = render_certificate(_sample_data(), template_path="templates/does-not-exist.pdf")
        assert "Smith" in _pdf_text(pdf_bytes)

    def test_missing_images_are_skipped(self):
        data = _sample_data(logo_path="missing-logo.png", instructor_signature_path="missing-sig.png")
        assert render_certificate(data).startswith(b"%PDF")

    def test_template_overlay(self, tmp_path, recwarn):
        template_path = tmp_path / "template.pdf"
        c = canvas.Canvas(str(template_path), pagesize=(612, 792))
        c.drawString(72, 720, "OFFICIAL TEMPLATE")
        c.showPage()
        c.drawString(72, 720, "SECOND PAGE")
        c.showPage()
        c.save()

        pdf_bytes = render_certificate(_sample_data(), template_path=str(template_path))

        reader = PdfReader(io.BytesIO(pdf_bytes))
        assert len(reader.pages) == 2
        assert float(reader.pages[0].mediabox.width) == 612
        first_page = reader.pages[0].extract_text()
        assert "OFFICIAL TEMPLATE" in first_page
        assert "Smith" in first_page
        assert "Smith" not in reader.pages[1].extract_text()
        assert "SECOND PAGE" in reader.pages[1].extract_text()
        # the merge happens on writer-owned pages
        assert not [
            w for w in recwarn.list
            if issubclass(w.category, DeprecationWarning)
            and ("pypdf" in w.filename or "certificate_renderer" in w.filename)
        ]


class TestGenerateCertificate:
    """CertificateService.generate"""

    @pytest.mark.asyncio
    async def test_issue_certificate(self, test_db_session, create_student, create_course, create_enrollment,
                                     school_config):
        student = await create_student(first_name="John Michael", ssn="123456789")
        course = await create_course(name="Level II Security")
        enrollment = await create_enrollment(
            student, course, state=EnrollmentStateName.PASSED, exam_score=90,
            completed_at=datetime(2024, 3, 5, 15, 30)
        )

        certificate, created = await CertificateService.generate(test_db_session, enrollment.id, school_config)

        assert created is True
        assert certificate.certificate_number.startswith(f"{settings.certificate_number_prefix}-")
        assert certificate.certificate_number.endswith(f"-{enrollment.id}")
        assert certificate.student_name == "John Smith"
        assert certificate.ssn_last_four == "6789"
        assert certificate.completion_date == "03/05/2024"
        assert certificate.school_name == school_config.name
        assert certificate.pdf_url == f"/uploads/certificates/certificate-{certificate.certificate_number}.pdf"

        _, file_path = await CertificateService.get_certificate_file(test_db_session, certificate.id)
        with open(file_path, "rb") as f:
            text = _pdf_text(f.read())
        assert "Michael" not in text
        assert "M." in text

        await test_db_session.refresh(enrollment)
        assert enrollment.state == EnrollmentStateName.CERTIFIED
        assert enrollment.certificate_id == certificate.id
        assert enrollment.certificate_issued is True

        badges = (await test_db_session.execute(select(Badge))).scalars().all()
        assert len(badges) == 1
        assert badges[0].badge_name == "Level II Security Certificate"
        assert badges[0].enrollment_id == enrollment.id

    @pytest.mark.asyncio
    async def test_second_request_returns_existing(self, test_db_session, create_student, create_course,
                                                   create_enrollment, school_config, upload_dir):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course, state=EnrollmentStateName.PASSED, exam_score=80)

        first, created_first = await CertificateService.generate(test_db_session, enrollment.id, school_config)
        second, created_second = await CertificateService.generate(test_db_session, enrollment.id, school_config)

        assert created_first is True
        assert created_second is False
        assert second.id == first.id
        assert second.certificate_number == first.certificate_number
        assert len(os.listdir(settings.certificates_dir)) == 1

    @pytest.mark.asyncio
    async def test_exam_not_passed(self, test_db_session, create_student, create_course, create_enrollment,
                                   school_config):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course, state=EnrollmentStateName.FAILED, exam_attempts=1)

        with pytest.raises(ValidationError) as exc_info:
            await CertificateService.generate(test_db_session, enrollment.id, school_config)
        assert exc_info.value.error_code == "exam_not_passed"

    @pytest.mark.asyncio
    async def test_unknown_enrollment(self, test_db_session, school_config):
        with pytest.raises(NotFoundError, match="Enrollment not found"):
            await CertificateService.generate(test_db_session, 404, school_config)

    @pytest.mark.asyncio
    async def test_school_not_configured(self, test_db_session, create_student, create_course,
                                         create_enrollment):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course, state=EnrollmentStateName.PASSED, exam_score=80)

        with pytest.raises(ValidationError) as exc_info:
            await CertificateService.generate(test_db_session, enrollment.id, None)
        assert exc_info.value.error_code == "school_not_configured"

    @pytest.mark.asyncio
    async def test_school_incomplete(self, test_db_session, create_student, create_course, create_enrollment,
                                     school_config):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course, state=EnrollmentStateName.PASSED, exam_score=80)

        with pytest.raises(ValidationError) as exc_info:
            await CertificateService.generate(
                test_db_session, enrollment.id, replace(school_config, license_number="")
            )
        assert exc_info.value.error_code == "school_incomplete"
        assert exc_info.value.details == {"missing": ["license_number"]}

    @pytest.mark.asyncio
    async def test_student_without_ssn(self, test_db_session, create_student, create_course, create_enrollment,
                                       school_config):
        student = await create_student(ssn="12")
        course = await create_course()
        enrollment = await create_enrollment(student, course, state=EnrollmentStateName.PASSED, exam_score=80)

        with pytest.raises(ValidationError) as exc_info:
            await CertificateService.generate(test_db_session, enrollment.id, school_config)
        assert exc_info.value.error_code == "student_incomplete"
        assert "SSN" in exc_info.value.message
        assert await CertificateService.find_by_enrollment(test_db_session, enrollment.id) is None

    @pytest.mark.asyncio
    async def test_concurrent_issue_returns_winner(self, test_db_session, create_student, create_course,
                                                   create_enrollment, school_config, monkeypatch):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course, state=EnrollmentStateName.PASSED, exam_score=80)

        winner = Certificate(
            student_id=student.id,
            course_id=course.id,
            enrollment_id=enrollment.id,
            certificate_number="SR-1-winner",
            student_name="John Smith",
            ssn_last_four="6789",
            completion_date="01/01/2024",
            school_name=school_config.name,
            instructor_name=school_config.instructor_name,
            school_license_number=school_config.license_number,
            pdf_url="/uploads/certificates/certificate-SR-1-winner.pdf",
        )
        test_db_session.add(winner)
        await test_db_session.commit()

        # the pre-check misses the row committed by the other request
        real_find = CertificateService.find_by_enrollment
        calls = {"n": 0}

        async def racing_find(db, enrollment_id):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_find(db, enrollment_id)

        monkeypatch.setattr(CertificateService, "find_by_enrollment", racing_find)

        certificate, created = await CertificateService.generate(test_db_session, enrollment.id, school_config)

        assert created is False
        assert certificate.certificate_number == "SR-1-winner"
        assert os.listdir(settings.certificates_dir) == []

    @pytest.mark.asyncio
    async def test_missing_file(self, test_db_session, create_student, create_course, create_enrollment,
                                school_config):
        student = await create_student()
        course = await create_course()
        enrollment = await create_enrollment(student, course, state=EnrollmentStateName.PASSED, exam_score=80)
        certificate, _ = await CertificateService.generate(test_db_session, enrollment.id, school_config)

        _, file_path = await CertificateService.get_certificate_file(test_db_session, certificate.id)
        os.remove(file_path)

        with pytest.raises(NotFoundError) as exc_info:
            await CertificateService.get_certificate_file(test_db_session, certificate.id)
        assert exc_info.value.error_code == "file_not_found"
