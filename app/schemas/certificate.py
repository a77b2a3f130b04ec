"""
Certificate schemas
"""

from datetime import datetime
from typing import Optional

from app.schemas.response import CamelModel
from app.schemas.course import CourseSummary


class CertificateResponse(CamelModel):
    id: int
    student_id: int
    course_id: int
    enrollment_id: int
    certificate_number: str
    student_name: str
    ssn_last_four: str
    completion_date: str
    school_name: str
    instructor_name: str
    school_license_number: str
    pdf_url: str
    issued_at: Optional[datetime] = None

    course: Optional[CourseSummary] = None


class CertificateGenerateResponse(CamelModel):
    message: str
    certificate: CertificateResponse
    download_url: str
