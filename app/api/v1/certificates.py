"""
Certificate API endpoints
Certificate issuance, download and lookup
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.course import Course
from app.schemas.certificate import CertificateResponse, CertificateGenerateResponse
from app.schemas.course import CourseSummary
from app.schemas.response import ErrorResponse
from app.services.certificate_service import CertificateService
from app.services.school_service import SchoolConfig, get_school_config

router = APIRouter(prefix="/certificates", tags=["Certificates"])

DOWNLOAD_PATH = "/api/v1/certificates/download/{certificate_id}"


def _certificate_response(certificate, course: Optional[Course] = None) -> CertificateResponse:
    response = CertificateResponse.model_validate(certificate)
    if course is not None:
        response.course = CourseSummary.model_validate(course)
    return response


@router.post(
    "/generate/{enrollment_id}",
    response_model=CertificateGenerateResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Generate the certificate for an enrollment"
)
async def generate_certificate(
    enrollment_id: int,
    db: AsyncSession = Depends(get_db),
    school: Optional[SchoolConfig] = Depends(get_school_config)
):
    """
    Issue the certificate once the exam is passed

    Idempotent: an enrollment that already has a certificate gets it back
    unchanged.
    """
    certificate, created = await CertificateService.generate(db, enrollment_id, school)
    course = await db.get(Course, certificate.course_id)
    return CertificateGenerateResponse(
        message="Certificate generated successfully" if created else "Certificate already exists",
        certificate=_certificate_response(certificate, course),
        download_url=DOWNLOAD_PATH.format(certificate_id=certificate.id),
    )


@router.get(
    "/download/{certificate_id}",
    response_class=FileResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Download a certificate PDF"
)
async def download_certificate(certificate_id: int, db: AsyncSession = Depends(get_db)):
    certificate, file_path = await CertificateService.get_certificate_file(db, certificate_id)
    return FileResponse(
        file_path,
        media_type="application/pdf",
        filename=f"certificate-{certificate.certificate_number}.pdf",
    )


@router.get("", response_model=List[CertificateResponse], summary="List all certificates")
async def list_certificates(db: AsyncSession = Depends(get_db)):
    rows = await CertificateService.list_certificates(db)
    return [_certificate_response(certificate, course) for certificate, course in rows]


@router.get("/student/{student_id}", response_model=List[CertificateResponse], summary="List a student's certificates")
async def list_student_certificates(student_id: int, db: AsyncSession = Depends(get_db)):
    rows = await CertificateService.list_student_certificates(db, student_id)
    return [_certificate_response(certificate, course) for certificate, course in rows]


@router.get(
    "/{certificate_id}",
    response_model=CertificateResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a certificate"
)
async def get_certificate(certificate_id: int, db: AsyncSession = Depends(get_db)):
    certificate = await CertificateService.get_certificate(db, certificate_id)
    course = await db.get(Course, certificate.course_id)
    return _certificate_response(certificate, course)
