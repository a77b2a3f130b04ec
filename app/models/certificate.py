"""
Certificate model - one issued credential per enrollment
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from datetime import datetime

from app.database import Base


class Certificate(Base):
    """Certificate (immutable once created)"""
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
    enrollment_id = Column(Integer, ForeignKey("enrollments.id"), nullable=False, unique=True)
    certificate_number = Column(String(100), nullable=False, unique=True)

    # snapshot of what was printed
    student_name = Column(String(255), nullable=False)
    ssn_last_four = Column(String(4), nullable=False)
    completion_date = Column(String(10), nullable=False, comment="MM/DD/YYYY")
    school_name = Column(String(255), nullable=False)
    instructor_name = Column(String(255), nullable=False)
    school_license_number = Column(String(100), nullable=False)

    pdf_url = Column(String(500), nullable=False)
    issued_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Certificate(id={self.id}, number='{self.certificate_number}')>"
