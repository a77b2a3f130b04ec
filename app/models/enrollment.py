"""
Enrollment model - binds a student to a course

The lifecycle lives in a single state column; the legacy status / examPassed /
certificateIssued values are derived from it.
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Enum, UniqueConstraint
from datetime import datetime

from app.database import Base
from app.core import enrollment_state
from app.core.enrollment_state import EnrollmentStateName


class AccessType(str, enum.Enum):
    """How the student obtained access"""
    FREE = "free"
    PURCHASE = "purchase"
    MEMBERSHIP = "membership"


class Enrollment(Base):
    """Enrollment"""
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    # lifecycle
    state = Column(Enum(EnrollmentStateName), nullable=False, default=EnrollmentStateName.PENDING)
    progress = Column(Float, default=0.0)
    exam_attempts = Column(Integer, default=0)
    exam_score = Column(Float, nullable=True)
    certificate_id = Column(Integer, nullable=True)

    # access / payment
    access_type = Column(Enum(AccessType), nullable=False, default=AccessType.PURCHASE)
    payment_status = Column(String(20), default="pending")
    payment_id = Column(String(255), nullable=True)
    membership_id = Column(Integer, ForeignKey("memberships.id"), nullable=True)
    discount_applied = Column(Float, nullable=True)

    enrolled_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    )

    def get_state(self) -> enrollment_state.EnrollmentState:
        return enrollment_state.load_state(
            self.state or EnrollmentStateName.PENDING,
            exam_attempts=self.exam_attempts or 0,
            exam_score=self.exam_score,
            certificate_id=self.certificate_id,
        )

    def set_state(self, state: enrollment_state.EnrollmentState):
        self.state = state.name
        if isinstance(state, enrollment_state.Certified):
            self.certificate_id = state.certificate_id

    @property
    def status(self) -> str:
        return enrollment_state.status_of(self.get_state())

    @property
    def exam_passed(self) -> bool:
        return enrollment_state.exam_passed(self.get_state())

    @property
    def certificate_issued(self) -> bool:
        return enrollment_state.certificate_issued(self.get_state())

    def __repr__(self):
        return f"<Enrollment(id={self.id}, student_id={self.student_id}, course_id={self.course_id}, state={self.state})>"
