"""
Badge model - awards earned by students
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime

from app.database import Base


class Badge(Base):
    """Badge"""
    __tablename__ = "badges"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    enrollment_id = Column(Integer, ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False)
    badge_type = Column(String(50), nullable=False, default="certificate")
    badge_name = Column(String(255), nullable=False)
    badge_description = Column(Text, nullable=True)
    earned_at = Column(DateTime, default=datetime.utcnow)

    # one badge of each type per enrollment
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", "enrollment_id", "badge_type", name="uq_badge_award"),
    )
