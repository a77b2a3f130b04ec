"""
Course model - catalog entry with embedded curriculum and exam definition
"""

import json
from typing import Optional

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text
from datetime import datetime

from app.database import Base


class Course(Base):
    """Course"""
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    course_number = Column(String(50), unique=True, index=True, nullable=False)
    price = Column(Float, nullable=False, default=0.0)
    duration = Column(String(50), nullable=True)

    # JSON blobs
    curriculum_json = Column(Text, nullable=True, comment="sections / lessons")
    exam_json = Column(Text, nullable=True, comment="questions, passingScore, timeLimit")

    exam_paper_url = Column(String(500), nullable=True)
    certificate_template = Column(String(500), nullable=True, comment="optional PDF template path")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def exam(self) -> Optional[dict]:
        """Decoded exam definition, None when absent or unreadable"""
        if not self.exam_json:
            return None
        try:
            return json.loads(self.exam_json)
        except (TypeError, ValueError):
            return None

    @property
    def curriculum(self) -> Optional[dict]:
        if not self.curriculum_json:
            return None
        try:
            return json.loads(self.curriculum_json)
        except (TypeError, ValueError):
            return None

    def __repr__(self):
        return f"<Course(id={self.id}, course_number='{self.course_number}')>"
