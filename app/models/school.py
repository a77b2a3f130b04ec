"""
School model - the single tenant configuration row
"""

from sqlalchemy import Column, Integer, String

from app.database import Base


class School(Base):
    """School / training provider"""
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    license_number = Column(String(100), nullable=False)
    instructor_name = Column(String(255), nullable=False)
    instructor_signature = Column(String(500), nullable=True, comment="signature image path")
    business_representative = Column(String(255), nullable=True)
    business_representative_signature = Column(String(500), nullable=True)
    logo = Column(String(500), nullable=True)

    address_street = Column(String(255), nullable=True)
    address_city = Column(String(100), nullable=True)
    address_state = Column(String(50), nullable=True)
    address_zip_code = Column(String(20), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
