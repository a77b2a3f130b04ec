"""
Course Enrollment Service - configuration

Application settings loaded from environment variables (and .env) with defaults
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List
import os


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Course Enrollment Service", alias="APP_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=5000, alias="PORT")

    # Database (single embedded SQLite file)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/courses.db",
        alias="DATABASE_URL"
    )

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str = Field(default="logs/course-service.log", alias="LOG_FILE")

    # Directories
    data_dir: str = Field(default="./data", alias="DATA_DIR")
    logs_dir: str = Field(default="./logs", alias="LOGS_DIR")
    upload_dir: str = Field(default="./uploads", alias="UPLOAD_DIR")
    # Base directory for relative logo / signature / template paths
    assets_dir: str = Field(default=".", alias="ASSETS_DIR")

    # Certificate layout
    certificate_number_prefix: str = Field(default="SR", alias="CERTIFICATE_NUMBER_PREFIX")
    certificate_agency_name: str = Field(
        default="Texas Department of Public Safety",
        alias="CERTIFICATE_AGENCY_NAME"
    )
    certificate_agency_division: str = Field(
        default="Regulatory Services Division",
        alias="CERTIFICATE_AGENCY_DIVISION"
    )
    certificate_agency_website: str = Field(default="www.dps.texas.gov", alias="CERTIFICATE_AGENCY_WEBSITE")
    certificate_program_name: str = Field(default="PRIVATE SECURITY PROGRAM", alias="CERTIFICATE_PROGRAM_NAME")
    certificate_title: str = Field(default="SECURITY OFFICER TRAINING COURSE", alias="CERTIFICATE_TITLE")
    certificate_subtitle: str = Field(default="LEVEL II CERTIFICATE OF COMPLETION", alias="CERTIFICATE_SUBTITLE")
    certificate_statement: str = Field(
        default=(
            "This certifies that the below-named individual has successfully completed the "
            "Level Two Training Course approved by the Texas Department of Public Safety, "
            "Regulatory Services Division."
        ),
        alias="CERTIFICATE_STATEMENT"
    )
    certificate_online_training: bool = Field(default=False, alias="CERTIFICATE_ONLINE_TRAINING")

    # Exams
    default_passing_score: float = Field(default=70.0, alias="DEFAULT_PASSING_SCORE")
    auto_issue_certificate: bool = Field(default=False, alias="AUTO_ISSUE_CERTIFICATE")
    practice_exam_course_number: str = Field(default="exam2", alias="PRACTICE_EXAM_COURSE_NUMBER")

    # School bootstrap (only used when no school row exists yet)
    school_name: str = Field(default="", alias="SCHOOL_NAME")
    school_license_number: str = Field(default="", alias="SCHOOL_LICENSE_NUMBER")
    instructor_name: str = Field(default="", alias="INSTRUCTOR_NAME")
    instructor_signature_path: str = Field(default="", alias="INSTRUCTOR_SIGNATURE_PATH")
    business_representative: str = Field(default="", alias="BUSINESS_REPRESENTATIVE")
    business_representative_signature_path: str = Field(
        default="",
        alias="BUSINESS_REPRESENTATIVE_SIGNATURE_PATH"
    )
    school_logo_path: str = Field(default="", alias="SCHOOL_LOGO_PATH")
    school_street: str = Field(default="", alias="SCHOOL_STREET")
    school_city: str = Field(default="", alias="SCHOOL_CITY")
    school_state: str = Field(default="TX", alias="SCHOOL_STATE")
    school_zip: str = Field(default="", alias="SCHOOL_ZIP")
    school_phone: str = Field(default="", alias="SCHOOL_PHONE")
    school_email: str = Field(default="", alias="SCHOOL_EMAIL")
    school_website: str = Field(default="", alias="SCHOOL_WEBSITE")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # make sure the directories exist
        os.makedirs(self.data_dir, exist_ok=True)
        os.makedirs(self.logs_dir, exist_ok=True)
        os.makedirs(self.upload_dir, exist_ok=True)
        log_dir = os.path.dirname(self.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

    @property
    def certificates_dir(self) -> str:
        return os.path.join(self.upload_dir, "certificates")


# Global settings instance
settings = Settings()


def validate_settings():
    """Validate settings that must hold in production"""
    errors = []

    if settings.environment == "production":
        if settings.debug:
            errors.append("DEBUG must not be enabled in production")
        if settings.database_url.startswith("sqlite") and ":memory:" in settings.database_url:
            errors.append("an in-memory database cannot be used in production")

    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return True


if settings.environment == "production":
    validate_settings()
