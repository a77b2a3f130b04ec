"""
Certificate PDF rendering

Draws the fixed 11x8.5in completion certificate with reportlab. When the course
names a template PDF, only the fields are drawn and merged onto the template's
first page with pypdf.

Rendering is synchronous CPU work; callers run it in an executor.
"""

import io
import os
from dataclasses import dataclass
from typing import Optional

from loguru import logger
from pypdf import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from app.config import settings

PAGE_SIZE = (792, 612)  # 11 x 8.5 in at 72 dpi

MARGIN = 72
LINE_HEIGHT = 20
LABEL_COLUMN_WIDTH = 200
STUDENT_TABLE_HEIGHT = 100
TRAINING_TABLE_HEIGHT = 180
SIGNATURE_SPACING = 200
SIGNATURE_LINE_WIDTH = 180
SIGNATURE_IMAGE_SIZE = (150, 30)
LOGO_SIZE = 60

BOLD = "Times-Bold"
REGULAR = "Times-Roman"

STUDENT_LABELS = ["Last Name", "First Name", "Middle Initial", "Identification Number"]
TRAINING_LABELS = [
    "Business Name",
    "Business License Number",
    "Instructor Name",
    "Name of Business Representative",
    "Course Completion Date",
    "Was this training conducted online?",
]


@dataclass(frozen=True)
class CertificateData:
    """Everything printed on a certificate"""
    last_name: str
    first_name: str
    middle_initial: str
    id_number: str
    business_name: str
    license_number: str
    instructor_name: str
    business_representative: str
    completion_date: str
    online_training: bool = False
    logo_path: Optional[str] = None
    instructor_signature_path: Optional[str] = None
    business_representative_signature_path: Optional[str] = None


def resolve_asset_path(path: Optional[str]) -> Optional[str]:
    """Absolute path for a configured asset; relative paths hang off ASSETS_DIR"""
    if not path:
        return None
    if os.path.isabs(path):
        return path
    return os.path.join(settings.assets_dir, path)


def _draw_image(c: canvas.Canvas, path: Optional[str], x: float, y: float, width: float, height: float) -> bool:
    """Draw a PNG/JPEG image; a missing or unreadable file is skipped"""
    resolved = resolve_asset_path(path)
    if not resolved or not os.path.exists(resolved):
        return False
    try:
        c.drawImage(ImageReader(resolved), x, y, width=width, height=height, mask="auto")
        return True
    except Exception as e:
        logger.warning(f"Could not embed image {resolved}: {e}")
        return False


def _draw_design(c: canvas.Canvas, data: CertificateData, width: float, height: float):
    """Agency header, title block and certification statement"""
    _draw_image(c, data.logo_path, MARGIN, height - 100, LOGO_SIZE, LOGO_SIZE)

    c.setFont(BOLD, 14)
    c.drawString(150, height - 80, settings.certificate_agency_name)
    c.setFont(REGULAR, 12)
    c.drawString(150, height - 100, settings.certificate_agency_division)
    c.setFont(REGULAR, 10)
    c.drawString(150, height - 115, settings.certificate_agency_website)

    c.setFont(BOLD, 12)
    c.drawRightString(width - MARGIN, height - 80, settings.certificate_program_name)

    c.setFont(BOLD, 16)
    c.drawCentredString(width / 2, height - 150, settings.certificate_title)
    c.setFont(BOLD, 14)
    c.drawCentredString(width / 2, height - 170, settings.certificate_subtitle)

    c.setFont(REGULAR, 10)
    y = height - 210
    for line in simpleSplit(settings.certificate_statement, REGULAR, 10, width - 2 * MARGIN):
        c.drawString(MARGIN, y, line)
        y -= 12


def _draw_table(c: canvas.Canvas, top: float, table_width: float, table_height: float, rows: int):
    """Bordered two-column table whose top edge is at `top`"""
    c.setLineWidth(1)
    c.rect(MARGIN, top - table_height, table_width, table_height, stroke=1, fill=0)
    c.line(MARGIN + LABEL_COLUMN_WIDTH, top, MARGIN + LABEL_COLUMN_WIDTH, top - table_height)
    row_height = table_height / rows
    for i in range(1, rows):
        c.line(MARGIN, top - i * row_height, MARGIN + table_width, top - i * row_height)
    return row_height


def _draw_checkbox(c: canvas.Canvas, x: float, y: float, checked: bool):
    c.rect(x, y, 12, 12, stroke=1, fill=0)
    if checked:
        c.line(x + 2, y + 6, x + 5, y + 2)
        c.line(x + 5, y + 2, x + 10, y + 10)


def _draw_fields(c: canvas.Canvas, data: CertificateData, width: float, height: float):
    """Student table, training table and signature blocks"""
    table_width = width - 2 * MARGIN
    value_x = MARGIN + LABEL_COLUMN_WIDTH + 5

    # student information
    current_y = height - 250
    c.setFont(BOLD, 12)
    c.drawString(MARGIN, current_y, "STUDENT INFORMATION")
    current_y -= LINE_HEIGHT + 5

    row_height = _draw_table(c, current_y, table_width, STUDENT_TABLE_HEIGHT, len(STUDENT_LABELS))
    student_values = [data.last_name, data.first_name, data.middle_initial, data.id_number]
    for i, (label, value) in enumerate(zip(STUDENT_LABELS, student_values)):
        row_y = current_y - i * row_height - row_height / 2 - 3
        c.setFont(BOLD, 10)
        c.drawString(MARGIN + 5, row_y, label)
        c.setFont(REGULAR, 10)
        c.drawString(value_x, row_y, value or "")

    # training information
    current_y = current_y - STUDENT_TABLE_HEIGHT - 30
    c.setFont(BOLD, 12)
    c.drawString(MARGIN, current_y, "IN-PERSON CLASSROOM OR ONLINE TRAINING")
    current_y -= LINE_HEIGHT + 5

    row_height = _draw_table(c, current_y, table_width, TRAINING_TABLE_HEIGHT, len(TRAINING_LABELS))
    training_values = [
        data.business_name,
        data.license_number,
        data.instructor_name,
        data.business_representative or data.instructor_name,
        data.completion_date,
    ]
    for i, label in enumerate(TRAINING_LABELS):
        row_y = current_y - i * row_height - row_height / 2 - 3
        c.setFont(BOLD, 10)
        c.drawString(MARGIN + 5, row_y, label)
        c.setFont(REGULAR, 10)
        if i < len(training_values):
            c.drawString(value_x, row_y, training_values[i] or "")
            continue
        # online yes / no
        _draw_checkbox(c, value_x, row_y - 3, data.online_training)
        c.drawString(value_x + 15, row_y, "Yes")
        _draw_checkbox(c, value_x + 55, row_y - 3, not data.online_training)
        c.drawString(value_x + 70, row_y, "No")

    # signatures
    signature_y = current_y - TRAINING_TABLE_HEIGHT - 20
    blocks = [
        (MARGIN, "Instructor Signature", data.instructor_signature_path),
        (
            MARGIN + SIGNATURE_SPACING,
            "Business Representative Signature",
            data.business_representative_signature_path or data.instructor_signature_path,
        ),
    ]
    for x, label, image_path in blocks:
        c.setFont(BOLD, 10)
        c.drawString(x, signature_y, label)
        c.line(x, signature_y - 20, x + SIGNATURE_LINE_WIDTH, signature_y - 20)
        _draw_image(c, image_path, x, signature_y - 45, *SIGNATURE_IMAGE_SIZE)


def _render_page(data: CertificateData, page_size, with_design: bool) -> bytes:
    buffer = io.BytesIO()
    width, height = page_size
    c = canvas.Canvas(buffer, pagesize=page_size)
    c.setTitle(f"Certificate of Completion - {data.first_name} {data.last_name}")
    if with_design:
        _draw_design(c, data, width, height)
    _draw_fields(c, data, width, height)
    c.showPage()
    c.save()
    return buffer.getvalue()


def render_certificate(data: CertificateData, template_path: Optional[str] = None) -> bytes:
    """
    Render a certificate to PDF bytes

    Args:
        data: printed values
        template_path: optional PDF whose first page receives the fields

    Returns:
        bytes: the PDF document
    """
    template = resolve_asset_path(template_path)
    if not template or not os.path.exists(template):
        if template_path:
            logger.warning(f"Certificate template not found, drawing from scratch: {template_path}")
        return _render_page(data, PAGE_SIZE, with_design=True)

    reader = PdfReader(template)
    first_page = reader.pages[0]
    page_size = (float(first_page.mediabox.width), float(first_page.mediabox.height))
    overlay = PdfReader(io.BytesIO(_render_page(data, page_size, with_design=False)))

    # merge on the writer's copy; only the first page receives the fields
    writer = PdfWriter(clone_from=reader)
    writer.pages[0].merge_page(overlay.pages[0])

    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()
