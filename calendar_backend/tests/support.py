"""Shared fixtures for the database-backed suites and document builders."""
import io
import unittest
import zipfile
from datetime import date
from xml.sax.saxutils import escape

from calendar_app.core.database import SessionLocal, engine
from calendar_app.core.security import hash_password
from calendar_app.models import AcademicSetting, AdminUser, CalendarEvent, CalendarUpload
from calendar_app.models.base import Base


def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.db = SessionLocal()

    def tearDown(self) -> None:
        self.db.close()


def make_upload(db, academic_year="2025-2026", *, is_active=True, status="completed", name="calendar.txt"):
    upload = CalendarUpload(
        file_name=name,
        file_path=f"/tmp/{name}",
        file_type="text/plain",
        file_size=10,
        academic_year=academic_year,
        processing_status=status,
        is_active=is_active,
    )
    db.add(upload)
    db.commit()
    return upload


def make_event(
    db,
    upload,
    name,
    start: date,
    end: date | None = None,
    *,
    event_type="holiday",
    affects=True,
):
    event = CalendarEvent(
        upload_id=upload.id,
        event_type=event_type,
        event_name=name,
        start_date=start,
        end_date=end or start,
        affects_request_creation=affects,
    )
    db.add(event)
    db.commit()
    return event


def make_admin(db, username="registrar", password="s3cret", *, super_admin=True):
    admin = AdminUser(
        username=username,
        hashed_password=hash_password(password),
        full_name="Registrar Office",
        is_super_admin=super_admin,
    )
    db.add(admin)
    db.commit()
    return admin


def enable_calendar(db, buffer_hours=0):
    db.merge(AcademicSetting(setting_key="academic_calendar_enabled", setting_value="true"))
    db.merge(AcademicSetting(setting_key="holiday_buffer_hours", setting_value=str(buffer_hours)))
    db.commit()


_W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"

_CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    "</Types>"
)

_PACKAGE_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="word/document.xml"/>'
    "</Relationships>"
)

_DOCUMENT_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"/>'
)


def _paragraph(text: str) -> str:
    return f'<w:p><w:r><w:t xml:space="preserve">{escape(text)}</w:t></w:r></w:p>'


def build_docx(rows, heading: str | None = None) -> bytes:
    """Smallest .docx Word opens: an optional heading paragraph and a table."""
    body = _paragraph(heading) if heading else ""
    body += "<w:tbl>"
    for row in rows:
        body += "<w:tr>" + "".join(f"<w:tc>{_paragraph(cell)}</w:tc>" for cell in row) + "</w:tr>"
    body += "</w:tbl>"
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{_W_NS}"><w:body>{body}</w:body></w:document>'
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", _CONTENT_TYPES)
        archive.writestr("_rels/.rels", _PACKAGE_RELS)
        archive.writestr("word/document.xml", document)
        archive.writestr("word/_rels/document.xml.rels", _DOCUMENT_RELS)
    return buffer.getvalue()
