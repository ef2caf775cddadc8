import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from calendar_app.core.errors import UploadNotFoundError
from calendar_app.models.admin import AdminUser
from calendar_app.models.event import CalendarEvent
from calendar_app.models.parsing_log import ParsingLog
from calendar_app.models.upload import CalendarUpload
from calendar_app.services.file_store import delete_file

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def normalize_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    final_limit = DEFAULT_PAGE_SIZE if limit is None or limit < 1 else min(limit, MAX_PAGE_SIZE)
    final_offset = 0 if offset is None or offset < 0 else offset
    return final_limit, final_offset


def get_upload(db: Session, upload_id: int) -> CalendarUpload:
    upload = db.get(CalendarUpload, upload_id)
    if upload is None:
        raise UploadNotFoundError("Calendar upload not found", details={"upload_id": upload_id})
    return upload


def list_uploads(db: Session, limit: int | None = None, offset: int | None = None) -> dict:
    limit, offset = normalize_page(limit, offset)
    uploads = (
        db.query(CalendarUpload)
        .order_by(CalendarUpload.uploaded_at.desc(), CalendarUpload.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    ids = [u.id for u in uploads]
    event_counts = dict(
        db.query(CalendarEvent.upload_id, func.count(CalendarEvent.id))
        .filter(CalendarEvent.upload_id.in_(ids))
        .group_by(CalendarEvent.upload_id)
        .all()
    )
    log_counts = dict(
        db.query(ParsingLog.upload_id, func.count(ParsingLog.id))
        .filter(ParsingLog.upload_id.in_(ids))
        .group_by(ParsingLog.upload_id)
        .all()
    )
    admin_ids = {u.uploaded_by for u in uploads if u.uploaded_by is not None}
    admins = {
        a.id: a for a in db.query(AdminUser).filter(AdminUser.id.in_(admin_ids)).all()
    } if admin_ids else {}

    items = []
    for upload in uploads:
        admin = admins.get(upload.uploaded_by)
        items.append(
            {
                "id": upload.id,
                "file_name": upload.file_name,
                "file_type": upload.file_type,
                "file_size": upload.file_size,
                "academic_year": upload.academic_year,
                "uploaded_by": upload.uploaded_by,
                "uploaded_by_name": (admin.full_name or admin.username) if admin else "Unknown",
                "uploaded_at": upload.uploaded_at,
                "processing_status": upload.processing_status,
                "processing_notes": upload.processing_notes,
                "is_active": bool(upload.is_active),
                "events_count": event_counts.get(upload.id, 0),
                "log_entries": log_counts.get(upload.id, 0),
            }
        )

    total = db.query(func.count(CalendarUpload.id)).scalar() or 0
    return {
        "uploads": items,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "returned": len(items),
            "has_more": total > offset + len(items),
        },
    }


def delete_upload(db: Session, upload_id: int) -> dict:
    """Delete the upload with its events and logs, then remove the stored file."""
    upload = get_upload(db, upload_id)
    deleted = {
        "upload_id": upload.id,
        "file_name": upload.file_name,
        "academic_year": upload.academic_year,
    }
    file_path = upload.file_path
    db.delete(upload)
    db.commit()
    deleted["file_removed"] = delete_file(file_path)
    logger.info("Deleted calendar upload %s (%s)", upload_id, deleted["file_name"])
    return deleted


def get_parsing_logs(db: Session, upload_id: int) -> dict:
    upload = get_upload(db, upload_id)
    logs = (
        db.query(ParsingLog)
        .filter(ParsingLog.upload_id == upload_id)
        .order_by(ParsingLog.created_at, ParsingLog.id)
        .all()
    )
    return {
        "upload_info": {
            "file_name": upload.file_name,
            "academic_year": upload.academic_year,
            "processing_status": upload.processing_status,
        },
        "logs": logs,
        "summary": {
            "total_stages": len(logs),
            "successful_stages": sum(1 for log in logs if log.status == "completed"),
            "failed_stages": sum(1 for log in logs if log.status == "failed"),
        },
    }
