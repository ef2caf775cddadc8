from collections import Counter
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from calendar_app.models.event import CalendarEvent
from calendar_app.models.upload import CalendarUpload
from calendar_app.services.oracle import calendar_today


def _authoritative_events(db: Session):
    return (
        db.query(CalendarEvent, CalendarUpload)
        .join(CalendarUpload, CalendarEvent.upload_id == CalendarUpload.id)
        .filter(
            CalendarUpload.is_active.is_(True),
            CalendarUpload.processing_status == "completed",
        )
    )


def event_status(event: CalendarEvent, today: date) -> str:
    if event.start_date <= today <= event.end_date:
        return "active"
    if event.start_date > today:
        return "upcoming"
    return "past"


def query_events(
    db: Session,
    academic_year: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    event_type: str | None = None,
    affects_requests_only: bool = False,
    today: date | None = None,
) -> dict:
    """Events of active calendars; the date filters select overlapping ranges."""
    today = today or calendar_today()
    query = _authoritative_events(db)
    if academic_year:
        query = query.filter(CalendarUpload.academic_year == academic_year)
    if start_date:
        query = query.filter(CalendarEvent.end_date >= start_date)
    if end_date:
        query = query.filter(CalendarEvent.start_date <= end_date)
    if event_type:
        query = query.filter(CalendarEvent.event_type == event_type)
    if affects_requests_only:
        query = query.filter(CalendarEvent.affects_request_creation.is_(True))
    rows = query.order_by(CalendarEvent.start_date, CalendarEvent.id).all()

    events = []
    for event, upload in rows:
        item = {column.name: getattr(event, column.name) for column in CalendarEvent.__table__.columns}
        item["academic_year"] = upload.academic_year
        item["source_file"] = upload.file_name
        item["status"] = event_status(event, today)
        events.append(item)

    return {
        "events": events,
        "summary": {
            "total_events": len(events),
            "events_by_type": dict(Counter(e["event_type"] for e in events)),
            "affecting_requests": sum(1 for e in events if e["affects_request_creation"]),
            "date_range": {
                "earliest": min((e["start_date"] for e in events), default=None),
                "latest": max((e["end_date"] for e in events), default=None),
            },
        },
        "filters_applied": {
            "academic_year": academic_year,
            "start_date": start_date,
            "end_date": end_date,
            "event_type": event_type,
            "affects_requests_only": affects_requests_only,
        },
    }


def upcoming_events(db: Session, today: date, days: int = 30, limit: int = 10) -> list[dict]:
    rows = (
        _authoritative_events(db)
        .filter(
            CalendarEvent.start_date >= today,
            CalendarEvent.start_date <= today + timedelta(days=days),
        )
        .order_by(CalendarEvent.start_date, CalendarEvent.id)
        .limit(limit)
        .all()
    )
    return [
        {
            "event_name": event.event_name,
            "event_type": event.event_type,
            "start_date": event.start_date,
            "end_date": event.end_date,
            "affects_request_creation": event.affects_request_creation,
            "days_until": (event.start_date - today).days,
        }
        for event, _ in rows
    ]


def active_calendar_summary(db: Session, academic_year: str | None = None) -> dict | None:
    query = db.query(CalendarUpload).filter(
        CalendarUpload.is_active.is_(True),
        CalendarUpload.processing_status == "completed",
    )
    if academic_year:
        query = query.filter(CalendarUpload.academic_year == academic_year)
    upload = query.order_by(CalendarUpload.uploaded_at.desc(), CalendarUpload.id.desc()).first()
    if upload is None:
        return None
    total, earliest, latest = (
        db.query(
            func.count(CalendarEvent.id),
            func.min(CalendarEvent.start_date),
            func.max(CalendarEvent.end_date),
        )
        .filter(CalendarEvent.upload_id == upload.id)
        .one()
    )
    return {
        "upload_id": upload.id,
        "file_name": upload.file_name,
        "academic_year": upload.academic_year,
        "uploaded_at": upload.uploaded_at,
        "processing_notes": upload.processing_notes,
        "total_events": total or 0,
        "earliest_event": earliest,
        "latest_event": latest,
    }
