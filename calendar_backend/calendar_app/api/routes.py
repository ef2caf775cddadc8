import logging
import re
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from calendar_app.core.config import settings as app_settings
from calendar_app.core.database import get_db
from calendar_app.core.errors import CalendarValidationError
from calendar_app.models.admin import AdminUser
from calendar_app.schemas.auth import AdminOut, LoginRequest, TokenResponse
from calendar_app.schemas.availability import (
    DateCheckOut,
    DateCheckResponse,
    NextAvailableOut,
    RangeCheckResponse,
)
from calendar_app.schemas.calendar import (
    EventListItem,
    EventPreview,
    FileInfo,
    ParsingLogOut,
    UploadHistoryItem,
    UploadResultResponse,
)
from calendar_app.schemas.settings import SettingsUpdateRequest, SettingsUpdateResponse
from calendar_app.services.auth import get_current_admin, login_admin, require_super_admin
from calendar_app.services.calendar_functions import lookup_holiday
from calendar_app.services.calendar_settings import get_settings, update_settings
from calendar_app.services.document_parser import SUPPORTED_MIME_TYPES
from calendar_app.services.events import active_calendar_summary, query_events, upcoming_events
from calendar_app.services.file_store import save_calendar_file
from calendar_app.services.ingestion import ingest_calendar
from calendar_app.services.oracle import AvailabilityOracle, calendar_today
from calendar_app.services.system import check_routines, validate_system
from calendar_app.services.uploads import delete_upload, get_parsing_logs, list_uploads

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_PREVIEW_SIZE = 10

router = APIRouter(prefix="/api")


# ── Auth ──────────────────────────────────────────────────────────────────────
@router.post("/auth/login", response_model=TokenResponse)
def login_endpoint(payload: LoginRequest, db: Session = Depends(get_db)):
    return login_admin(db, payload)


@router.get("/auth/me", response_model=AdminOut)
def me_endpoint(admin: AdminUser = Depends(get_current_admin)):
    return admin


# ── Calendar uploads ──────────────────────────────────────────────────────────
@router.post("/academic-calendar/upload", response_model=UploadResultResponse)
def upload_calendar_endpoint(
    academic_year: str = Form(...),
    calendar_document: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_super_admin),
):
    mime_type = calendar_document.content_type or ""
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only Word documents, text files and PDFs are allowed.",
        )
    limit = app_settings.max_upload_bytes
    data = calendar_document.file.read(limit + 1)
    if len(data) > limit:
        raise HTTPException(status_code=413, detail=f"File exceeds {limit // (1024 * 1024)} MB limit.")

    stored = save_calendar_file(calendar_document.filename or "calendar", mime_type, data)
    result = ingest_calendar(db, stored, academic_year, admin.id)
    return UploadResultResponse(
        upload_id=result.upload.id,
        academic_year=result.upload.academic_year,
        events_processed=result.saved_count,
        failed_events=result.failed_events,
        events_preview=[
            EventPreview(
                name=event.event_name,
                type=event.event_type,
                start_date=event.start_date,
                end_date=event.end_date,
                affects_requests=event.affects_request_creation,
            )
            for event in result.events[:_PREVIEW_SIZE]
        ],
        summary=result.summary.as_dict(),
        file_info=FileInfo(
            original_name=result.file.original_name,
            size=result.file.size,
            type=result.file.mime_type,
        ),
    )


@router.get("/academic-calendar/uploads")
def list_uploads_endpoint(
    limit: int = Query(20),
    offset: int = Query(0),
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_super_admin),
):
    page = list_uploads(db, limit, offset)
    page["uploads"] = [UploadHistoryItem.model_validate(item) for item in page["uploads"]]
    return page


@router.delete("/academic-calendar/upload/{upload_id}")
def delete_upload_endpoint(
    upload_id: int,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_super_admin),
):
    deleted = delete_upload(db, upload_id)
    logger.info("Upload %s deleted by admin %s", upload_id, admin.id)
    return {"message": "Academic calendar deleted successfully", "deleted_upload": deleted}


@router.get("/academic-calendar/parsing-logs/{upload_id}")
def parsing_logs_endpoint(
    upload_id: int,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_super_admin),
):
    report = get_parsing_logs(db, upload_id)
    report["logs"] = [ParsingLogOut.model_validate(log) for log in report["logs"]]
    return report


# ── Calendar state ────────────────────────────────────────────────────────────
@router.get("/academic-calendar/status")
def calendar_status_endpoint(
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    snapshot = get_settings(db)
    oracle = AvailabilityOracle.for_session(db, snapshot)
    today = calendar_today()
    active = active_calendar_summary(db, snapshot.current_academic_year)
    routines = check_routines(db)
    return {
        "settings": snapshot,
        "active_calendar": active,
        "today": DateCheckOut.model_validate(oracle.check_date(today)),
        "next_available_date": NextAvailableOut.model_validate(oracle.next_available(today)),
        "upcoming_events": upcoming_events(db, today),
        "system_health": {
            "calendar_configured": active is not None,
            "sql_functions": routines,
            "functions_working": all(state == "available" for state in routines.values()),
            "database_holiday_check": lookup_holiday(db, today).as_dict(),
        },
    }


@router.get("/academic-calendar/events")
def list_events_endpoint(
    academic_year: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    event_type: str | None = Query(None),
    affects_requests_only: bool = Query(False),
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    listing = query_events(
        db,
        academic_year=academic_year,
        start_date=start_date,
        end_date=end_date,
        event_type=event_type,
        affects_requests_only=affects_requests_only,
    )
    listing["events"] = [EventListItem.model_validate(item) for item in listing["events"]]
    return listing


@router.post("/academic-calendar/settings", response_model=SettingsUpdateResponse)
def update_settings_endpoint(
    payload: SettingsUpdateRequest,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_super_admin),
):
    snapshot = update_settings(db, payload, admin.id)
    return SettingsUpdateResponse(
        settings=snapshot,
        updated_by=admin.id,
        updated_at=datetime.utcnow(),
        changes_applied={key: True for key in payload.model_dump(exclude_none=True)},
    )


@router.get("/academic-calendar/validate/system")
def validate_system_endpoint(
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    return validate_system(db)


# ── Public availability ───────────────────────────────────────────────────────
def parse_check_date(value: str, today: date) -> date:
    """Accept YYYY-MM-DD between one year back and two years ahead."""
    if not _ISO_DATE_RE.match(value):
        raise CalendarValidationError("date", "Invalid date format. Use YYYY-MM-DD")
    try:
        day = date.fromisoformat(value)
    except ValueError:
        raise CalendarValidationError("date", "Invalid date provided") from None
    if not today - timedelta(days=365) <= day <= today + timedelta(days=730):
        raise CalendarValidationError("date", "Date must be within 1 year past and 2 years future")
    return day


@router.get("/academic-calendar/check-date/{date_value}", response_model=DateCheckResponse)
def check_date_endpoint(date_value: str, db: Session = Depends(get_db)):
    day = parse_check_date(date_value, calendar_today())
    snapshot = get_settings(db)
    check = AvailabilityOracle.for_session(db, snapshot).check_date(day)
    events_on_date = []
    if snapshot.enabled:
        events_on_date = [
            {
                "event_name": item["event_name"],
                "event_type": item["event_type"],
                "start_date": item["start_date"],
                "end_date": item["end_date"],
                "affects_request_creation": item["affects_request_creation"],
                "priority_level": item["priority_level"],
            }
            for item in query_events(db, start_date=day, end_date=day, today=day)["events"]
        ]
    return DateCheckResponse(
        **DateCheckOut.model_validate(check).model_dump(),
        events_on_date=events_on_date,
        restrictions={
            "weekend_restriction": check.is_weekend,
            "holiday_restriction": check.is_holiday,
            "buffer_restriction": bool(check.buffer_events),
            "calendar_enabled": check.calendar_enabled,
        },
    )


@router.get("/academic-calendar/check-range", response_model=RangeCheckResponse)
def check_range_endpoint(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
):
    result = AvailabilityOracle.for_session(db, get_settings(db)).check_range(start_date, end_date)
    return RangeCheckResponse(
        start_date=result.start_date,
        end_date=result.end_date,
        total_days=result.total_days,
        available_days=result.available_days,
        unavailable_days=result.unavailable_days,
        holiday_days=result.holiday_days,
        weekend_days=result.weekend_days,
        details=[DateCheckOut.model_validate(day) for day in result.days],
    )
