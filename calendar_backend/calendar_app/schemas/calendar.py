from datetime import date, datetime
from typing import Any

from pydantic import BaseModel


class CalendarEventOut(BaseModel):
    id: int
    upload_id: int
    event_type: str
    event_name: str
    start_date: date
    end_date: date
    is_recurring: bool
    recurring_type: str | None = None
    affects_request_creation: bool
    description: str | None = None
    priority_level: str | None = None
    source_line: str | None = None
    extraction_method: str | None = None

    model_config = {"from_attributes": True}


class EventListItem(CalendarEventOut):
    academic_year: str
    source_file: str
    status: str  # active / upcoming / past


class EventPreview(BaseModel):
    name: str
    type: str
    start_date: date
    end_date: date
    affects_requests: bool


class CalendarUploadOut(BaseModel):
    id: int
    file_name: str
    file_type: str
    file_size: int | None = None
    academic_year: str
    uploaded_by: int | None = None
    uploaded_at: datetime | None = None
    processing_status: str
    processing_notes: str | None = None
    is_active: bool

    model_config = {"from_attributes": True}


class UploadHistoryItem(CalendarUploadOut):
    uploaded_by_name: str
    events_count: int
    log_entries: int


class ParsingLogOut(BaseModel):
    id: int
    upload_id: int
    stage: str
    status: str
    message: str | None = None
    error_details: str | None = None
    data_extracted: dict[str, Any] | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class FileInfo(BaseModel):
    original_name: str
    size: int
    type: str


class UploadResultResponse(BaseModel):
    upload_id: int
    academic_year: str
    events_processed: int
    failed_events: list[dict[str, Any]] = []
    events_preview: list[EventPreview] = []
    summary: dict[str, Any]
    file_info: FileInfo
    message: str = "Academic calendar uploaded and processed successfully"
