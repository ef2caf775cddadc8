"""Upload -> parse -> extract -> persist -> activate, with a durable stage log.

Every stage writes a ParsingLog row (committed) before the next step runs or
before a failure is raised, so partial progress can be inspected after the
fact. The stored file is removed on every failure path.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy import case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_app.core.errors import (
    CalendarError,
    CalendarPersistenceError,
    CalendarValidationError,
    DocumentParseError,
    EventExtractionError,
)
from calendar_app.core.validators import parse_academic_year
from calendar_app.models.event import CalendarEvent
from calendar_app.models.parsing_log import ParsingLog
from calendar_app.models.upload import CalendarUpload
from calendar_app.schemas.settings import SettingsUpdateRequest
from calendar_app.services.calendar_extractor import ExtractedEvent, ExtractionSummary, extract_events
from calendar_app.services.calendar_settings import update_settings
from calendar_app.services.document_parser import parse_document
from calendar_app.services.file_store import StoredFile, delete_file

logger = logging.getLogger(__name__)

TEXT_SAMPLE_CHARS = 500

# Allowed processing_status moves; failed and completed are terminal
STATUS_TRANSITIONS = {
    "pending": {"processing", "failed"},
    "processing": {"completed", "failed"},
    "completed": set(),
    "failed": set(),
}


@dataclass
class PersistOutcome:
    saved_count: int = 0
    failed_events: list[dict] = field(default_factory=list)


@dataclass
class IngestionResult:
    upload: CalendarUpload
    events: list[ExtractedEvent]
    summary: ExtractionSummary
    saved_count: int
    failed_events: list[dict]
    parse_messages: list[str]
    file: StoredFile


def transition(upload: CalendarUpload, new_status: str) -> None:
    current = upload.processing_status or "pending"
    if new_status not in STATUS_TRANSITIONS[current]:
        raise CalendarPersistenceError(
            f"Illegal status transition {current} -> {new_status} for upload {upload.id}"
        )
    upload.processing_status = new_status


def write_log(
    db: Session,
    upload_id: int,
    stage: str,
    status: str,
    message: str,
    error_details: str | None = None,
    data: dict | None = None,
) -> ParsingLog:
    entry = ParsingLog(
        upload_id=upload_id,
        stage=stage,
        status=status,
        message=message,
        error_details=error_details,
        data_extracted=data,
    )
    db.add(entry)
    db.commit()
    return entry


def persist_events(db: Session, upload_id: int, events: list[ExtractedEvent]) -> PersistOutcome:
    """Insert each event in its own savepoint; one bad row never sinks the batch."""
    outcome = PersistOutcome()
    for index, event in enumerate(events):
        try:
            with db.begin_nested():
                db.add(
                    CalendarEvent(
                        upload_id=upload_id,
                        event_type=event.event_type,
                        event_name=event.event_name,
                        start_date=event.start_date,
                        end_date=event.end_date,
                        is_recurring=event.is_recurring,
                        recurring_type=event.recurring_type,
                        affects_request_creation=event.affects_request_creation,
                        description=event.description,
                        priority_level=event.priority_level,
                        source_line=event.source_line,
                        extraction_method=event.extraction_method,
                    )
                )
        except SQLAlchemyError as exc:
            error = str(getattr(exc, "orig", None) or exc)
            logger.warning("Skipping event %r of upload %s: %s", event.event_name, upload_id, error)
            outcome.failed_events.append(
                {
                    "index": index,
                    "event_name": event.event_name,
                    "start_date": event.start_date.isoformat(),
                    "end_date": event.end_date.isoformat(),
                    "error": error,
                }
            )
            continue
        outcome.saved_count += 1
    db.commit()
    return outcome


def activate_upload(db: Session, upload: CalendarUpload) -> None:
    """Make ``upload`` the only active calendar of its academic year in one UPDATE."""
    db.query(CalendarUpload).filter(
        CalendarUpload.academic_year == upload.academic_year
    ).update(
        {CalendarUpload.is_active: case((CalendarUpload.id == upload.id, True), else_=False)},
        synchronize_session=False,
    )
    upload.is_active = True


def ingest_calendar(
    db: Session,
    stored: StoredFile,
    academic_year: str,
    uploaded_by: int | None,
) -> IngestionResult:
    try:
        parse_academic_year(academic_year)
    except CalendarValidationError:
        delete_file(stored.path)
        raise

    logger.info(
        "Calendar upload started: %s (%s, %d bytes) for %s by admin %s",
        stored.original_name, stored.mime_type, stored.size, academic_year, uploaded_by,
    )
    upload_id = None
    stage = "upload"
    try:
        upload = CalendarUpload(
            file_name=stored.original_name,
            file_path=stored.path,
            file_type=stored.mime_type,
            file_size=stored.size,
            academic_year=academic_year,
            uploaded_by=uploaded_by,
            processing_status="pending",
            is_active=False,
        )
        db.add(upload)
        db.commit()
        db.refresh(upload)
        upload_id = upload.id
        write_log(db, upload_id, "upload", "completed", "File uploaded successfully")

        stage = "text_extraction"
        transition(upload, "processing")
        db.commit()
        write_log(db, upload_id, stage, "started", "Starting text extraction")
        parsed = parse_document(stored.path, stored.mime_type)
        if not parsed.success:
            _mark_failed(db, upload, stage, "Text extraction failed", parsed.error)
            delete_file(stored.path)
            raise DocumentParseError(
                "Failed to parse document",
                details={"upload_id": upload_id, "error_details": parsed.error},
            )
        write_log(
            db, upload_id, stage, "completed", "Text extracted successfully",
            data={"text_length": len(parsed.text)},
        )

        stage = "date_parsing"
        write_log(db, upload_id, stage, "started", "Starting event extraction")
        sample = parsed.text[:TEXT_SAMPLE_CHARS]
        extraction = None
        extraction_error = None
        try:
            extraction = extract_events(parsed.text, academic_year)
        except Exception as exc:
            logger.exception("Event extraction crashed for upload %s", upload_id)
            extraction_error = str(exc)
        if extraction is None or not extraction.events:
            reason = extraction_error or "No events could be extracted from document"
            _mark_failed(
                db, upload, stage, "No events extracted from text", reason,
                data={
                    "text_sample": sample,
                    "text_length": len(parsed.text),
                    "lines_scanned": extraction.lines_scanned if extraction else 0,
                    "lines_skipped": extraction.lines_skipped if extraction else 0,
                    "event_count": 0,
                },
            )
            delete_file(stored.path)
            raise EventExtractionError(
                "No events could be extracted from the document",
                details={
                    "upload_id": upload_id,
                    "error_details": reason,
                    "extracted_text_sample": sample,
                    "parsing_messages": parsed.messages,
                },
            )
        write_log(
            db, upload_id, stage, "completed", "Events extracted successfully",
            data={"event_count": len(extraction.events), "summary": extraction.summary.as_dict()},
        )

        stage = "event_creation"
        write_log(db, upload_id, stage, "started", "Starting event creation")
        outcome = persist_events(db, upload_id, extraction.events)

        activate_upload(db, upload)
        transition(upload, "completed")
        note = f"Successfully processed {outcome.saved_count} events"
        if outcome.failed_events:
            note += f" ({len(outcome.failed_events)} skipped)"
        upload.processing_notes = note
        db.commit()

        stage = "completed"
        write_log(
            db, upload_id, stage, "completed", "Calendar processing completed successfully",
            data={"total_events": outcome.saved_count, "failed_events": outcome.failed_events},
        )
    except CalendarError:
        raise
    except Exception as exc:
        logger.exception("Calendar upload %s failed during %s", upload_id, stage)
        db.rollback()
        if upload_id is not None:
            _mark_failed_after_error(db, upload_id, stage, str(exc))
        delete_file(stored.path)
        raise CalendarPersistenceError(
            "Failed to process academic calendar",
            details={"upload_id": upload_id, "error_details": str(exc), "failed_stage": stage},
        ) from exc

    _update_current_year(db, academic_year, uploaded_by)
    logger.info(
        "Calendar upload %s completed: %d events saved, %d skipped",
        upload_id, outcome.saved_count, len(outcome.failed_events),
    )
    return IngestionResult(
        upload=upload,
        events=extraction.events,
        summary=extraction.summary,
        saved_count=outcome.saved_count,
        failed_events=outcome.failed_events,
        parse_messages=parsed.messages,
        file=stored,
    )


def _mark_failed(
    db: Session,
    upload: CalendarUpload,
    stage: str,
    message: str,
    error: str | None,
    data: dict | None = None,
) -> None:
    transition(upload, "failed")
    upload.processing_notes = error
    db.commit()
    write_log(db, upload.id, stage, "failed", message, error_details=error, data=data)


def _mark_failed_after_error(db: Session, upload_id: int, stage: str, error: str) -> None:
    try:
        upload = db.get(CalendarUpload, upload_id)
        if upload is not None and "failed" in STATUS_TRANSITIONS[upload.processing_status or "pending"]:
            transition(upload, "failed")
            upload.processing_notes = error
            db.commit()
        write_log(db, upload_id, stage, "failed", "Calendar processing failed", error_details=error)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record failure of upload %s", upload_id)


def _update_current_year(db: Session, academic_year: str, admin_id: int | None) -> None:
    try:
        update_settings(db, SettingsUpdateRequest(current_academic_year=academic_year), admin_id)
    except (SQLAlchemyError, CalendarError) as exc:
        db.rollback()
        logger.warning("Could not update current_academic_year to %s: %s", academic_year, exc)
