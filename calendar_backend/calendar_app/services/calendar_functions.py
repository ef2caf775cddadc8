"""Boundary to the database-side date routines.

``is_academic_holiday_detailed(date)`` and ``get_next_request_creation_date(date)``
live in the database, not in this service. Depending on the driver their
result arrives as a dict, as JSON text, or not at all; everything is
normalized here into ``RoutineResult`` so nothing downstream inspects raw
payloads. An unreachable routine is a diagnostic, never an error.
"""
import json
import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_app.core.errors import CalendarDependencyError

logger = logging.getLogger(__name__)

HOLIDAY_ROUTINE = "is_academic_holiday_detailed"
NEXT_DATE_ROUTINE = "get_next_request_creation_date"
ROUTINES = (HOLIDAY_ROUTINE, NEXT_DATE_ROUTINE)

FUNCTION_ERROR = "function_error"
FORMAT_ERROR = "format_error"
NO_DATA = "no_data"


@dataclass
class RoutineResult:
    routine: str
    payload: dict | None = None
    diagnostic: str | None = None
    error_details: str | None = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    @property
    def reachable(self) -> bool:
        return self.diagnostic != FUNCTION_ERROR

    @property
    def is_holiday(self) -> bool:
        # Degraded results default to non-blocking
        return bool(self.ok and self.payload.get("is_holiday"))

    def as_dict(self) -> dict:
        body = dict(self.payload or {})
        body.setdefault("is_holiday", self.is_holiday)
        if self.diagnostic:
            body[self.diagnostic] = True
        if self.error_details:
            body["error_details"] = self.error_details
        return body


def decode_payload(raw) -> dict:
    if raw is None or raw == "" or raw == b"":
        raise CalendarDependencyError("No data returned from routine", diagnostic=NO_DATA)
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CalendarDependencyError(f"Invalid JSON from routine: {exc}", diagnostic=FORMAT_ERROR) from exc
    if not isinstance(raw, dict):
        raise CalendarDependencyError(
            f"Unexpected routine payload type: {type(raw).__name__}", diagnostic=FORMAT_ERROR
        )
    return raw


def normalize_payload(routine: str, raw) -> RoutineResult:
    try:
        return RoutineResult(routine=routine, payload=decode_payload(raw))
    except CalendarDependencyError as exc:
        logger.warning("Routine %s returned unusable data: %s", routine, exc.message)
        return RoutineResult(routine=routine, diagnostic=exc.diagnostic, error_details=exc.message)


def call_routine(db: Session, routine: str, day: date) -> RoutineResult:
    try:
        raw = db.execute(select(getattr(func, routine)(day.isoformat()))).scalar()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Routine %s unavailable: %s", routine, exc)
        return RoutineResult(routine=routine, diagnostic=FUNCTION_ERROR, error_details=str(exc))
    return normalize_payload(routine, raw)


def lookup_holiday(db: Session, day: date) -> RoutineResult:
    return call_routine(db, HOLIDAY_ROUTINE, day)
