"""Gate for request-creating endpoints of other services.

Attach ``require_request_window`` as a dependency; when the calendar blocks
today the caller gets HTTP 423 with the reason and the next open day.
Admins are never blocked.
"""
import logging
from datetime import date

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from calendar_app.core.database import get_db
from calendar_app.models.admin import AdminUser
from calendar_app.services.auth import get_optional_admin
from calendar_app.services.calendar_settings import get_settings
from calendar_app.services.oracle import AvailabilityOracle, DateCheck, calendar_today

logger = logging.getLogger(__name__)


def blocking_reason(check: DateCheck) -> str:
    if check.is_weekend:
        return "Requests cannot be created on weekends"
    if check.blocking_events:
        names = ", ".join(e.event_name for e in check.blocking_events)
        return f"Requests cannot be created during: {names}"
    if check.buffer_events:
        names = ", ".join(e.event_name for e in check.buffer_events)
        return f"Requests cannot be created close to: {names}"
    return "Requests cannot be created today"


def assert_request_window(oracle: AvailabilityOracle, day: date) -> DateCheck:
    check = oracle.check_date(day)
    if check.can_create_requests:
        return check
    upcoming = oracle.next_available(day)
    logger.info("Request creation blocked on %s", day)
    raise HTTPException(
        status_code=status.HTTP_423_LOCKED,
        detail={
            "message": blocking_reason(check),
            "date": day.isoformat(),
            "blocking_events": [e.event_name for e in check.blocking_events],
            "next_available_date": upcoming.date.isoformat() if upcoming.found else None,
        },
    )


def require_request_window(
    db: Session = Depends(get_db),
    admin: AdminUser | None = Depends(get_optional_admin),
) -> None:
    if admin is not None:
        return
    oracle = AvailabilityOracle.for_session(db, get_settings(db))
    assert_request_window(oracle, calendar_today())
