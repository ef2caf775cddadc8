import logging
from datetime import date

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_app.services.calendar_functions import ROUTINES, call_routine
from calendar_app.services.calendar_settings import SETTING_KEYS, get_setting_rows

logger = logging.getLogger(__name__)

REQUIRED_TABLES = (
    "academic_calendar_uploads",
    "academic_calendar_events",
    "academic_settings",
    "document_parsing_logs",
)
_HEALTH_CHECK_DATE = date(2025, 1, 1)


def check_tables(db: Session) -> dict[str, str]:
    inspector = inspect(db.connection())
    return {
        table: "exists" if inspector.has_table(table) else "missing"
        for table in REQUIRED_TABLES
    }


def check_routines(db: Session) -> dict[str, str]:
    return {
        routine: "available" if call_routine(db, routine, _HEALTH_CHECK_DATE).reachable else "missing"
        for routine in ROUTINES
    }


def check_settings(db: Session) -> dict:
    try:
        present = sorted(get_setting_rows(db))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Settings check failed: %s", exc)
        return {"status": "error", "error": str(exc)}
    return {
        "count": len(present),
        "present": present,
        "status": "complete" if len(present) >= len(SETTING_KEYS) else "incomplete",
    }


def validate_system(db: Session) -> dict:
    tables = check_tables(db)
    routines = check_routines(db)
    settings_state = check_settings(db)

    tables_ok = all(status == "exists" for status in tables.values())
    routines_ok = all(status == "available" for status in routines.values())
    settings_ok = settings_state["status"] == "complete"

    if tables_ok and routines_ok and settings_ok:
        health = "healthy"
    elif tables_ok:
        health = "partial"
    else:
        health = "unhealthy"

    recommendations = []
    if not tables_ok:
        recommendations.append("Run database migrations to create missing tables")
    if not routines_ok:
        recommendations.append("Execute SQL functions script to create missing database functions")
    if not settings_ok:
        recommendations.append("Initialize academic settings with default values")

    return {
        "database_tables": tables,
        "sql_functions": routines,
        "settings": settings_state,
        "overall_health": health,
        "recommendations": recommendations,
    }
