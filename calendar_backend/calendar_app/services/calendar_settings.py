import logging
from datetime import datetime

from sqlalchemy.orm import Session

from calendar_app.core.config import settings as app_settings
from calendar_app.core.errors import CalendarValidationError
from calendar_app.core.validators import parse_academic_year
from calendar_app.models.setting import AcademicSetting
from calendar_app.schemas.settings import CalendarSettings, SettingsUpdateRequest

logger = logging.getLogger(__name__)

ENABLED_KEY = "academic_calendar_enabled"
BUFFER_KEY = "holiday_buffer_hours"
YEAR_KEY = "current_academic_year"
SETTING_KEYS = (ENABLED_KEY, BUFFER_KEY, YEAR_KEY)

_DESCRIPTIONS = {
    ENABLED_KEY: "Enable/disable academic calendar restrictions",
    BUFFER_KEY: "Hours before/after holidays when requests are also blocked",
    YEAR_KEY: "Currently active academic year",
}


def default_settings() -> CalendarSettings:
    return CalendarSettings(
        enabled=app_settings.default_calendar_enabled,
        buffer_hours=app_settings.default_holiday_buffer_hours,
        current_academic_year=app_settings.default_academic_year,
    )


def get_setting_rows(db: Session) -> dict[str, AcademicSetting]:
    rows = db.query(AcademicSetting).filter(AcademicSetting.setting_key.in_(SETTING_KEYS)).all()
    return {row.setting_key: row for row in rows}


def get_settings(db: Session) -> CalendarSettings:
    """Read the three keys, falling back to configured defaults per key."""
    rows = get_setting_rows(db)
    defaults = default_settings()
    return CalendarSettings(
        enabled=_parse_enabled(rows.get(ENABLED_KEY), defaults.enabled),
        buffer_hours=_parse_buffer(rows.get(BUFFER_KEY), defaults.buffer_hours),
        current_academic_year=_parse_year(rows.get(YEAR_KEY), defaults.current_academic_year),
    )


def update_settings(db: Session, payload: SettingsUpdateRequest, admin_id: int | None) -> CalendarSettings:
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise CalendarValidationError(
            "settings",
            "No valid settings provided to update",
            details={"accepted_fields": list(SETTING_KEYS)},
        )

    now = datetime.utcnow()
    for key, value in changes.items():
        row = db.get(AcademicSetting, key)
        if row is None:
            row = AcademicSetting(setting_key=key)
            db.add(row)
        row.setting_value = _serialize(value)
        row.description = _DESCRIPTIONS[key]
        row.updated_by = admin_id
        row.updated_at = now
    db.commit()
    logger.info("Calendar settings updated by admin %s: %s", admin_id, sorted(changes))
    return get_settings(db)


def _serialize(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_enabled(row: AcademicSetting | None, default: bool) -> bool:
    if row is None:
        return default
    return row.setting_value.strip().lower() == "true"


def _parse_buffer(row: AcademicSetting | None, default: int) -> int:
    if row is None:
        return default
    try:
        hours = int(row.setting_value)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r", BUFFER_KEY, row.setting_value)
        return default
    return min(max(hours, 0), 168)


def _parse_year(row: AcademicSetting | None, default: str) -> str:
    if row is None:
        return default
    try:
        parse_academic_year(row.setting_value, field=YEAR_KEY)
    except CalendarValidationError:
        logger.warning("Ignoring malformed %s=%r", YEAR_KEY, row.setting_value)
        return default
    return row.setting_value
