from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from calendar_app.core.errors import CalendarValidationError
from calendar_app.core.validators import parse_academic_year


class CalendarSettings(BaseModel):
    """Snapshot of academic_settings handed to the oracle and pipeline."""

    enabled: bool
    buffer_hours: int
    current_academic_year: str

    model_config = {"frozen": True}


class SettingsUpdateRequest(BaseModel):
    """Partial update: only provided fields are written."""

    academic_calendar_enabled: bool | None = None
    holiday_buffer_hours: int | None = Field(None, ge=0, le=168)
    current_academic_year: str | None = None

    @field_validator("current_academic_year")
    @classmethod
    def _check_academic_year(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            parse_academic_year(value, field="current_academic_year")
        except CalendarValidationError as exc:
            raise ValueError(exc.message) from exc
        return value


class SettingsUpdateResponse(BaseModel):
    settings: CalendarSettings
    updated_by: int | None = None
    updated_at: datetime
    changes_applied: dict[str, bool]
