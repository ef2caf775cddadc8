import datetime as dt

from pydantic import BaseModel


class BlockingEventOut(BaseModel):
    event_id: int
    event_name: str
    event_type: str
    start_date: dt.date
    end_date: dt.date
    is_recurring: bool = False
    recurring_type: str = "none"
    priority_level: str = "medium"

    model_config = {"from_attributes": True}


class DateCheckOut(BaseModel):
    date: dt.date
    day_of_week: str
    is_weekend: bool
    is_holiday: bool
    blocking_events: list[BlockingEventOut] = []
    buffer_events: list[BlockingEventOut] = []
    can_create_requests: bool
    calendar_enabled: bool
    diagnostic: str | None = None

    model_config = {"from_attributes": True}


class NextAvailableOut(BaseModel):
    found: bool
    date: dt.date | None = None
    days_ahead: int | None = None
    day_name: str | None = None
    searched_days: int
    diagnostic: str | None = None

    model_config = {"from_attributes": True}


class DateCheckResponse(DateCheckOut):
    """GET /check-date/{date}: the oracle verdict plus every event on the day."""

    events_on_date: list[dict] = []
    restrictions: dict[str, bool]


class RangeCheckResponse(BaseModel):
    start_date: dt.date
    end_date: dt.date
    total_days: int
    available_days: int
    unavailable_days: int
    holiday_days: int
    weekend_days: int
    details: list[DateCheckOut]
