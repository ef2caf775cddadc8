"""Answer "may a request be created on this day?" from the active calendars.

The oracle works on an explicit ``CalendarSettings`` snapshot and a loader
returning blocking events for a date window, so the day-by-day evaluation is
pure. Internal failures never propagate: they come back as a non-blocking
result carrying ``diagnostic="internal_error"``.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from functools import partial
from typing import Callable
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from calendar_app.core.config import settings as app_settings
from calendar_app.core.errors import CalendarValidationError
from calendar_app.models.event import CalendarEvent
from calendar_app.models.upload import CalendarUpload
from calendar_app.schemas.settings import CalendarSettings

logger = logging.getLogger(__name__)

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MAX_RANGE_DAYS = 365


@dataclass(frozen=True)
class BlockingEvent:
    event_id: int
    event_name: str
    event_type: str
    start_date: date
    end_date: date
    is_recurring: bool = False
    recurring_type: str = "none"
    priority_level: str = "medium"

    def covers(self, day: date, margin_days: int = 0) -> bool:
        margin = timedelta(days=margin_days)
        return self.start_date - margin <= day <= self.end_date + margin


@dataclass
class DateCheck:
    date: date
    day_of_week: str
    is_weekend: bool
    is_holiday: bool
    blocking_events: list[BlockingEvent]
    buffer_events: list[BlockingEvent]
    can_create_requests: bool
    calendar_enabled: bool
    diagnostic: str | None = None


@dataclass
class NextAvailable:
    found: bool
    date: date | None
    days_ahead: int | None
    day_name: str | None
    searched_days: int
    diagnostic: str | None = None


@dataclass
class RangeCheck:
    start_date: date
    end_date: date
    days: list[DateCheck] = field(default_factory=list)

    @property
    def total_days(self) -> int:
        return len(self.days)

    @property
    def available_days(self) -> int:
        return sum(1 for d in self.days if d.can_create_requests)

    @property
    def unavailable_days(self) -> int:
        return self.total_days - self.available_days

    @property
    def holiday_days(self) -> int:
        return sum(1 for d in self.days if d.is_holiday)

    @property
    def weekend_days(self) -> int:
        return sum(1 for d in self.days if d.is_weekend)


EventLoader = Callable[[date, date], list[BlockingEvent]]


def load_blocking_events(db: Session, window_start: date, window_end: date) -> list[BlockingEvent]:
    """Blocking events of active, completed uploads overlapping the window."""
    rows = (
        db.query(CalendarEvent)
        .join(CalendarUpload, CalendarEvent.upload_id == CalendarUpload.id)
        .filter(
            CalendarUpload.is_active.is_(True),
            CalendarUpload.processing_status == "completed",
            CalendarEvent.affects_request_creation.is_(True),
            CalendarEvent.start_date <= window_end,
            CalendarEvent.end_date >= window_start,
        )
        .order_by(CalendarEvent.start_date, CalendarEvent.id)
        .all()
    )
    return [
        BlockingEvent(
            event_id=row.id,
            event_name=row.event_name,
            event_type=row.event_type,
            start_date=row.start_date,
            end_date=row.end_date,
            is_recurring=bool(row.is_recurring),
            recurring_type=row.recurring_type or "none",
            priority_level=row.priority_level or "medium",
        )
        for row in rows
    ]


def calendar_today(now: datetime | None = None) -> date:
    """Current date in the configured campus timezone."""
    zone = ZoneInfo(app_settings.timezone)
    if now is None:
        return datetime.now(zone).date()
    return now.astimezone(zone).date()


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


class AvailabilityOracle:
    def __init__(self, calendar_settings: CalendarSettings, load_events: EventLoader):
        self.settings = calendar_settings
        self._load_events = load_events

    @classmethod
    def for_session(cls, db: Session, calendar_settings: CalendarSettings) -> "AvailabilityOracle":
        return cls(calendar_settings, partial(load_blocking_events, db))

    @property
    def buffer_days(self) -> int:
        # Buffer hours only count in whole days; availability is day-granular
        return max(self.settings.buffer_hours, 0) // 24

    def check_date(self, day: date) -> DateCheck:
        try:
            margin = timedelta(days=self.buffer_days)
            events = self._events_for(day - margin, day + margin)
            return self._evaluate(day, events)
        except Exception:
            logger.exception("Availability check failed for %s", day)
            return self._unknown(day)

    def next_available(self, day: date, horizon_days: int | None = None) -> NextAvailable:
        horizon = horizon_days or app_settings.availability_horizon_days
        try:
            margin = timedelta(days=self.buffer_days)
            events = self._events_for(
                day + timedelta(days=1) - margin, day + timedelta(days=horizon) + margin
            )
            for offset in range(1, horizon + 1):
                candidate = day + timedelta(days=offset)
                if self._evaluate(candidate, events).can_create_requests:
                    return NextAvailable(
                        found=True,
                        date=candidate,
                        days_ahead=offset,
                        day_name=DAY_NAMES[candidate.weekday()],
                        searched_days=offset,
                    )
        except Exception:
            logger.exception("Next available date lookup failed from %s", day)
            return NextAvailable(
                found=False, date=None, days_ahead=None, day_name=None,
                searched_days=0, diagnostic="internal_error",
            )
        logger.warning("No available day within %d days after %s", horizon, day)
        return NextAvailable(
            found=False, date=None, days_ahead=None, day_name=None,
            searched_days=horizon, diagnostic="horizon_exceeded",
        )

    def check_range(self, start: date, end: date) -> RangeCheck:
        if end < start:
            raise CalendarValidationError("end_date", "end_date must not be before start_date")
        span = (end - start).days + 1
        if span > MAX_RANGE_DAYS:
            raise CalendarValidationError(
                "end_date", f"Date range too large. Maximum {MAX_RANGE_DAYS} days allowed."
            )
        result = RangeCheck(start_date=start, end_date=end)
        try:
            margin = timedelta(days=self.buffer_days)
            events = self._events_for(start - margin, end + margin)
            days = [self._evaluate(start + timedelta(days=i), events) for i in range(span)]
        except Exception:
            logger.exception("Range availability check failed for %s..%s", start, end)
            days = [self._unknown(start + timedelta(days=i)) for i in range(span)]
        result.days = days
        return result

    def _events_for(self, window_start: date, window_end: date) -> list[BlockingEvent]:
        if not self.settings.enabled:
            return []
        return self._load_events(window_start, window_end)

    def _evaluate(self, day: date, events: list[BlockingEvent]) -> DateCheck:
        weekend = is_weekend(day)
        if not self.settings.enabled:
            return DateCheck(
                date=day,
                day_of_week=DAY_NAMES[day.weekday()],
                is_weekend=weekend,
                is_holiday=False,
                blocking_events=[],
                buffer_events=[],
                can_create_requests=not weekend,
                calendar_enabled=False,
            )

        blocking = [e for e in events if e.covers(day)]
        buffered = []
        if self.buffer_days:
            buffered = [e for e in events if not e.covers(day) and e.covers(day, self.buffer_days)]
        return DateCheck(
            date=day,
            day_of_week=DAY_NAMES[day.weekday()],
            is_weekend=weekend,
            is_holiday=bool(blocking),
            blocking_events=blocking,
            buffer_events=buffered,
            can_create_requests=not weekend and not blocking and not buffered,
            calendar_enabled=True,
        )

    def _unknown(self, day: date) -> DateCheck:
        weekend = is_weekend(day)
        return DateCheck(
            date=day,
            day_of_week=DAY_NAMES[day.weekday()],
            is_weekend=weekend,
            is_holiday=False,
            blocking_events=[],
            buffer_events=[],
            can_create_requests=not weekend,
            calendar_enabled=self.settings.enabled,
            diagnostic="internal_error",
        )
