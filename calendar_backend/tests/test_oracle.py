"""
Tests for the availability oracle.

Most cases use an in-memory event loader so the evaluation stays pure;
one suite goes through the database to check which events are authoritative.
"""

import unittest
from datetime import date

from calendar_app.core.errors import CalendarValidationError
from calendar_app.schemas.settings import CalendarSettings
from calendar_app.services.oracle import AvailabilityOracle, BlockingEvent, load_blocking_events
from support import DatabaseTestCase, make_event, make_upload

REPUBLIC_DAY = BlockingEvent(
    event_id=1,
    event_name="Cumhuriyet Bayramı",
    event_type="holiday",
    start_date=date(2025, 10, 29),
    end_date=date(2025, 10, 29),
)


def oracle_for(events, *, enabled=True, buffer_hours=0):
    snapshot = CalendarSettings(enabled=enabled, buffer_hours=buffer_hours, current_academic_year="2025-2026")
    return AvailabilityOracle(
        snapshot,
        lambda lo, hi: [e for e in events if e.start_date <= hi and e.end_date >= lo],
    )


class TestCheckDate(unittest.TestCase):
    def test_saturday_is_blocked_whatever_the_settings(self) -> None:
        for enabled in (True, False):
            with self.subTest(enabled=enabled):
                check = oracle_for([], enabled=enabled).check_date(date(2025, 10, 25))
                self.assertTrue(check.is_weekend)
                self.assertFalse(check.can_create_requests)
                self.assertEqual(check.day_of_week, "Saturday")

    def test_holiday_blocks(self) -> None:
        check = oracle_for([REPUBLIC_DAY]).check_date(date(2025, 10, 29))
        self.assertTrue(check.is_holiday)
        self.assertFalse(check.can_create_requests)
        self.assertEqual([e.event_name for e in check.blocking_events], ["Cumhuriyet Bayramı"])

    def test_plain_weekday_is_open(self) -> None:
        check = oracle_for([REPUBLIC_DAY]).check_date(date(2025, 10, 27))
        self.assertTrue(check.can_create_requests)
        self.assertFalse(check.is_holiday)
        self.assertIsNone(check.diagnostic)

    def test_disabled_calendar_ignores_events(self) -> None:
        oracle = oracle_for([REPUBLIC_DAY], enabled=False)
        check = oracle.check_date(date(2025, 10, 29))
        self.assertFalse(check.calendar_enabled)
        self.assertFalse(check.is_holiday)
        self.assertTrue(check.can_create_requests)

    def test_buffer_days_around_holiday(self) -> None:
        oracle = oracle_for([REPUBLIC_DAY], buffer_hours=24)
        before = oracle.check_date(date(2025, 10, 28))
        after = oracle.check_date(date(2025, 10, 30))
        self.assertFalse(before.is_holiday)
        self.assertEqual([e.event_id for e in before.buffer_events], [1])
        self.assertFalse(before.can_create_requests)
        self.assertFalse(after.can_create_requests)
        self.assertTrue(oracle.check_date(date(2025, 10, 27)).can_create_requests)

    def test_partial_day_buffer_is_ignored(self) -> None:
        oracle = oracle_for([REPUBLIC_DAY], buffer_hours=23)
        self.assertEqual(oracle.buffer_days, 0)
        self.assertTrue(oracle.check_date(date(2025, 10, 28)).can_create_requests)

    def test_loader_failure_degrades_to_non_blocking(self) -> None:
        def broken(lo, hi):
            raise RuntimeError("database went away")

        snapshot = CalendarSettings(enabled=True, buffer_hours=0, current_academic_year="2025-2026")
        oracle = AvailabilityOracle(snapshot, broken)
        check = oracle.check_date(date(2025, 10, 29))
        self.assertEqual(check.diagnostic, "internal_error")
        self.assertTrue(check.can_create_requests)
        weekend = oracle.check_date(date(2025, 10, 25))
        self.assertFalse(weekend.can_create_requests)


class TestNextAvailable(unittest.TestCase):
    def test_skips_holiday_and_buffer(self) -> None:
        result = oracle_for([REPUBLIC_DAY], buffer_hours=24).next_available(date(2025, 10, 28))
        self.assertTrue(result.found)
        self.assertEqual(result.date, date(2025, 10, 31))
        self.assertEqual(result.days_ahead, 3)
        self.assertEqual(result.day_name, "Friday")

    def test_skips_weekend(self) -> None:
        result = oracle_for([]).next_available(date(2025, 10, 24))
        self.assertEqual(result.date, date(2025, 10, 27))
        self.assertEqual(result.days_ahead, 3)

    def test_horizon_exhausted(self) -> None:
        long_break = BlockingEvent(
            event_id=2,
            event_name="Uzun Tatil",
            event_type="holiday",
            start_date=date(2025, 10, 1),
            end_date=date(2026, 6, 30),
        )
        result = oracle_for([long_break]).next_available(date(2025, 10, 26), horizon_days=30)
        self.assertFalse(result.found)
        self.assertIsNone(result.date)
        self.assertEqual(result.searched_days, 30)
        self.assertEqual(result.diagnostic, "horizon_exceeded")

    def test_never_returns_a_blocked_day(self) -> None:
        oracle = oracle_for([REPUBLIC_DAY], buffer_hours=48)
        start = date(2025, 10, 20)
        for offset in range(14):
            day = date.fromordinal(start.toordinal() + offset)
            result = oracle.next_available(day)
            self.assertTrue(oracle.check_date(result.date).can_create_requests)
            self.assertGreater(result.date, day)


class TestCheckRange(unittest.TestCase):
    def test_week_totals(self) -> None:
        result = oracle_for([REPUBLIC_DAY]).check_range(date(2025, 10, 27), date(2025, 11, 2))
        self.assertEqual(result.total_days, 7)
        self.assertEqual(result.weekend_days, 2)
        self.assertEqual(result.holiday_days, 1)
        self.assertEqual(result.available_days, 4)
        self.assertEqual(result.unavailable_days, 3)

    def test_rejects_reversed_range(self) -> None:
        with self.assertRaises(CalendarValidationError):
            oracle_for([]).check_range(date(2025, 11, 2), date(2025, 10, 27))

    def test_rejects_oversized_range(self) -> None:
        with self.assertRaises(CalendarValidationError):
            oracle_for([]).check_range(date(2025, 1, 1), date(2026, 1, 1))


class TestBlockingEventsFromDatabase(DatabaseTestCase):
    def test_only_active_completed_blocking_events_count(self) -> None:
        active = make_upload(self.db)
        inactive = make_upload(self.db, is_active=False, name="old.txt")
        failed = make_upload(self.db, status="failed", name="broken.txt")
        make_event(self.db, active, "Cumhuriyet Bayramı", date(2025, 10, 29))
        make_event(self.db, active, "Ders Kayıtları", date(2025, 10, 29), event_type="registration", affects=False)
        make_event(self.db, inactive, "Eski Tatil", date(2025, 10, 29))
        make_event(self.db, failed, "Bozuk Tatil", date(2025, 10, 29))

        events = load_blocking_events(self.db, date(2025, 10, 29), date(2025, 10, 29))
        self.assertEqual([e.event_name for e in events], ["Cumhuriyet Bayramı"])

    def test_for_session_uses_database_events(self) -> None:
        upload = make_upload(self.db)
        make_event(self.db, upload, "Yarıyıl Tatili", date(2025, 12, 19), date(2026, 1, 3))
        snapshot = CalendarSettings(enabled=True, buffer_hours=0, current_academic_year="2025-2026")
        oracle = AvailabilityOracle.for_session(self.db, snapshot)
        self.assertFalse(oracle.check_date(date(2025, 12, 31)).can_create_requests)
        self.assertEqual(oracle.next_available(date(2025, 12, 20)).date, date(2026, 1, 5))


if __name__ == "__main__":
    unittest.main()
