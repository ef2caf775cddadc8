import unittest
from datetime import date, datetime, timedelta, timezone
from unittest import mock

from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient

from calendar_app.core.database import SessionLocal
from calendar_app.core.security import create_access_token
from calendar_app.models import AdminUser
from calendar_app.schemas.settings import CalendarSettings
from calendar_app.services.oracle import AvailabilityOracle, BlockingEvent, calendar_today
from calendar_app.services.request_gate import assert_request_window, require_request_window
from support import enable_calendar, make_admin, make_event, make_upload, reset_database

gate_app = FastAPI()


@gate_app.post("/requests", dependencies=[Depends(require_request_window)])
def create_request():
    return {"created": True}


BAYRAM = BlockingEvent(
    event_id=7,
    event_name="Kurban Bayramı",
    event_type="holiday",
    start_date=date(2026, 5, 26),
    end_date=date(2026, 5, 29),
)


def enabled_oracle(events):
    snapshot = CalendarSettings(enabled=True, buffer_hours=0, current_academic_year="2025-2026")
    return AvailabilityOracle(snapshot, lambda lo, hi: list(events))


class TestAssertRequestWindow(unittest.TestCase):
    def test_open_day_passes(self) -> None:
        check = assert_request_window(enabled_oracle([BAYRAM]), date(2026, 5, 25))
        self.assertTrue(check.can_create_requests)

    def test_holiday_is_locked_with_next_open_day(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            assert_request_window(enabled_oracle([BAYRAM]), date(2026, 5, 27))
        self.assertEqual(ctx.exception.status_code, 423)
        detail = ctx.exception.detail
        self.assertEqual(detail["blocking_events"], ["Kurban Bayramı"])
        self.assertEqual(detail["next_available_date"], "2026-06-01")
        self.assertIn("Kurban Bayramı", detail["message"])

    def test_weekend_is_locked(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            assert_request_window(enabled_oracle([]), date(2026, 5, 30))
        self.assertEqual(ctx.exception.detail["message"], "Requests cannot be created on weekends")


class TestRequireRequestWindow(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        today = calendar_today()
        with SessionLocal() as db:
            make_admin(db, "viewer", "viewer-pw", super_admin=False)
            upload = make_upload(db)
            make_event(db, upload, "Uzun Tatil", today - timedelta(days=1), today + timedelta(days=400))
            enable_calendar(db)
        self.client = TestClient(gate_app)

    def test_students_are_locked_out(self) -> None:
        resp = self.client.post("/requests")
        self.assertEqual(resp.status_code, 423)
        self.assertIsNone(resp.json()["detail"]["next_available_date"])

    def test_admins_bypass_the_gate(self) -> None:
        with SessionLocal() as db:
            admin_id = db.query(AdminUser.id).filter(AdminUser.username == "viewer").scalar()
        resp = self.client.post("/requests", headers={"Authorization": f"Bearer {create_access_token(admin_id, 'viewer')}"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"created": True})


LATE_EVENING_UTC = datetime(2025, 10, 28, 22, 30, tzinfo=timezone.utc)


class TestCampusClock(unittest.TestCase):
    def test_today_follows_campus_timezone(self) -> None:
        # 22:30 UTC is already past midnight in Istanbul
        self.assertEqual(calendar_today(LATE_EVENING_UTC), date(2025, 10, 29))
        self.assertEqual(calendar_today(datetime(2025, 10, 28, 20, 59, tzinfo=timezone.utc)), date(2025, 10, 28))

    def test_gate_uses_campus_date(self) -> None:
        reset_database()
        with SessionLocal() as db:
            upload = make_upload(db)
            make_event(db, upload, "Cumhuriyet Bayramı", date(2025, 10, 29))
            enable_calendar(db)
        client = TestClient(gate_app)
        with mock.patch(
            "calendar_app.services.request_gate.calendar_today",
            return_value=calendar_today(LATE_EVENING_UTC),
        ):
            resp = client.post("/requests")
        self.assertEqual(resp.status_code, 423)
        self.assertEqual(resp.json()["detail"]["blocking_events"], ["Cumhuriyet Bayramı"])
        self.assertEqual(resp.json()["detail"]["next_available_date"], "2025-10-30")


if __name__ == "__main__":
    unittest.main()
