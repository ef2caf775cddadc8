import unittest

from pydantic import ValidationError

from calendar_app.core.errors import CalendarValidationError
from calendar_app.models import AcademicSetting
from calendar_app.schemas.settings import SettingsUpdateRequest
from calendar_app.services.calendar_settings import get_settings, update_settings
from support import DatabaseTestCase, make_admin


class TestSettingsState(DatabaseTestCase):
    def test_defaults_when_nothing_stored(self) -> None:
        snapshot = get_settings(self.db)
        self.assertFalse(snapshot.enabled)
        self.assertEqual(snapshot.buffer_hours, 24)
        self.assertEqual(snapshot.current_academic_year, "2025-2026")

    def test_partial_update_keeps_other_keys(self) -> None:
        admin = make_admin(self.db)
        update_settings(self.db, SettingsUpdateRequest(holiday_buffer_hours=48), admin.id)
        snapshot = update_settings(self.db, SettingsUpdateRequest(academic_calendar_enabled=True), admin.id)
        self.assertTrue(snapshot.enabled)
        self.assertEqual(snapshot.buffer_hours, 48)
        self.assertEqual(snapshot.current_academic_year, "2025-2026")

        row = self.db.get(AcademicSetting, "holiday_buffer_hours")
        self.assertEqual(row.setting_value, "48")
        self.assertEqual(row.updated_by, admin.id)
        self.assertIsNotNone(row.updated_at)
        self.assertEqual(self.db.get(AcademicSetting, "academic_calendar_enabled").setting_value, "true")

    def test_empty_update_is_rejected(self) -> None:
        with self.assertRaises(CalendarValidationError):
            update_settings(self.db, SettingsUpdateRequest(), None)
        self.assertEqual(self.db.query(AcademicSetting).count(), 0)

    def test_malformed_stored_values_fall_back(self) -> None:
        self.db.add(AcademicSetting(setting_key="holiday_buffer_hours", setting_value="lots"))
        self.db.add(AcademicSetting(setting_key="current_academic_year", setting_value="2025/26"))
        self.db.commit()
        snapshot = get_settings(self.db)
        self.assertEqual(snapshot.buffer_hours, 24)
        self.assertEqual(snapshot.current_academic_year, "2025-2026")


class TestSettingsUpdateRequest(unittest.TestCase):
    def test_buffer_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            SettingsUpdateRequest(holiday_buffer_hours=169)
        with self.assertRaises(ValidationError):
            SettingsUpdateRequest(holiday_buffer_hours=-1)
        self.assertEqual(SettingsUpdateRequest(holiday_buffer_hours=168).holiday_buffer_hours, 168)

    def test_academic_year_rule(self) -> None:
        with self.assertRaises(ValidationError):
            SettingsUpdateRequest(current_academic_year="2025-2027")
        with self.assertRaises(ValidationError):
            SettingsUpdateRequest(current_academic_year="25-26")
        self.assertEqual(
            SettingsUpdateRequest(current_academic_year="2026-2027").current_academic_year,
            "2026-2027",
        )


if __name__ == "__main__":
    unittest.main()
