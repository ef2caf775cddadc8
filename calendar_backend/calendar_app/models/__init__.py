from calendar_app.models.admin import AdminUser
from calendar_app.models.event import CalendarEvent
from calendar_app.models.parsing_log import ParsingLog
from calendar_app.models.setting import AcademicSetting
from calendar_app.models.upload import CalendarUpload

__all__ = [
    "AcademicSetting",
    "AdminUser",
    "CalendarEvent",
    "CalendarUpload",
    "ParsingLog",
]
