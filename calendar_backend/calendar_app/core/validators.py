import re

from calendar_app.core.errors import CalendarValidationError

_ACADEMIC_YEAR_RE = re.compile(r"^\d{4}-\d{4}$")


def parse_academic_year(value: str | None, field: str = "academic_year") -> tuple[int, int]:
    """Split "2025-2026" into (2025, 2026), rejecting malformed or gapped spans."""
    if not value:
        raise CalendarValidationError(field, 'Academic year is required (e.g., "2025-2026")')
    if not _ACADEMIC_YEAR_RE.match(value):
        raise CalendarValidationError(
            field, 'Invalid academic year format. Use format: "2025-2026"'
        )
    start_year, end_year = (int(part) for part in value.split("-"))
    if end_year != start_year + 1:
        raise CalendarValidationError(
            field, "Academic year end must be exactly one year after start year"
        )
    return start_year, end_year
