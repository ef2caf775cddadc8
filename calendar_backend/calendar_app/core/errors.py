class CalendarError(Exception):
    """Base for failures surfaced to the caller with a stage label."""

    status_code = 400
    stage: str | None = None

    def __init__(self, message: str, *, stage: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"detail": self.message}
        if self.stage:
            body["stage"] = self.stage
        body.update(self.details)
        return body


class CalendarValidationError(CalendarError):
    stage = "validation"

    def __init__(self, field: str, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.details.setdefault("field", field)


class DocumentParseError(CalendarError):
    stage = "text_extraction"


class EventExtractionError(CalendarError):
    stage = "event_extraction"


class CalendarPersistenceError(CalendarError):
    status_code = 500
    stage = "database_save"


class CalendarDependencyError(CalendarError):
    """An external date routine is unreachable or returned garbage.

    Never reaches the HTTP layer: callers turn it into a diagnostic flag.
    """

    status_code = 503
    stage = "dependency"

    def __init__(self, message: str, *, diagnostic: str, **kwargs):
        super().__init__(message, **kwargs)
        self.diagnostic = diagnostic


class UploadNotFoundError(CalendarError):
    status_code = 404
    stage = None
