from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from calendar_app.models.base import Base


class CalendarEvent(Base):
    __tablename__ = "academic_calendar_events"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_calendar_event_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    upload_id = Column(
        Integer,
        ForeignKey("academic_calendar_uploads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_type = Column(String, nullable=False)
    event_name = Column(String, nullable=False)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    is_recurring = Column(Boolean, default=False)
    recurring_type = Column(String, default="none")
    affects_request_creation = Column(Boolean, default=False)
    description = Column(Text, nullable=True)
    priority_level = Column(String, default="medium")
    source_line = Column(Text, nullable=True)
    extraction_method = Column(String, nullable=True)

    upload = relationship("CalendarUpload", back_populates="events")
