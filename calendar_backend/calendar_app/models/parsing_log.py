from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from calendar_app.models.base import Base


class ParsingLog(Base):
    __tablename__ = "document_parsing_logs"

    id = Column(Integer, primary_key=True, index=True)
    upload_id = Column(
        Integer,
        ForeignKey("academic_calendar_uploads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stage = Column(String, nullable=False)  # upload/text_extraction/date_parsing/event_creation/completed
    status = Column(String, nullable=False)  # started/completed/failed
    message = Column(Text, nullable=True)
    error_details = Column(Text, nullable=True)
    data_extracted = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    upload = relationship("CalendarUpload", back_populates="logs")
