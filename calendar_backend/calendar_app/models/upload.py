from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from calendar_app.models.base import Base


class CalendarUpload(Base):
    __tablename__ = "academic_calendar_uploads"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    file_size = Column(Integer, default=0)
    academic_year = Column(String(9), nullable=False, index=True)
    uploaded_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow)
    processing_status = Column(String, default="pending")  # pending/processing/completed/failed
    processing_notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=False, index=True)

    events = relationship(
        "CalendarEvent",
        back_populates="upload",
        cascade="all, delete-orphan",
    )
    logs = relationship(
        "ParsingLog",
        back_populates="upload",
        cascade="all, delete-orphan",
        order_by="ParsingLog.id",
    )
