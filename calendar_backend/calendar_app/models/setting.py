from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from calendar_app.models.base import Base


class AcademicSetting(Base):
    __tablename__ = "academic_settings"

    setting_key = Column(String, primary_key=True)
    setting_value = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    updated_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
