"""
SQLAlchemy ORM models for local dashboard persistence.

Only user settings are stored locally; orders, menu, and the watermark live
in the spreadsheet.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, JSON, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SettingModel(Base):
    """One settings key and its JSON value."""

    __tablename__ = "app_settings"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<SettingModel(key={self.key}, value={self.value!r})>"
