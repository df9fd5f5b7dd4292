from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from .database import Base


class Setting(Base):
    """Durable key/value pairs. Goal figures live here as display strings."""

    __tablename__ = "settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
