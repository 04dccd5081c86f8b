"""SQLAlchemy ORM models."""
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from .base import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    namespace = Column(String(50), primary_key=True)
    key = Column(String(200), primary_key=True)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
