# telebridge/models/kv_entry.py
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from telebridge.models.base import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    namespace = Column(String(64), primary_key=True)
    key = Column(String(255), primary_key=True)

    # JSON-encoded payload
    value = Column(Text, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
