"""
Dead Letter Queue (DLQ) Model.

Keeps webhook deliveries that exhausted their retries so operators can
inspect or replay them.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Enum
from sqlalchemy.sql import func
from authgate.app.db.session import Base
import enum


class DLQStatus(str, enum.Enum):
    FAILED = "FAILED"
    REPLAYED = "REPLAYED"
    ARCHIVED = "ARCHIVED"


class DeadLetterQueue(Base):
    """Failed webhook delivery, one row per exhausted webhook."""
    __tablename__ = "dead_letter_queue"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    task_name = Column(String(100), nullable=False, index=True)
    webhook_id = Column(Integer, nullable=True, index=True)
    event = Column(String(100), nullable=True)

    error_message = Column(Text, nullable=False)
    last_status_code = Column(Integer, nullable=True)
    payload = Column(JSON, nullable=True)

    status = Column(Enum(DLQStatus), default=DLQStatus.FAILED, nullable=False, index=True)
    retry_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<DLQ(id={self.id}, webhook={self.webhook_id}, event='{self.event}', status='{self.status}')>"
