"""
Webhook Database Model.

An owner-configured HTTP endpoint subscribed to a set of event names.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, Enum
from sqlalchemy.sql import func
from authgate.app.db.session import Base
from authgate.app.models.enums import DeliveryStatus


class Webhook(Base):
    """
    Webhook subscription.

    Delivers only while active and only for events in `events`.
    """
    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)

    url = Column(String(2048), nullable=False)
    secret = Column(String(255), nullable=True)
    events = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    # Delivery bookkeeping
    last_delivery_at = Column(DateTime(timezone=True), nullable=True)
    last_delivery_status = Column(Enum(DeliveryStatus), nullable=True)
    failure_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def has_secret(self) -> bool:
        return bool(self.secret)

    def subscribes_to(self, event: str) -> bool:
        return self.is_active and event in (self.events or [])

    def __repr__(self):
        return f"<Webhook(id={self.id}, owner={self.owner_id}, url='{self.url}')>"
