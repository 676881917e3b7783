"""
Blacklist Entry Database Model.

A block rule keyed by (type, value), either scoped to one application or
global (application_id is NULL).
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Index
from sqlalchemy.sql import func
from authgate.app.db.session import Base
from authgate.app.models.enums import BlacklistType


class BlacklistEntry(Base):
    """Blacklist rule. No expiry; active until deactivated or deleted."""
    __tablename__ = "blacklist_entries"
    __table_args__ = (
        Index("ix_blacklist_entries_type_value", "type", "value"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)
    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=True, index=True)

    type = Column(Enum(BlacklistType), nullable=False)
    value = Column(String(255), nullable=False)
    reason = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def is_global(self) -> bool:
        return self.application_id is None

    def __repr__(self):
        return f"<BlacklistEntry(id={self.id}, type='{self.type}', value='{self.value}', app={self.application_id})>"
