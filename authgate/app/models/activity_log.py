"""
Activity Log Database Model.

Append-only audit trail of authorization-relevant events.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func
from authgate.app.db.session import Base


class ActivityLog(Base):
    """
    Activity log model.

    Events logged (see ActivityEvent):
    - user_login / login_failed
    - login_blocked_ip / login_blocked_username / login_blocked_hwid
    - login_version_mismatch
    - account_disabled / account_paused / account_expired
    - hwid_mismatch / hwid_required
    - user_register / register_blocked
    """
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    app_user_id = Column(Integer, index=True, nullable=True)

    event = Column(String(100), nullable=False, index=True)
    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text, nullable=True)

    # Request context
    ip_address = Column(String(64), nullable=True)
    hwid = Column(String(255), nullable=True)
    user_agent = Column(String(512), nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, app={self.application_id}, event='{self.event}', success={self.success})>"
