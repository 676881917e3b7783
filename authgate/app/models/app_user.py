"""
AppUser database model.

End-user account scoped to exactly one application.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from authgate.app.db.session import Base


class AppUser(Base):
    """
    End-user account.

    Constraints:
    - (application_id, username) is unique
    - (application_id, email) is unique; NULL emails never collide
    - hwid stays NULL until the first HWID-locked login and only changes
      through an owner reset
    """
    __tablename__ = "app_users"
    __table_args__ = (
        UniqueConstraint("application_id", "username", name="uq_app_users_application_username"),
        UniqueConstraint("application_id", "email", name="uq_app_users_application_email"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)

    username = Column(String(100), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)

    hwid = Column(String(255), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    is_paused = Column(Boolean, default=False, nullable=False)

    # Advisory counters, last-write-wins under concurrency
    login_attempts = Column(Integer, default=0, nullable=False)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<AppUser(id={self.id}, app={self.application_id}, username='{self.username}', hwid={self.hwid!r})>"
