"""
Application database model.

An application is a tenant's product. Its API key is the only credential
accepted by the client API.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from authgate.app.db.session import Base


DEFAULT_LOGIN_SUCCESS_MESSAGE = "Login successful!"
DEFAULT_LOGIN_FAILED_MESSAGE = "Invalid credentials!"
DEFAULT_ACCOUNT_DISABLED_MESSAGE = "Account is disabled!"
DEFAULT_ACCOUNT_EXPIRED_MESSAGE = "Account has expired!"
DEFAULT_VERSION_MISMATCH_MESSAGE = "Please update to the latest version!"
DEFAULT_HWID_MISMATCH_MESSAGE = "Hardware ID mismatch detected!"


class Application(Base):
    """
    Application model.

    Holds the client-facing configuration consulted by the login pipeline:
    - required client version
    - HWID lock switch
    - six customizable response messages
    """
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    api_key = Column(String(100), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Client policy
    version = Column(String(50), nullable=True)
    hwid_lock_enabled = Column(Boolean, default=False, nullable=False)

    # Customizable messages
    login_success_message = Column(String(255), default=DEFAULT_LOGIN_SUCCESS_MESSAGE, nullable=False)
    login_failed_message = Column(String(255), default=DEFAULT_LOGIN_FAILED_MESSAGE, nullable=False)
    account_disabled_message = Column(String(255), default=DEFAULT_ACCOUNT_DISABLED_MESSAGE, nullable=False)
    account_expired_message = Column(String(255), default=DEFAULT_ACCOUNT_EXPIRED_MESSAGE, nullable=False)
    version_mismatch_message = Column(String(255), default=DEFAULT_VERSION_MISMATCH_MESSAGE, nullable=False)
    hwid_mismatch_message = Column(String(255), default=DEFAULT_HWID_MISMATCH_MESSAGE, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Application(id={self.id}, name='{self.name}', owner={self.owner_id}, active={self.is_active})>"
