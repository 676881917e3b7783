"""
AppUser management schemas (owner dashboard).
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional, List


class AppUserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=6, max_length=128)
    expires_at: Optional[datetime] = None
    hwid: Optional[str] = Field(None, max_length=255)


class AppUserUpdate(BaseModel):
    """Partial update. HWID changes go through reset-hwid, not here."""
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    expires_at: Optional[datetime] = None
    is_active: Optional[bool] = None


class AppUserResponse(BaseModel):
    """AppUser as shown to its owner; the password hash is never included."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: int
    username: str
    email: Optional[str] = None
    hwid: Optional[str] = None
    expires_at: Optional[datetime] = None
    is_active: bool
    is_paused: bool
    login_attempts: int
    last_attempt_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime


class AppUserListResponse(BaseModel):
    users: List[AppUserResponse]
    total: int
    page: int
    page_size: int
