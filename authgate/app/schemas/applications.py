"""
Application management schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List


class ApplicationCreate(BaseModel):
    """Schema for creating an application. Message templates start at product defaults."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    version: Optional[str] = Field(None, max_length=50, description="Required client version")
    hwid_lock_enabled: bool = False


class ApplicationUpdate(BaseModel):
    """Schema for partial application updates. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    is_active: Optional[bool] = None
    version: Optional[str] = Field(None, max_length=50)
    hwid_lock_enabled: Optional[bool] = None
    login_success_message: Optional[str] = Field(None, min_length=1, max_length=255)
    login_failed_message: Optional[str] = Field(None, min_length=1, max_length=255)
    account_disabled_message: Optional[str] = Field(None, min_length=1, max_length=255)
    account_expired_message: Optional[str] = Field(None, min_length=1, max_length=255)
    version_mismatch_message: Optional[str] = Field(None, min_length=1, max_length=255)
    hwid_mismatch_message: Optional[str] = Field(None, min_length=1, max_length=255)


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    description: Optional[str] = None
    api_key: str
    is_active: bool
    version: Optional[str] = None
    hwid_lock_enabled: bool
    login_success_message: str
    login_failed_message: str
    account_disabled_message: str
    account_expired_message: str
    version_mismatch_message: str
    hwid_mismatch_message: str
    created_at: datetime
    updated_at: datetime


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    total: int
