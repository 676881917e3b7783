"""
Client API Pydantic schemas.

Request and response bodies for the API-key-authenticated register,
login and verify endpoints used by client programs.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field


class ClientRegisterRequest(BaseModel):
    """
    Schema for end-user registration.

    Used by POST /api/v1/register. `expiresAt` and `expires_at` are both accepted.
    """
    username: str = Field(..., min_length=1, max_length=100, description="Username, unique within the application")
    email: Optional[EmailStr] = Field(default=None, description="Optional email, unique within the application")
    password: str = Field(..., min_length=6, max_length=128, description="Password (min 6 characters)")
    expires_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("expiresAt", "expires_at"),
        description="Optional account expiry"
    )
    hwid: Optional[str] = Field(default=None, max_length=255, description="Hardware ID to pre-bind")
    api_key: Optional[str] = Field(default=None, description="API key (alternative to X-API-Key)")


class ClientLoginRequest(BaseModel):
    """
    Schema for end-user login.

    Used by POST /api/v1/login.
    """
    username: str = Field(..., min_length=1, max_length=100, description="Username")
    password: str = Field(..., min_length=1, max_length=128, description="Password")
    version: Optional[str] = Field(default=None, max_length=50, description="Client program version")
    hwid: Optional[str] = Field(default=None, max_length=255, description="Hardware ID of the client machine")
    api_key: Optional[str] = Field(default=None, description="API key (alternative to X-API-Key)")


class ClientVerifyRequest(BaseModel):
    """Schema for POST /api/v1/verify."""
    user_id: int = Field(..., description="AppUser ID returned by login")
    api_key: Optional[str] = Field(default=None, description="API key (alternative to X-API-Key)")


class ClientRegisterResponse(BaseModel):
    success: bool = True
    message: str
    user_id: int


class ClientLoginResponse(BaseModel):
    success: bool = True
    message: str
    user_id: int
    username: str
    email: Optional[str] = None
    expires_at: Optional[datetime] = None
    hwid_locked: bool


class ClientVerifyResponse(BaseModel):
    success: bool = True
    message: str
    user_id: int
    username: str
    email: Optional[str] = None
    expires_at: Optional[datetime] = None


class ClientErrorResponse(BaseModel):
    success: bool = False
    message: str
    required_version: Optional[str] = None
    current_version: Optional[str] = None
