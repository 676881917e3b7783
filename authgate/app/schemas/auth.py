"""
Owner authentication Pydantic schemas.

Defines request and response schemas for owner register/login endpoints.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime


class OwnerRegister(BaseModel):
    """
    Schema for owner registration.

    Used by POST /api/v1/auth/register endpoint.
    """
    email: EmailStr = Field(..., description="Owner email address")
    username: str = Field(..., min_length=3, max_length=50, description="Unique username")
    password: str = Field(..., min_length=8, max_length=128, description="Password (min 8 characters)")


class OwnerLogin(BaseModel):
    """
    Schema for owner login.

    Supports login with either username or email.
    """
    username: str = Field(..., description="Username or email")
    password: str = Field(..., description="Password")


class TokenResponse(BaseModel):
    """
    Schema for JWT token response.

    Returned by successful owner login/register operations.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    owner_id: int = Field(..., description="Owner ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")


class OwnerResponse(BaseModel):
    """
    Schema for owner information response.

    Used by GET /api/v1/auth/me endpoint.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
