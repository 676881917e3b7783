"""
Blacklist management schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List
from authgate.app.models.enums import BlacklistType


class BlacklistEntryCreate(BaseModel):
    type: BlacklistType
    value: str = Field(..., min_length=1, max_length=255)
    application_id: Optional[int] = Field(None, description="Omit for a rule covering all of your applications")
    reason: Optional[str] = Field(None, max_length=255)


class BlacklistEntryUpdate(BaseModel):
    is_active: Optional[bool] = None
    reason: Optional[str] = Field(None, max_length=255)


class BlacklistEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    application_id: Optional[int] = None
    type: BlacklistType
    value: str
    reason: Optional[str] = None
    is_active: bool
    created_at: datetime


class BlacklistListResponse(BaseModel):
    entries: List[BlacklistEntryResponse]
    total: int
