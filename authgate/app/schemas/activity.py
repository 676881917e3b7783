"""
Activity log schemas.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List


class ActivityLogResponse(BaseModel):
    """Schema for activity log entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: int
    app_user_id: Optional[int] = None
    event: str
    success: bool
    error_message: Optional[str] = None
    ip_address: Optional[str] = None
    hwid: Optional[str] = None
    user_agent: Optional[str] = None
    meta_data: Optional[dict] = None
    created_at: datetime


class ActivityLogListResponse(BaseModel):
    """Schema for activity log list."""
    logs: List[ActivityLogResponse]
    total: int
