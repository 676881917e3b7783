"""
Webhook management schemas.
"""

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator
from datetime import datetime
from typing import Optional, List
from authgate.app.models.enums import ActivityEvent, DeliveryStatus


class WebhookCreate(BaseModel):
    url: HttpUrl
    secret: Optional[str] = Field(None, max_length=255, description="Shared secret for X-Webhook-Signature")
    events: List[ActivityEvent] = Field(..., min_length=1)
    is_active: bool = True

    @field_validator("events")
    @classmethod
    def dedupe_events(cls, events):
        return list(dict.fromkeys(events))


class WebhookUpdate(BaseModel):
    url: Optional[HttpUrl] = None
    secret: Optional[str] = Field(None, max_length=255)
    events: Optional[List[ActivityEvent]] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class WebhookResponse(BaseModel):
    """Webhook as shown to its owner; the secret is reported only as present/absent."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    url: str
    has_secret: bool
    events: List[str]
    is_active: bool
    last_delivery_at: Optional[datetime] = None
    last_delivery_status: Optional[DeliveryStatus] = None
    failure_count: int
    created_at: datetime
    updated_at: datetime


class WebhookListResponse(BaseModel):
    webhooks: List[WebhookResponse]
    total: int


class WebhookTestRequest(BaseModel):
    event: ActivityEvent = ActivityEvent.USER_LOGIN


class WebhookTestResponse(BaseModel):
    success: bool
    message: str
    attempts: int
    status_code: Optional[int] = None
