"""
Webhook management endpoints.

Owners register HTTP endpoints for activity events and can fire a test
delivery on demand.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from authgate.app.db.session import get_db
from authgate.app.models.webhook import Webhook
from authgate.app.schemas.webhooks import (
    WebhookCreate,
    WebhookUpdate,
    WebhookResponse,
    WebhookListResponse,
    WebhookTestRequest,
    WebhookTestResponse,
)
from authgate.app.core.dependencies import get_current_owner
from authgate.app.core.guards import OwnershipGuard
from authgate.app.services.notifier import record_delivery
from authgate.app.services.webhook_delivery import WebhookPayload, WebhookTarget

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
ownership_guard = OwnershipGuard()


@router.get("", response_model=WebhookListResponse)
async def list_webhooks(
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    owner_id = current_owner["owner_id"]

    total_result = await db.execute(select(func.count(Webhook.id)).where(Webhook.owner_id == owner_id))
    total = total_result.scalar()

    result = await db.execute(
        select(Webhook).where(Webhook.owner_id == owner_id).order_by(Webhook.id)
    )
    webhooks = result.scalars().all()

    return WebhookListResponse(
        webhooks=[WebhookResponse.model_validate(w) for w in webhooks],
        total=total
    )


@router.post("", response_model=WebhookResponse, status_code=status.HTTP_201_CREATED)
async def create_webhook(
    webhook_data: WebhookCreate,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a webhook for a set of events.
    """
    webhook = Webhook(
        owner_id=current_owner["owner_id"],
        url=str(webhook_data.url),
        secret=webhook_data.secret or None,
        events=[event.value for event in webhook_data.events],
        is_active=webhook_data.is_active,
        failure_count=0
    )
    db.add(webhook)
    await db.commit()
    await db.refresh(webhook)

    return WebhookResponse.model_validate(webhook)


@router.get("/{webhook_id}", response_model=WebhookResponse)
async def get_webhook(
    webhook_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    webhook = ownership_guard.enforce(await db.get(Webhook, webhook_id), current_owner, "Webhook", webhook_id)
    return WebhookResponse.model_validate(webhook)


@router.patch("/{webhook_id}", response_model=WebhookResponse)
async def update_webhook(
    webhook_id: int,
    webhook_data: WebhookUpdate,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a webhook. Sending an empty `secret` removes it.
    """
    webhook = ownership_guard.enforce(await db.get(Webhook, webhook_id), current_owner, "Webhook", webhook_id)
    changes = webhook_data.model_dump(exclude_unset=True)

    if changes.get("url") is not None:
        webhook.url = str(webhook_data.url)
    if "secret" in changes:
        webhook.secret = changes["secret"] or None
    if changes.get("events") is not None:
        webhook.events = list(dict.fromkeys(event.value for event in webhook_data.events))
    if changes.get("is_active") is not None:
        webhook.is_active = changes["is_active"]

    await db.commit()
    await db.refresh(webhook)

    return WebhookResponse.model_validate(webhook)


@router.delete("/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_webhook(
    webhook_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    webhook = ownership_guard.enforce(await db.get(Webhook, webhook_id), current_owner, "Webhook", webhook_id)
    await db.delete(webhook)
    await db.commit()


@router.post("/{webhook_id}/test", response_model=WebhookTestResponse)
async def send_test_webhook(
    webhook_id: int,
    request: Request,
    test_data: WebhookTestRequest = None,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Deliver a sample event to the webhook and wait for the result.

    The outcome is recorded like any other delivery.
    """
    webhook = ownership_guard.enforce(await db.get(Webhook, webhook_id), current_owner, "Webhook", webhook_id)
    event = (test_data or WebhookTestRequest()).event

    payload = WebhookPayload(
        event=event.value,
        application_id=0,
        success=True,
        user_data={"id": 0, "username": "test_user", "email": "test@example.com"},
        metadata={"test": True},
    )
    delivery_client = request.app.state.notifier.dispatcher.delivery_client
    result = await delivery_client.deliver(WebhookTarget.from_model(webhook), payload)
    await record_delivery(db, webhook.id, result, payload)

    if result.delivered:
        message = "Test webhook delivered"
    else:
        message = f"Test webhook failed: {result.error or 'delivery failed'}"

    return WebhookTestResponse(
        success=result.delivered,
        message=message,
        attempts=result.attempts,
        status_code=result.status_code
    )
