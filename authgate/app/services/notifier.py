"""
Activity and webhook notifier.

`ActivityNotifier.log_and_notify` writes the activity log row inline and
hands webhook delivery to `WebhookDispatcher`, whose background worker
delivers after the client response has been sent.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authgate.app.core.config import settings
from authgate.app.models.app_user import AppUser
from authgate.app.models.application import Application
from authgate.app.models.dlq import DeadLetterQueue, DLQStatus
from authgate.app.models.enums import ActivityEvent, DeliveryStatus
from authgate.app.models.webhook import Webhook
from authgate.app.services.activity import log_activity
from authgate.app.services.webhook_delivery import (
    DeliveryResult,
    WebhookDeliveryClient,
    WebhookPayload,
    WebhookTarget,
)

logger = logging.getLogger(__name__)

DELIVERY_TASK_NAME = "webhook_delivery"


@dataclass
class DeliveryJob:
    owner_id: int
    payload: WebhookPayload


async def get_subscribed_webhooks(db: AsyncSession, owner_id: int, event: str) -> List[Webhook]:
    """Active webhooks of `owner_id` subscribed to `event`, oldest first."""
    result = await db.execute(
        select(Webhook)
        .where(Webhook.owner_id == owner_id, Webhook.is_active == True)
        .order_by(Webhook.id)
    )
    return [webhook for webhook in result.scalars().all() if webhook.subscribes_to(event)]


async def record_delivery(db: AsyncSession, webhook_id: int, result: DeliveryResult, payload: WebhookPayload) -> None:
    """
    Store the outcome on the webhook row; failed deliveries also go to the DLQ.

    The row is loaded by id so a rollback left by an earlier delivery in the
    same session does not matter. Bookkeeping errors are logged and dropped.
    """
    try:
        webhook = await db.get(Webhook, webhook_id)
        if webhook is None:
            logger.warning("Webhook %s disappeared before its delivery was recorded", webhook_id)
            return
        webhook.last_delivery_at = datetime.now(timezone.utc)
        if result.delivered:
            webhook.last_delivery_status = DeliveryStatus.DELIVERED
        else:
            webhook.last_delivery_status = DeliveryStatus.FAILED
            webhook.failure_count = (webhook.failure_count or 0) + 1
            db.add(DeadLetterQueue(
                task_name=DELIVERY_TASK_NAME,
                webhook_id=webhook_id,
                event=payload.event,
                error_message=result.error or "Delivery failed",
                last_status_code=result.status_code,
                payload=payload.to_dict(),
                status=DLQStatus.FAILED,
                retry_count=max(result.attempts - 1, 0),
            ))
        await db.commit()
    except Exception:
        logger.exception("Failed to record delivery outcome for webhook %s", webhook_id)
        await db.rollback()


class WebhookDispatcher:
    """
    Background webhook delivery queue.

    Jobs are delivered one at a time; within a job, webhooks are delivered
    sequentially with a short pause between them so a burst of events does
    not exhaust the outbound connection pool.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        delivery_client: Optional[WebhookDeliveryClient] = None,
        inter_delivery_delay: float = None,
        queue_size: int = None,
    ) -> None:
        self._session_factory = session_factory
        self.delivery_client = delivery_client or WebhookDeliveryClient()
        self.inter_delivery_delay = (
            settings.webhook_inter_delivery_delay_seconds if inter_delivery_delay is None else inter_delivery_delay
        )
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size or settings.webhook_queue_size)
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if not self.running:
            self._worker = asyncio.create_task(self._run(), name="webhook-dispatcher")
            logger.info("Webhook dispatcher started")

    async def stop(self, drain_timeout: float = 10.0) -> None:
        """Deliver what is queued (bounded by `drain_timeout`), then stop the worker."""
        pending = self._queue.join() if self.running else self.drain()
        try:
            await asyncio.wait_for(pending, timeout=drain_timeout)
        except asyncio.TimeoutError:
            logger.warning("Webhook dispatcher stopped with %d jobs pending", self._queue.qsize())
        if self.running:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        await self.delivery_client.aclose()
        logger.info("Webhook dispatcher stopped")

    def enqueue(self, job: DeliveryJob) -> bool:
        """
        Hand a job to the worker without waiting for delivery.

        Returns:
            False if the queue is full and the job was dropped
        """
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.error("Webhook queue full, dropping '%s' event for owner %s", job.payload.event, job.owner_id)
            return False
        return True

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def drain(self) -> List[DeliveryResult]:
        """Deliver every queued job in the calling task, without the worker."""
        results: List[DeliveryResult] = []
        while not self._queue.empty():
            job = self._queue.get_nowait()
            try:
                results.extend(await self.dispatch(job))
            finally:
                self._queue.task_done()
        return results

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.dispatch(job)
            except Exception:
                logger.exception("Webhook dispatch failed for '%s' event", job.payload.event)
            finally:
                self._queue.task_done()

    async def dispatch(self, job: DeliveryJob) -> List[DeliveryResult]:
        """Deliver one job to every matching webhook. Safe to call directly."""
        results: List[DeliveryResult] = []
        async with self._session_factory() as db:
            webhooks = await get_subscribed_webhooks(db, job.owner_id, job.payload.event)
            targets = [WebhookTarget.from_model(webhook) for webhook in webhooks]
            for index, target in enumerate(targets):
                if index and self.inter_delivery_delay:
                    await asyncio.sleep(self.inter_delivery_delay)
                try:
                    result = await self.delivery_client.deliver(target, job.payload)
                except Exception as exc:
                    logger.exception("Unexpected error delivering to webhook %s", target.id)
                    result = DeliveryResult(target.id, False, 1, error=str(exc))
                await record_delivery(db, target.id, result, job.payload)
                results.append(result)
        return results


def build_user_data(
    user: Optional[AppUser],
    hwid: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    data = {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "hwid": user.hwid or hwid,
        "ip_address": ip_address,
        "user_agent": user_agent,
    }
    return {key: value for key, value in data.items() if value is not None}


class ActivityNotifier:
    """Writes the audit row and schedules webhook notifications for one event."""

    def __init__(self, dispatcher: WebhookDispatcher) -> None:
        self.dispatcher = dispatcher

    async def log_and_notify(
        self,
        db: AsyncSession,
        application: Application,
        event: ActivityEvent,
        user: Optional[AppUser] = None,
        success: bool = True,
        error_message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        hwid: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Record `event` and schedule its webhook deliveries.

        Never raises because of logging or queueing problems; the caller's
        decision is already made.
        """
        # Capture before the commit inside log_activity can expire anything
        application_id = application.id
        owner_id = application.owner_id
        user_data = build_user_data(user, hwid, ip_address, user_agent)

        await log_activity(
            db,
            application_id=application_id,
            event=event.value,
            app_user_id=user.id if user is not None else None,
            success=success,
            error_message=error_message,
            ip_address=ip_address,
            hwid=hwid,
            user_agent=user_agent,
            metadata=metadata,
        )

        payload = WebhookPayload(
            event=event.value,
            application_id=application_id,
            success=success,
            user_data=user_data,
            metadata=metadata,
            error_message=error_message,
        )
        self.dispatcher.enqueue(DeliveryJob(owner_id=owner_id, payload=payload))
