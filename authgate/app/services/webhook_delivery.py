"""
Webhook delivery client.

POSTs one event payload to one webhook URL, signing it when the webhook
has a secret and reshaping it into a Discord embed when the URL is a
Discord webhook. Transient failures are retried with exponential backoff
and jitter.
"""

import asyncio
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse

import httpx

from authgate.app.core.config import settings
from authgate.app.core.reliability import (
    backoff_delay,
    is_retryable_error,
    is_retryable_status,
)
from authgate.app.models.webhook import Webhook

logger = logging.getLogger(__name__)

DISCORD_HOSTS = {"discord.com", "discordapp.com", "ptb.discord.com", "canary.discord.com"}

DISCORD_SUCCESS_COLOR = 0x2ECC71
DISCORD_FAILURE_COLOR = 0xE74C3C
DISCORD_FIELD_LIMIT = 1024


@dataclass(frozen=True)
class WebhookTarget:
    """Delivery-relevant columns of a webhook, detached from any session."""
    id: int
    url: str
    secret: Optional[str] = None

    @classmethod
    def from_model(cls, webhook: Webhook) -> "WebhookTarget":
        return cls(id=webhook.id, url=webhook.url, secret=webhook.secret)


@dataclass
class WebhookPayload:
    """Event notification body sent to webhook endpoints."""
    event: str
    application_id: int
    success: bool = True
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    user_data: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "event": self.event,
            "timestamp": self.timestamp,
            "application_id": self.application_id,
            "success": self.success,
        }
        if self.user_data:
            body["user_data"] = self.user_data
        if self.metadata:
            body["metadata"] = self.metadata
        if self.error_message:
            body["error_message"] = self.error_message
        return body


@dataclass
class DeliveryResult:
    webhook_id: Optional[int]
    delivered: bool
    attempts: int
    status_code: Optional[int] = None
    error: Optional[str] = None


def is_discord_webhook(url: str) -> bool:
    """True for https://discord.com/api/webhooks/... style URLs."""
    parsed = urlparse(url)
    return (parsed.hostname or "").lower() in DISCORD_HOSTS and parsed.path.startswith("/api/webhooks/")


def sign_payload(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw request body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _clip(value: Any) -> str:
    text = str(value)
    if len(text) > DISCORD_FIELD_LIMIT:
        return text[: DISCORD_FIELD_LIMIT - 3] + "..."
    return text


def build_discord_payload(payload: WebhookPayload) -> Dict[str, Any]:
    """Render a payload with Discord's embed schema."""
    fields = [{"name": "Application ID", "value": str(payload.application_id), "inline": True}]

    user = payload.user_data or {}
    for key, label in (("username", "Username"), ("email", "Email"), ("hwid", "HWID"), ("ip_address", "IP Address")):
        if user.get(key):
            fields.append({"name": label, "value": _clip(user[key]), "inline": True})

    if payload.error_message:
        fields.append({"name": "Error", "value": _clip(payload.error_message), "inline": False})

    for key, value in (payload.metadata or {}).items():
        if value is not None:
            fields.append({"name": _clip(key.replace("_", " ").title()), "value": _clip(value), "inline": True})

    title = payload.event.replace("_", " ").title()
    return {
        "username": "AuthGate",
        "embeds": [
            {
                "title": f"{'✅' if payload.success else '❌'} {title}",
                "color": DISCORD_SUCCESS_COLOR if payload.success else DISCORD_FAILURE_COLOR,
                "fields": fields[:25],
                "timestamp": payload.timestamp,
                "footer": {"text": "AuthGate Webhooks"},
            }
        ],
    }


class WebhookDeliveryClient:
    """
    Delivers payloads to webhook URLs with retries.

    A timeout, transport error, 5xx or 429 is retried up to `max_retries`
    more times; any other non-2xx status ends the delivery immediately.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = None,
        max_retries: int = None,
        backoff_base: float = None,
        max_jitter: float = None,
        user_agent: str = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.timeout = settings.webhook_timeout_seconds if timeout is None else timeout
        self.max_retries = settings.webhook_max_retries if max_retries is None else max_retries
        self.backoff_base = settings.webhook_backoff_base_seconds if backoff_base is None else backoff_base
        self.max_jitter = settings.webhook_max_jitter_seconds if max_jitter is None else max_jitter
        self.user_agent = user_agent or settings.webhook_user_agent
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _prepare(self, webhook: WebhookTarget, payload: WebhookPayload) -> tuple[bytes, Dict[str, str]]:
        if is_discord_webhook(webhook.url):
            body = json.dumps(build_discord_payload(payload)).encode("utf-8")
            return body, {"Content-Type": "application/json"}

        body = json.dumps(payload.to_dict(), separators=(",", ":"), default=str).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            "X-Webhook-Event": payload.event,
            "X-Webhook-Timestamp": payload.timestamp,
        }
        if webhook.secret:
            headers["X-Webhook-Signature"] = f"sha256={sign_payload(body, webhook.secret)}"
        return body, headers

    async def deliver(self, webhook: WebhookTarget, payload: WebhookPayload) -> DeliveryResult:
        """
        Deliver `payload` to `webhook`, retrying transient failures.

        Returns:
            DeliveryResult describing the final attempt
        """
        body, headers = self._prepare(webhook, payload)
        discord = is_discord_webhook(webhook.url)
        last_status: Optional[int] = None
        last_error: Optional[str] = None

        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = backoff_delay(attempt - 1, self.backoff_base, self.max_jitter)
                logger.info(
                    "Retrying webhook %s in %.2fs (attempt %d/%d): %s",
                    webhook.id, delay, attempt + 1, self.max_retries + 1, last_error,
                )
                await self._sleep(delay)

            if not discord:
                headers["X-Webhook-Retry"] = str(attempt)

            try:
                response = await self._client.post(webhook.url, content=body, headers=headers, timeout=self.timeout)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                last_status = None
                last_error = f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
                if is_retryable_error(exc):
                    continue
                logger.warning("Webhook %s failed permanently: %s", webhook.id, last_error)
                return DeliveryResult(webhook.id, False, attempt + 1, None, last_error)

            last_status = response.status_code
            if response.is_success:
                return DeliveryResult(webhook.id, True, attempt + 1, last_status)

            last_error = f"Webhook returned {response.status_code}"
            if not is_retryable_status(response.status_code):
                logger.warning("Webhook %s rejected delivery with %d", webhook.id, response.status_code)
                return DeliveryResult(webhook.id, False, attempt + 1, last_status, last_error)

        logger.error(
            "Webhook %s delivery exhausted after %d attempts: %s",
            webhook.id, self.max_retries + 1, last_error,
        )
        return DeliveryResult(webhook.id, False, self.max_retries + 1, last_status, last_error)
