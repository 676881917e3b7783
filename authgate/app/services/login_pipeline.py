"""
Login authorization pipeline.

Decides a client login in a fixed order, stopping at the first failing
check:

     1. API key / application
     2. Blacklist: IP
     3. Blacklist: username
     4. Blacklist: HWID (if supplied)
     5. Client version (if supplied and required)
     6. User lookup
     7. Account active
     8. Account paused
     9. Account expiry
    10. Password (failures bump the attempt counter)
    11. HWID lock (if enabled)
    12. Success

Every terminal outcome except an unknown API key or an unknown username is
written to the activity log and offered to webhooks.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from fastapi import status
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.app.core.security import verify_password_async
from authgate.app.models.app_user import AppUser
from authgate.app.models.application import Application
from authgate.app.models.enums import ActivityEvent, BlacklistType
from authgate.app.services import blacklist, hwid_lock
from authgate.app.services.applications import get_application_by_api_key, get_app_user_by_username
from authgate.app.services.notifier import ActivityNotifier

logger = logging.getLogger(__name__)

INVALID_API_KEY_MESSAGE = "Invalid or inactive API key"
BLACKLISTED_IP_MESSAGE = "Access denied: IP address is blacklisted"
BLACKLISTED_USERNAME_MESSAGE = "Access denied: username is blacklisted"
BLACKLISTED_HWID_MESSAGE = "Access denied: hardware ID is blacklisted"
ACCOUNT_PAUSED_MESSAGE = "Account is paused!"
HWID_REQUIRED_MESSAGE = "Hardware ID is required!"


class RejectionKind(str, enum.Enum):
    INVALID_API_KEY = "invalid_api_key"
    BLACKLISTED_IP = "blacklisted_ip"
    BLACKLISTED_USERNAME = "blacklisted_username"
    BLACKLISTED_HWID = "blacklisted_hwid"
    VERSION_MISMATCH = "version_mismatch"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_DISABLED = "account_disabled"
    ACCOUNT_PAUSED = "account_paused"
    ACCOUNT_EXPIRED = "account_expired"
    HWID_REQUIRED = "hwid_required"
    HWID_MISMATCH = "hwid_mismatch"


REJECTION_STATUS = {
    RejectionKind.INVALID_API_KEY: status.HTTP_401_UNAUTHORIZED,
    RejectionKind.BLACKLISTED_IP: status.HTTP_403_FORBIDDEN,
    RejectionKind.BLACKLISTED_USERNAME: status.HTTP_403_FORBIDDEN,
    RejectionKind.BLACKLISTED_HWID: status.HTTP_403_FORBIDDEN,
    RejectionKind.VERSION_MISMATCH: status.HTTP_400_BAD_REQUEST,
    RejectionKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    RejectionKind.ACCOUNT_DISABLED: status.HTTP_403_FORBIDDEN,
    RejectionKind.ACCOUNT_PAUSED: status.HTTP_403_FORBIDDEN,
    RejectionKind.ACCOUNT_EXPIRED: status.HTTP_403_FORBIDDEN,
    RejectionKind.HWID_REQUIRED: status.HTTP_400_BAD_REQUEST,
    RejectionKind.HWID_MISMATCH: status.HTTP_403_FORBIDDEN,
}


@dataclass(frozen=True)
class LoginAttempt:
    username: str
    password: str
    version: Optional[str] = None
    hwid: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class LoginSuccess:
    user_id: int
    username: str
    email: Optional[str]
    expires_at: Optional[datetime]
    hwid_locked: bool
    message: str

    status_code = status.HTTP_200_OK

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "message": self.message,
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "hwid_locked": self.hwid_locked,
        }


@dataclass(frozen=True)
class LoginRejected:
    kind: RejectionKind
    message: str
    required_version: Optional[str] = None
    current_version: Optional[str] = None

    @property
    def status_code(self) -> int:
        return REJECTION_STATUS[self.kind]

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message}
        if self.kind == RejectionKind.VERSION_MISMATCH:
            body["required_version"] = self.required_version
            body["current_version"] = self.current_version
        return body


LoginOutcome = Union[LoginSuccess, LoginRejected]


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite) as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(user: AppUser, now: Optional[datetime] = None) -> bool:
    expires_at = as_utc(user.expires_at)
    return expires_at is not None and expires_at <= (now or datetime.now(timezone.utc))


class LoginPipeline:
    """
    Runs the ordered login checks for one request.

    Usage:
        pipeline = LoginPipeline(notifier)
        outcome = await pipeline.run(db, api_key, LoginAttempt(...))
    """

    def __init__(self, notifier: ActivityNotifier) -> None:
        self.notifier = notifier

    async def _reject(
        self,
        db: AsyncSession,
        application: Application,
        attempt: LoginAttempt,
        kind: RejectionKind,
        event: ActivityEvent,
        message: str,
        user: Optional[AppUser] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **extra,
    ) -> LoginRejected:
        await self.notifier.log_and_notify(
            db,
            application,
            event,
            user=user,
            success=False,
            error_message=message,
            metadata={"username": attempt.username, **(metadata or {})},
            ip_address=attempt.ip_address,
            hwid=attempt.hwid,
            user_agent=attempt.user_agent,
        )
        return LoginRejected(kind=kind, message=message, **extra)

    async def run(self, db: AsyncSession, api_key: Optional[str], attempt: LoginAttempt) -> LoginOutcome:
        """
        Decide a login attempt.

        Args:
            db: Database session
            api_key: Client API key as presented
            attempt: Credentials and request context

        Returns:
            LoginSuccess or LoginRejected, never both
        """
        # 1. Application
        application = await get_application_by_api_key(db, api_key)
        if application is None:
            return LoginRejected(RejectionKind.INVALID_API_KEY, INVALID_API_KEY_MESSAGE)

        # 2-4. Blacklist, before any per-user work
        blacklist_checks = (
            (BlacklistType.IP, attempt.ip_address, RejectionKind.BLACKLISTED_IP,
             ActivityEvent.LOGIN_BLOCKED_IP, BLACKLISTED_IP_MESSAGE),
            (BlacklistType.USERNAME, attempt.username, RejectionKind.BLACKLISTED_USERNAME,
             ActivityEvent.LOGIN_BLOCKED_USERNAME, BLACKLISTED_USERNAME_MESSAGE),
            (BlacklistType.HWID, attempt.hwid, RejectionKind.BLACKLISTED_HWID,
             ActivityEvent.LOGIN_BLOCKED_HWID, BLACKLISTED_HWID_MESSAGE),
        )
        for rule_type, value, kind, event, message in blacklist_checks:
            entry = await blacklist.check(db, application, rule_type, value)
            if entry is not None:
                return await self._reject(
                    db, application, attempt, kind, event, message,
                    metadata={"reason": blacklist.describe_match(entry), "blacklist_entry_id": entry.id},
                )

        # 5. Version
        if attempt.version and application.version and attempt.version != application.version:
            return await self._reject(
                db, application, attempt,
                RejectionKind.VERSION_MISMATCH, ActivityEvent.LOGIN_VERSION_MISMATCH,
                application.version_mismatch_message,
                metadata={"required_version": application.version, "current_version": attempt.version},
                required_version=application.version,
                current_version=attempt.version,
            )

        # 6. User lookup; unknown usernames leave no trace distinguishable from a bad password
        user = await get_app_user_by_username(db, application.id, attempt.username)
        if user is None:
            logger.debug("Login for unknown username in application %s", application.id)
            return LoginRejected(RejectionKind.INVALID_CREDENTIALS, application.login_failed_message)

        # 7-9. Account state
        if not user.is_active:
            return await self._reject(
                db, application, attempt,
                RejectionKind.ACCOUNT_DISABLED, ActivityEvent.ACCOUNT_DISABLED,
                application.account_disabled_message, user=user,
            )

        if user.is_paused:
            return await self._reject(
                db, application, attempt,
                RejectionKind.ACCOUNT_PAUSED, ActivityEvent.ACCOUNT_PAUSED,
                ACCOUNT_PAUSED_MESSAGE, user=user,
            )

        if is_expired(user):
            return await self._reject(
                db, application, attempt,
                RejectionKind.ACCOUNT_EXPIRED, ActivityEvent.ACCOUNT_EXPIRED,
                application.account_expired_message, user=user,
                metadata={"expired_at": as_utc(user.expires_at).isoformat()},
            )

        # 10. Password
        now = datetime.now(timezone.utc)
        if not await verify_password_async(attempt.password, user.hashed_password):
            await db.execute(
                update(AppUser)
                .where(AppUser.id == user.id)
                .values(login_attempts=AppUser.login_attempts + 1, last_attempt_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            await db.refresh(user)
            return await self._reject(
                db, application, attempt,
                RejectionKind.INVALID_CREDENTIALS, ActivityEvent.LOGIN_FAILED,
                application.login_failed_message, user=user,
                metadata={"login_attempts": user.login_attempts},
            )

        # 11. HWID lock
        if application.hwid_lock_enabled:
            check = await hwid_lock.check_and_bind(db, user, attempt.hwid)
            if not check.allowed:
                if check.decision == hwid_lock.HwidDecision.REQUIRED:
                    return await self._reject(
                        db, application, attempt,
                        RejectionKind.HWID_REQUIRED, ActivityEvent.HWID_REQUIRED,
                        HWID_REQUIRED_MESSAGE, user=user,
                    )
                return await self._reject(
                    db, application, attempt,
                    RejectionKind.HWID_MISMATCH, ActivityEvent.HWID_MISMATCH,
                    application.hwid_mismatch_message, user=user,
                    metadata={"expected_hwid": check.stored_hwid, "presented_hwid": attempt.hwid},
                )

        # 12. Success
        user.login_attempts = 0
        user.last_login_at = now
        user.last_attempt_at = now
        await db.commit()

        outcome = LoginSuccess(
            user_id=user.id,
            username=user.username,
            email=user.email,
            expires_at=as_utc(user.expires_at),
            hwid_locked=bool(application.hwid_lock_enabled and user.hwid),
            message=application.login_success_message,
        )
        await self.notifier.log_and_notify(
            db,
            application,
            ActivityEvent.USER_LOGIN,
            user=user,
            success=True,
            metadata={"version": attempt.version} if attempt.version else None,
            ip_address=attempt.ip_address,
            hwid=attempt.hwid,
            user_agent=attempt.user_agent,
        )
        return outcome
