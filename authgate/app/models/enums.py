"""
Enumerations shared by the AuthGate models.

Defines blacklist rule types, activity/webhook event names and
dead-letter statuses.
"""

import enum


class BlacklistType(str, enum.Enum):
    """
    Blacklist rule type.

    Types:
        IP: Caller IP address
        USERNAME: AppUser username (case-insensitive)
        EMAIL: AppUser email (case-insensitive)
        HWID: Client hardware fingerprint
    """
    IP = "ip"
    USERNAME = "username"
    EMAIL = "email"
    HWID = "hwid"


class ActivityEvent(str, enum.Enum):
    """
    Authorization-relevant events.

    Every value is both an activity log event name and a webhook
    subscription name.
    """
    USER_LOGIN = "user_login"
    USER_REGISTER = "user_register"
    REGISTER_BLOCKED = "register_blocked"
    LOGIN_FAILED = "login_failed"
    ACCOUNT_DISABLED = "account_disabled"
    ACCOUNT_PAUSED = "account_paused"
    ACCOUNT_EXPIRED = "account_expired"
    LOGIN_VERSION_MISMATCH = "login_version_mismatch"
    HWID_MISMATCH = "hwid_mismatch"
    HWID_REQUIRED = "hwid_required"
    LOGIN_BLOCKED_IP = "login_blocked_ip"
    LOGIN_BLOCKED_USERNAME = "login_blocked_username"
    LOGIN_BLOCKED_HWID = "login_blocked_hwid"


class DeliveryStatus(str, enum.Enum):
    """Outcome of the most recent delivery to a webhook."""
    DELIVERED = "delivered"
    FAILED = "failed"
