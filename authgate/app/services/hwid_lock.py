"""
HWID lock service.

Binds an end-user account to the first hardware ID it logs in with and
rejects every other HWID until the owner resets the binding.

States:
    Unbound (hwid NULL) -> first HWID-checked login binds the presented value
    Bound (hwid set)    -> only the stored value is accepted
    Reset               -> owner action, back to Unbound
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.app.models.app_user import AppUser

logger = logging.getLogger(__name__)


class HwidDecision(str, enum.Enum):
    BOUND = "bound"          # Was unbound, now bound to the presented HWID
    MATCHED = "matched"      # Presented HWID equals the stored one
    REQUIRED = "required"    # No HWID presented
    MISMATCH = "mismatch"    # Presented HWID differs from the stored one


@dataclass(frozen=True)
class HwidCheckResult:
    decision: HwidDecision
    stored_hwid: Optional[str]

    @property
    def allowed(self) -> bool:
        return self.decision in (HwidDecision.BOUND, HwidDecision.MATCHED)


async def bind_hwid(db: AsyncSession, user_id: int, hwid: str) -> bool:
    """
    Bind a HWID only if the account is currently unbound.

    The WHERE clause makes this a compare-and-swap: of two concurrent first
    logins, exactly one wins.

    Returns:
        True if this call performed the binding
    """
    result = await db.execute(
        update(AppUser)
        .where(AppUser.id == user_id, AppUser.hwid.is_(None))
        .values(hwid=hwid)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def get_bound_hwid(db: AsyncSession, user_id: int) -> Optional[str]:
    result = await db.execute(select(AppUser.hwid).where(AppUser.id == user_id))
    return result.scalar_one_or_none()


async def check_and_bind(db: AsyncSession, user: AppUser, hwid: Optional[str]) -> HwidCheckResult:
    """
    Run the HWID lock step of a login.

    Args:
        db: Database session
        user: Account being logged into (refreshed in place after a bind)
        hwid: HWID presented by the client, if any

    Returns:
        HwidCheckResult; `allowed` tells the caller whether login may proceed
    """
    if not hwid:
        return HwidCheckResult(HwidDecision.REQUIRED, user.hwid)

    if user.hwid is None:
        if await bind_hwid(db, user.id, hwid):
            await db.refresh(user)
            logger.info("Bound HWID for app user %s", user.id)
            return HwidCheckResult(HwidDecision.BOUND, hwid)

        # Another request bound first; judge against what it stored
        await db.refresh(user)
        logger.info("HWID bind race lost for app user %s", user.id)

    if user.hwid == hwid:
        return HwidCheckResult(HwidDecision.MATCHED, user.hwid)
    return HwidCheckResult(HwidDecision.MISMATCH, user.hwid)


async def reset_hwid(db: AsyncSession, user: AppUser) -> None:
    """Owner-triggered reset: clear the binding so the next login rebinds."""
    await db.execute(
        update(AppUser)
        .where(AppUser.id == user.id)
        .values(hwid=None)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(user)
