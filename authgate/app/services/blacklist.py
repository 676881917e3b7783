"""
Blacklist lookup service.

Answers "is this IP / username / email / HWID blocked for this
application?". Global rules (application_id NULL) apply to every
application.
"""

from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.app.models.application import Application
from authgate.app.models.blacklist_entry import BlacklistEntry
from authgate.app.models.enums import BlacklistType

# Identity-like values are matched case-insensitively
CASE_INSENSITIVE_TYPES = {BlacklistType.USERNAME, BlacklistType.EMAIL}


async def check(
    db: AsyncSession,
    application: Application,
    type: BlacklistType,
    value: Optional[str],
) -> Optional[BlacklistEntry]:
    """
    Find an active blacklist entry matching `value`.

    Args:
        db: Database session
        application: Application the request targets
        type: Rule type to look up
        value: Candidate value; None or empty never matches

    Returns:
        The matching entry (application-scoped preferred over global), or None
    """
    if not value:
        return None

    query = select(BlacklistEntry).where(
        BlacklistEntry.type == type,
        BlacklistEntry.is_active == True,
        or_(
            BlacklistEntry.application_id == application.id,
            BlacklistEntry.application_id.is_(None),
        ),
    )

    if type in CASE_INSENSITIVE_TYPES:
        query = query.where(func.lower(BlacklistEntry.value) == value.lower())
    else:
        query = query.where(BlacklistEntry.value == value)

    result = await db.execute(query)
    entries = result.scalars().all()
    if not entries:
        return None

    scoped = [entry for entry in entries if entry.application_id is not None]
    return scoped[0] if scoped else entries[0]


def describe_match(entry: BlacklistEntry) -> str:
    """Reason string recorded in the activity log metadata."""
    scope = "global" if entry.is_global else f"application {entry.application_id}"
    reason = f"{entry.type.value} blacklisted ({scope})"
    if entry.reason:
        reason = f"{reason}: {entry.reason}"
    return reason
