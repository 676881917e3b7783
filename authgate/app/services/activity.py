"""
Activity logging service.

Append-only audit trail for every terminal login outcome and registration.
Writing is best-effort: a failed write is logged for operators and never
changes the outcome of the request that triggered it.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.app.models.activity_log import ActivityLog
from authgate.app.models.application import Application

logger = logging.getLogger(__name__)


async def log_activity(
    db: AsyncSession,
    application_id: int,
    event: str,
    app_user_id: Optional[int] = None,
    success: bool = True,
    error_message: Optional[str] = None,
    ip_address: Optional[str] = None,
    hwid: Optional[str] = None,
    user_agent: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Optional[ActivityLog]:
    """
    Append one activity log row.

    Args:
        db: Database session
        application_id: Application the event belongs to
        event: Event name (use ActivityEvent values)
        app_user_id: Resolved end user, if any
        success: Whether the triggering operation succeeded
        error_message: Message returned to the client on failure
        ip_address: Caller IP address
        hwid: HWID presented by the caller
        user_agent: Caller User-Agent header
        metadata: Additional context as JSON

    Returns:
        Created ActivityLog instance, or None if the write failed
    """
    try:
        activity = ActivityLog(
            application_id=application_id,
            app_user_id=app_user_id,
            event=event,
            success=success,
            error_message=error_message,
            ip_address=ip_address,
            hwid=hwid,
            user_agent=user_agent[:512] if user_agent else None,
            meta_data=metadata
        )
        db.add(activity)
        await db.commit()
        await db.refresh(activity)
    except Exception:
        logger.exception("Failed to write activity log (app=%s, event=%s)", application_id, event)
        try:
            await db.rollback()
        except Exception:
            logger.exception("Rollback after failed activity log write also failed")
        return None

    return activity


async def get_activity_logs(
    db: AsyncSession,
    owner_id: int,
    application_id: Optional[int] = None,
    event: Optional[str] = None,
    success: Optional[bool] = None,
    limit: int = 100
) -> list[ActivityLog]:
    """
    Retrieve an owner's activity logs with optional filtering.

    Returns:
        List of ActivityLog instances, most recent first
    """
    query = (
        select(ActivityLog)
        .join(Application, Application.id == ActivityLog.application_id)
        .where(Application.owner_id == owner_id)
        .order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
    )

    if application_id:
        query = query.where(ActivityLog.application_id == application_id)

    if event:
        query = query.where(ActivityLog.event == event)

    if success is not None:
        query = query.where(ActivityLog.success == success)

    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())
