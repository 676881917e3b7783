"""
Activity log endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from authgate.app.db.session import get_db
from authgate.app.models.enums import ActivityEvent
from authgate.app.schemas.activity import ActivityLogResponse, ActivityLogListResponse
from authgate.app.core.dependencies import get_current_owner
from authgate.app.services.activity import get_activity_logs

router = APIRouter(prefix="/activity-logs", tags=["Activity Logs"])


@router.get("", response_model=ActivityLogListResponse)
async def list_activity_logs(
    application_id: Optional[int] = Query(None, description="Filter by application"),
    event: Optional[ActivityEvent] = Query(None, description="Filter by event name"),
    success: Optional[bool] = Query(None, description="Filter by outcome"),
    limit: int = Query(100, ge=1, le=500, description="Max records to return"),
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Get activity logs across the owner's applications, most recent first.
    """
    logs = await get_activity_logs(
        db,
        owner_id=current_owner["owner_id"],
        application_id=application_id,
        event=event.value if event else None,
        success=success,
        limit=limit
    )

    return ActivityLogListResponse(
        logs=[ActivityLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
