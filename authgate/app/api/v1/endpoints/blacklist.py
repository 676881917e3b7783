"""
Blacklist management endpoints.

Entries are scoped to one application, or global (application_id null)
covering every application of the owner.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from authgate.app.db.session import get_db
from authgate.app.models.blacklist_entry import BlacklistEntry
from authgate.app.models.enums import BlacklistType
from authgate.app.schemas.blacklist import (
    BlacklistEntryCreate,
    BlacklistEntryUpdate,
    BlacklistEntryResponse,
    BlacklistListResponse,
)
from authgate.app.core.dependencies import get_current_owner
from authgate.app.core.guards import OwnershipGuard
from authgate.app.services.applications import get_owned_application

router = APIRouter(prefix="/blacklist", tags=["Blacklist"])
ownership_guard = OwnershipGuard()


@router.get("", response_model=BlacklistListResponse)
async def list_entries(
    application_id: Optional[int] = Query(None, description="Only entries scoped to this application"),
    type: Optional[BlacklistType] = Query(None, description="Filter by entry type"),
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    List the owner's blacklist entries, newest first.
    """
    filters = [BlacklistEntry.owner_id == current_owner["owner_id"]]
    if application_id is not None:
        filters.append(BlacklistEntry.application_id == application_id)
    if type is not None:
        filters.append(BlacklistEntry.type == type)

    total_result = await db.execute(select(func.count(BlacklistEntry.id)).where(*filters))
    total = total_result.scalar()

    result = await db.execute(
        select(BlacklistEntry).where(*filters)
        .order_by(BlacklistEntry.created_at.desc(), BlacklistEntry.id.desc())
    )
    entries = result.scalars().all()

    return BlacklistListResponse(
        entries=[BlacklistEntryResponse.model_validate(e) for e in entries],
        total=total
    )


@router.post("", response_model=BlacklistEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry_data: BlacklistEntryCreate,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a blacklist entry.

    A scoped entry must name an application the caller owns.
    """
    owner_id = current_owner["owner_id"]
    if entry_data.application_id is not None:
        await get_owned_application(db, entry_data.application_id, owner_id)

    entry = BlacklistEntry(
        owner_id=owner_id,
        application_id=entry_data.application_id,
        type=entry_data.type,
        value=entry_data.value.strip(),
        reason=entry_data.reason,
        is_active=True
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    return BlacklistEntryResponse.model_validate(entry)


@router.patch("/{entry_id}", response_model=BlacklistEntryResponse)
async def update_entry(
    entry_id: int,
    entry_data: BlacklistEntryUpdate,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Toggle an entry or change its reason.
    """
    entry = ownership_guard.enforce(
        await db.get(BlacklistEntry, entry_id), current_owner, "Blacklist entry", entry_id
    )

    for field, value in entry_data.model_dump(exclude_unset=True).items():
        if value is not None or field == "reason":
            setattr(entry, field, value)

    await db.commit()
    await db.refresh(entry)

    return BlacklistEntryResponse.model_validate(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    entry = ownership_guard.enforce(
        await db.get(BlacklistEntry, entry_id), current_owner, "Blacklist entry", entry_id
    )
    await db.delete(entry)
    await db.commit()
