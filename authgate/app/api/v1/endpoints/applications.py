"""
Application management endpoints.

Owners create applications, edit their login settings and message
templates, and rotate API keys.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete
from authgate.app.db.session import get_db
from authgate.app.models.application import Application
from authgate.app.models.app_user import AppUser
from authgate.app.models.activity_log import ActivityLog
from authgate.app.models.blacklist_entry import BlacklistEntry
from authgate.app.schemas.applications import (
    ApplicationCreate,
    ApplicationUpdate,
    ApplicationResponse,
    ApplicationListResponse,
)
from authgate.app.core.dependencies import get_current_owner
from authgate.app.core.security import generate_api_key
from authgate.app.services.applications import get_owned_application

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_application(
    app_data: ApplicationCreate,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a new application with a freshly generated API key.
    """
    new_app = Application(
        owner_id=current_owner["owner_id"],
        name=app_data.name,
        description=app_data.description,
        version=app_data.version,
        hwid_lock_enabled=app_data.hwid_lock_enabled,
        api_key=generate_api_key(),
        is_active=True
    )

    db.add(new_app)
    await db.commit()
    await db.refresh(new_app)

    return ApplicationResponse.model_validate(new_app)


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    List the authenticated owner's applications, newest first.
    """
    owner_id = current_owner["owner_id"]

    total_result = await db.execute(
        select(func.count(Application.id)).where(Application.owner_id == owner_id)
    )
    total = total_result.scalar()

    result = await db.execute(
        select(Application)
        .where(Application.owner_id == owner_id)
        .order_by(Application.created_at.desc(), Application.id.desc())
    )
    applications = result.scalars().all()

    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        total=total
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    application = await get_owned_application(db, application_id, current_owner["owner_id"])
    return ApplicationResponse.model_validate(application)


@router.patch("/{application_id}", response_model=ApplicationResponse)
async def update_application(
    application_id: int,
    app_data: ApplicationUpdate,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Update application settings.

    Only fields present in the request body are changed.
    """
    application = await get_owned_application(db, application_id, current_owner["owner_id"])

    for field, value in app_data.model_dump(exclude_unset=True).items():
        setattr(application, field, value)

    await db.commit()
    await db.refresh(application)

    return ApplicationResponse.model_validate(application)


@router.post("/{application_id}/regenerate-key", response_model=ApplicationResponse)
async def regenerate_api_key(
    application_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Replace the application's API key. The old key stops working immediately.
    """
    application = await get_owned_application(db, application_id, current_owner["owner_id"])

    application.api_key = generate_api_key()
    await db.commit()
    await db.refresh(application)

    return ApplicationResponse.model_validate(application)


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete an application together with its users and activity logs.
    """
    application = await get_owned_application(db, application_id, current_owner["owner_id"])

    # SQLite does not enforce the FK cascades, so remove children explicitly
    for model in (ActivityLog, AppUser, BlacklistEntry):
        await db.execute(delete(model).where(model.application_id == application.id))
    await db.delete(application)
    await db.commit()
