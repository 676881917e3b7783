"""
AppUser management endpoints (owner dashboard).

All routes are nested under an application the caller owns.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from authgate.app.db.session import get_db
from authgate.app.models.app_user import AppUser
from authgate.app.schemas.app_users import AppUserCreate, AppUserUpdate, AppUserResponse, AppUserListResponse
from authgate.app.core.dependencies import get_current_owner
from authgate.app.core.exceptions import ConflictError, ResourceNotFoundError
from authgate.app.core.security import get_password_hash_async
from authgate.app.services import hwid_lock
from authgate.app.services.applications import (
    get_owned_application,
    get_app_user,
    get_app_user_by_username,
    get_app_user_by_email,
)

router = APIRouter(prefix="/applications/{application_id}/users", tags=["Application Users"])


async def load_user(db: AsyncSession, application_id: int, user_id: int, owner_id: int) -> AppUser:
    await get_owned_application(db, application_id, owner_id)
    user = await get_app_user(db, application_id, user_id)
    if user is None:
        raise ResourceNotFoundError("User", user_id)
    return user


@router.get("", response_model=AppUserListResponse)
async def list_users(
    application_id: int,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    search: str = Query(None, max_length=100, description="Filter by username or email substring"),
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    List users of an application, newest first.
    """
    await get_owned_application(db, application_id, current_owner["owner_id"])

    filters = [AppUser.application_id == application_id]
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            func.lower(AppUser.username).like(pattern) | func.lower(AppUser.email).like(pattern)
        )

    total_result = await db.execute(select(func.count(AppUser.id)).where(*filters))
    total = total_result.scalar()

    offset = (page - 1) * page_size
    result = await db.execute(
        select(AppUser).where(*filters)
        .order_by(AppUser.created_at.desc(), AppUser.id.desc())
        .offset(offset).limit(page_size)
    )
    users = result.scalars().all()

    return AppUserListResponse(
        users=[AppUserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=AppUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    application_id: int,
    user_data: AppUserCreate,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an end user directly, bypassing the client register flow.
    """
    await get_owned_application(db, application_id, current_owner["owner_id"])

    if await get_app_user_by_username(db, application_id, user_data.username):
        raise ConflictError("Username already exists")
    email = str(user_data.email) if user_data.email else None
    if email and await get_app_user_by_email(db, application_id, email):
        raise ConflictError("Email already exists")

    new_user = AppUser(
        application_id=application_id,
        username=user_data.username,
        email=email,
        hashed_password=await get_password_hash_async(user_data.password),
        expires_at=user_data.expires_at,
        hwid=user_data.hwid or None,
        is_active=True,
        is_paused=False,
        login_attempts=0
    )
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Username or email already exists")
    await db.refresh(new_user)

    return AppUserResponse.model_validate(new_user)


@router.get("/{user_id}", response_model=AppUserResponse)
async def get_user(
    application_id: int,
    user_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    user = await load_user(db, application_id, user_id, current_owner["owner_id"])
    return AppUserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=AppUserResponse)
async def update_user(
    application_id: int,
    user_id: int,
    user_data: AppUserUpdate,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Update email, password, expiry or the active flag.
    """
    user = await load_user(db, application_id, user_id, current_owner["owner_id"])
    changes = user_data.model_dump(exclude_unset=True)

    if "email" in changes:
        email = str(changes["email"]) if changes["email"] else None
        if email and email != user.email:
            existing = await get_app_user_by_email(db, application_id, email)
            if existing and existing.id != user.id:
                raise ConflictError("Email already exists")
        user.email = email
    if "password" in changes:
        if not changes["password"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password cannot be empty")
        user.hashed_password = await get_password_hash_async(changes["password"])
    if "expires_at" in changes:
        user.expires_at = changes["expires_at"]
    if changes.get("is_active") is not None:
        user.is_active = changes["is_active"]

    await db.commit()
    await db.refresh(user)

    return AppUserResponse.model_validate(user)


@router.post("/{user_id}/pause", response_model=AppUserResponse)
async def pause_user(
    application_id: int,
    user_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    user = await load_user(db, application_id, user_id, current_owner["owner_id"])
    user.is_paused = True
    await db.commit()
    await db.refresh(user)
    return AppUserResponse.model_validate(user)


@router.post("/{user_id}/unpause", response_model=AppUserResponse)
async def unpause_user(
    application_id: int,
    user_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    user = await load_user(db, application_id, user_id, current_owner["owner_id"])
    user.is_paused = False
    await db.commit()
    await db.refresh(user)
    return AppUserResponse.model_validate(user)


@router.post("/{user_id}/reset-hwid", response_model=AppUserResponse)
async def reset_user_hwid(
    application_id: int,
    user_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Clear the user's hardware binding; their next login rebinds.
    """
    user = await load_user(db, application_id, user_id, current_owner["owner_id"])
    await hwid_lock.reset_hwid(db, user)
    return AppUserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    application_id: int,
    user_id: int,
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    user = await load_user(db, application_id, user_id, current_owner["owner_id"])
    await db.delete(user)
    await db.commit()
