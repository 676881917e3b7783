"""
Application lookup helpers shared by the client and owner APIs.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.app.core.exceptions import ResourceNotFoundError
from authgate.app.models.app_user import AppUser
from authgate.app.models.application import Application


async def get_application_by_api_key(db: AsyncSession, api_key: Optional[str]) -> Optional[Application]:
    """
    Resolve an API key to an active application.

    Returns:
        The application, or None if the key is missing, unknown or inactive
    """
    if not api_key:
        return None
    result = await db.execute(select(Application).where(Application.api_key == api_key))
    application = result.scalar_one_or_none()
    if application is None or not application.is_active:
        return None
    return application


async def get_owned_application(db: AsyncSession, application_id: int, owner_id: int) -> Application:
    """
    Load an application belonging to `owner_id`.

    Other owners' applications are reported as missing so their IDs are
    not disclosed.

    Raises:
        ResourceNotFoundError
    """
    result = await db.execute(
        select(Application).where(Application.id == application_id, Application.owner_id == owner_id)
    )
    application = result.scalar_one_or_none()
    if application is None:
        raise ResourceNotFoundError("Application", application_id)
    return application


async def get_app_user_by_username(db: AsyncSession, application_id: int, username: str) -> Optional[AppUser]:
    result = await db.execute(
        select(AppUser).where(AppUser.application_id == application_id, AppUser.username == username)
    )
    return result.scalar_one_or_none()


async def get_app_user_by_email(db: AsyncSession, application_id: int, email: str) -> Optional[AppUser]:
    result = await db.execute(
        select(AppUser).where(AppUser.application_id == application_id, AppUser.email == email)
    )
    return result.scalar_one_or_none()


async def get_app_user(db: AsyncSession, application_id: int, user_id: int) -> Optional[AppUser]:
    result = await db.execute(
        select(AppUser).where(AppUser.application_id == application_id, AppUser.id == user_id)
    )
    return result.scalar_one_or_none()
