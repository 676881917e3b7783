"""
Owner authentication API endpoints.

Provides register, login, logout and owner info endpoints for the
dashboard.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from authgate.app.db.session import get_db
from authgate.app.models.owner import Owner
from authgate.app.schemas.auth import OwnerRegister, OwnerLogin, TokenResponse, OwnerResponse
from authgate.app.core.security import get_password_hash_async, verify_password_async
from authgate.app.core.jwt import create_access_token
from authgate.app.core.dependencies import get_current_owner
from authgate.app.core.rate_limit import auth_rate_limiter
from authgate.app.core.redis_client import get_redis
from authgate.app.core.token_revocation import revoke_token

router = APIRouter(prefix="/auth", tags=["Owner Authentication"])


def issue_token(owner: Owner) -> TokenResponse:
    access_token = create_access_token(data={"sub": owner.username, "owner_id": owner.id})
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        owner_id=owner.id,
        username=owner.username,
        email=owner.email
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    owner_data: OwnerRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new owner account and return a session token.
    """
    result = await db.execute(
        select(Owner).where(
            or_(Owner.username == owner_data.username, Owner.email == owner_data.email)
        )
    )
    existing_owner = result.scalars().first()

    if existing_owner:
        if existing_owner.username == owner_data.username:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already registered"
            )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_owner = Owner(
        email=str(owner_data.email),
        username=owner_data.username,
        hashed_password=await get_password_hash_async(owner_data.password),
        is_active=True
    )

    db.add(new_owner)
    await db.commit()
    await db.refresh(new_owner)

    return issue_token(new_owner)


@router.post("/login", response_model=TokenResponse, dependencies=[Depends(auth_rate_limiter)])
async def login(
    credentials: OwnerLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Login owner and return JWT token.

    Accepts username or email for login.
    """
    result = await db.execute(
        select(Owner).where(
            or_(Owner.username == credentials.username, Owner.email == credentials.username)
        )
    )
    owner = result.scalars().first()

    if not owner or not await verify_password_async(credentials.password, owner.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not owner.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive owner account"
        )

    return issue_token(owner)


@router.post("/logout")
async def logout(
    current_owner: dict = Depends(get_current_owner),
    redis=Depends(get_redis)
):
    """
    Revoke the presented token.
    """
    await revoke_token(redis, current_owner["token"], current_owner["owner_id"])
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me", response_model=OwnerResponse)
async def get_current_owner_info(
    current_owner: dict = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated owner information.

    Requires valid JWT token in Authorization header.
    """
    owner = await db.get(Owner, current_owner["owner_id"])

    if not owner:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Owner not found"
        )

    return OwnerResponse.model_validate(owner)
