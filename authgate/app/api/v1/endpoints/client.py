"""
Client API endpoints.

Register, login and verify end users of an application. Callers
authenticate with the application's API key (X-API-Key header, api_key
query parameter, or api_key body field).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.app.core.dependencies import get_api_key, get_client_ip, get_login_pipeline, get_notifier
from authgate.app.core.exceptions import BlacklistedError, ConflictError, InvalidApiKeyError
from authgate.app.core.rate_limit import api_rate_limiter, auth_rate_limiter
from authgate.app.core.security import get_password_hash_async
from authgate.app.db.session import get_db
from authgate.app.models.app_user import AppUser
from authgate.app.models.application import Application
from authgate.app.models.enums import ActivityEvent, BlacklistType
from authgate.app.schemas.client_api import (
    ClientErrorResponse,
    ClientLoginRequest,
    ClientLoginResponse,
    ClientRegisterRequest,
    ClientRegisterResponse,
    ClientVerifyRequest,
    ClientVerifyResponse,
)
from authgate.app.services import blacklist
from authgate.app.services.applications import (
    get_app_user,
    get_app_user_by_email,
    get_app_user_by_username,
    get_application_by_api_key,
)
from authgate.app.services.login_pipeline import LoginAttempt, LoginPipeline, as_utc, is_expired
from authgate.app.services.notifier import ActivityNotifier

router = APIRouter(tags=["Client API"])

ERROR_RESPONSES = {
    400: {"model": ClientErrorResponse},
    401: {"model": ClientErrorResponse},
    403: {"model": ClientErrorResponse},
    404: {"model": ClientErrorResponse},
    429: {"model": ClientErrorResponse},
}

REGISTER_BLACKLIST_MESSAGES = {
    BlacklistType.IP: "Access denied: IP address is blacklisted",
    BlacklistType.USERNAME: "Access denied: username is blacklisted",
    BlacklistType.EMAIL: "Access denied: email is blacklisted",
    BlacklistType.HWID: "Access denied: hardware ID is blacklisted",
}


async def require_application(db: AsyncSession, api_key: Optional[str]) -> Application:
    if not api_key:
        raise InvalidApiKeyError("API key is required")
    application = await get_application_by_api_key(db, api_key)
    if application is None:
        raise InvalidApiKeyError()
    return application


@router.post(
    "/register",
    response_model=ClientRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(api_rate_limiter), Depends(auth_rate_limiter)],
)
async def register(
    payload: ClientRegisterRequest,
    request: Request,
    api_key: Optional[str] = Depends(get_api_key),
    db: AsyncSession = Depends(get_db),
    notifier: ActivityNotifier = Depends(get_notifier),
):
    """
    Register a new end user in the API key's application.

    Rejects blacklisted IPs, usernames, emails and HWIDs, and duplicate
    usernames or emails within the application.
    """
    application = await require_application(db, api_key or payload.api_key)
    ip_address = get_client_ip(request)
    user_agent = request.headers.get("User-Agent")
    email = str(payload.email) if payload.email else None

    # 1. Blacklist
    for rule_type, value in (
        (BlacklistType.IP, ip_address),
        (BlacklistType.USERNAME, payload.username),
        (BlacklistType.EMAIL, email),
        (BlacklistType.HWID, payload.hwid),
    ):
        entry = await blacklist.check(db, application, rule_type, value)
        if entry is not None:
            message = REGISTER_BLACKLIST_MESSAGES[rule_type]
            await notifier.log_and_notify(
                db,
                application,
                ActivityEvent.REGISTER_BLOCKED,
                success=False,
                error_message=message,
                metadata={"username": payload.username, "reason": blacklist.describe_match(entry)},
                ip_address=ip_address,
                hwid=payload.hwid,
                user_agent=user_agent,
            )
            raise BlacklistedError(message)

    # 2. Uniqueness within the application
    if await get_app_user_by_username(db, application.id, payload.username):
        raise ConflictError("Username already exists")

    if email and await get_app_user_by_email(db, application.id, email):
        raise ConflictError("Email already exists")

    # 3. Create
    new_user = AppUser(
        application_id=application.id,
        username=payload.username,
        email=email,
        hashed_password=await get_password_hash_async(payload.password),
        expires_at=payload.expires_at,
        hwid=payload.hwid or None,
        is_active=True,
        is_paused=False,
        login_attempts=0,
    )
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration
        await db.rollback()
        raise ConflictError("Username or email already exists")
    await db.refresh(new_user)

    user_id = new_user.id
    await notifier.log_and_notify(
        db,
        application,
        ActivityEvent.USER_REGISTER,
        user=new_user,
        success=True,
        ip_address=ip_address,
        hwid=payload.hwid,
        user_agent=user_agent,
    )

    return ClientRegisterResponse(message="User registered successfully", user_id=user_id)


@router.post(
    "/login",
    response_model=ClientLoginResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(api_rate_limiter), Depends(auth_rate_limiter)],
)
async def login(
    payload: ClientLoginRequest,
    request: Request,
    api_key: Optional[str] = Depends(get_api_key),
    db: AsyncSession = Depends(get_db),
    pipeline: LoginPipeline = Depends(get_login_pipeline),
):
    """
    Log an end user in.

    Runs the login pipeline; the status code and body depend on which
    check (if any) rejected the attempt.
    """
    outcome = await pipeline.run(
        db,
        api_key or payload.api_key,
        LoginAttempt(
            username=payload.username,
            password=payload.password,
            version=payload.version or None,
            hwid=payload.hwid or None,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        ),
    )
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_response())


@router.post(
    "/verify",
    response_model=ClientVerifyResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(api_rate_limiter)],
)
async def verify(
    payload: ClientVerifyRequest,
    api_key: Optional[str] = Depends(get_api_key),
    db: AsyncSession = Depends(get_db),
):
    """
    Check that an end user still exists, is active and has not expired.

    Lighter than login: HWID and paused state are not consulted.
    """
    application = await require_application(db, api_key or payload.api_key)

    user = await get_app_user(db, application.id, payload.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=application.account_disabled_message)

    if is_expired(user):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=application.account_expired_message)

    return ClientVerifyResponse(
        message="User verified",
        user_id=user.id,
        username=user.username,
        email=user.email,
        expires_at=as_utc(user.expires_at),
    )
