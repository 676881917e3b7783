"""
FastAPI Application Entry Point.

This is the main application file for the AuthGate Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from authgate.app.core.config import settings
from authgate.app.api.v1.router import router as api_v1_router
from authgate.app.core.observability import ObservabilityMiddleware, configure_logging
from authgate.app.core.redis_client import ping_redis
from authgate.app.db.session import engine, Base, AsyncSessionLocal
from authgate.app.services.notifier import ActivityNotifier, WebhookDispatcher
from authgate.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from authgate.app.models.owner import Owner
from authgate.app.models.application import Application
from authgate.app.models.app_user import AppUser
from authgate.app.models.blacklist_entry import BlacklistEntry
from authgate.app.models.webhook import Webhook
from authgate.app.models.activity_log import ActivityLog
from authgate.app.models.dlq import DeadLetterQueue

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Starts the webhook dispatcher, and drains it on shutdown.
    """
    configure_logging(settings.log_level)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    dispatcher = WebhookDispatcher(AsyncSessionLocal)
    app.state.notifier = ActivityNotifier(dispatcher)
    dispatcher.start()
    logger.info("%s %s started", settings.app_name, settings.api_version)

    yield

    await dispatcher.stop()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Authentication service for desktop and client applications",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=settings.api_prefix)


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to AuthGate Backend API",
        "docs": "/docs",
        "health": "/health",
    }
