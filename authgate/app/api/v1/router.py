"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from authgate.app.api.v1.endpoints import (
    auth, applications, app_users, blacklist, webhooks, activity_logs, client
)

router = APIRouter()

# Client API (API key authenticated)
router.include_router(client.router)

# Owner authentication
router.include_router(auth.router)

# Owner dashboard
router.include_router(applications.router)
router.include_router(app_users.router)
router.include_router(blacklist.router)
router.include_router(webhooks.router)
router.include_router(activity_logs.router)
