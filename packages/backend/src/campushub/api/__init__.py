"""API route aggregation.

All routers registered here get mounted in main.py under /api.
Health and the auth router are open; protected auth routes declare
Depends(get_current_user) on the route itself.
"""

from fastapi import APIRouter

from campushub.api.auth import router as auth_router
from campushub.api.health import router as health_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
