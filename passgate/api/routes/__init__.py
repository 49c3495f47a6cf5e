"""API route registration.

Aggregates all API routers into a single router
for inclusion in the main application.
"""

from fastapi import APIRouter

from passgate.api.routes.auth import router as auth_router
from passgate.api.routes.profile import router as profile_router
from passgate.api.routes.system import router as system_router
from passgate.api.schemas import ErrorResponse

# Main API router; every error uses the same envelope
api_router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    }
)

# System
api_router.include_router(system_router, tags=["System"])
# Authentication
api_router.include_router(auth_router)
# Profile and passkey management
api_router.include_router(profile_router)

__all__ = ["api_router"]
