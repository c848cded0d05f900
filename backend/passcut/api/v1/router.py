"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from passcut.api.v1.endpoints import admin_answers, health, internal, notifications, pass_cut, results

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(admin_answers.router, prefix="/admin", tags=["Admin - Answer Keys"])
api_router.include_router(results.router, prefix="", tags=["Results"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(pass_cut.router, prefix="", tags=["Pass Cut"])
api_router.include_router(internal.router, prefix="/internal", tags=["Internal"])
