from fastapi import APIRouter

# Aggregate all v1 routers here
from .routers import admin, submissions, system

api_router = APIRouter()
api_router.include_router(submissions.router)
api_router.include_router(admin.router)
api_router.include_router(system.router)

__all__ = ["api_router"]
