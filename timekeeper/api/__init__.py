"""API routes."""

from .auth_routes import router as auth_router
from .grants import router as grants_router
from .projects import router as projects_router, membership_router
from .time_entries import router as time_entries_router
from .users import router as users_router, audit_router

__all__ = [
    "auth_router",
    "grants_router",
    "projects_router",
    "membership_router",
    "time_entries_router",
    "users_router",
    "audit_router",
]
