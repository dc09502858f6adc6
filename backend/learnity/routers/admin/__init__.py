"""
Admin routers for Learnity.

This module contains all admin-specific API endpoints:
- teachers: Teacher application review
- users: Account listing and activation
- transactions: Wallet deposit and withdrawal settlement
- settings: Runtime platform settings
- logs: Audit logs and security events
- categories: Course category management
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.core.errors import ForbiddenError
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.services.admin import dashboard_stats
from learnity.services.teacher_application import get_stats as teacher_stats

# Import admin sub-routers
from .teachers import router as teachers_router
from .users import router as users_router
from .transactions import router as transactions_router
from .settings import router as settings_router
from .logs import router as logs_router
from .categories import router as categories_router


# Dependency to verify admin access
async def get_current_admin_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Verify that the current user has admin privileges.
    """
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


# Create admin router
admin_router = APIRouter(dependencies=[Depends(get_current_admin_user)])

# Include all admin sub-routers
admin_router.include_router(
    teachers_router,
    prefix="/teachers",
    tags=["admin-teachers"]
)

admin_router.include_router(
    users_router,
    prefix="/users",
    tags=["admin-users"]
)

admin_router.include_router(
    transactions_router,
    prefix="/transactions",
    tags=["admin-transactions"]
)

admin_router.include_router(
    settings_router,
    prefix="/settings",
    tags=["admin-settings"]
)

admin_router.include_router(
    categories_router,
    prefix="/categories",
    tags=["admin-categories"]
)

admin_router.include_router(
    logs_router,
    tags=["admin-logs"]
)


# Admin dashboard endpoint
@admin_router.get("/dashboard")
async def get_admin_dashboard(
    admin_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get admin dashboard overview with statistics.
    """
    return {
        "statistics": dashboard_stats(db),
        "teachers": teacher_stats(db),
        "recent_activity": {
            "last_login": admin_user.last_login_at.isoformat() if admin_user.last_login_at else None,
        },
    }


# Export all routers
__all__ = ["admin_router", "get_current_admin_user"]
