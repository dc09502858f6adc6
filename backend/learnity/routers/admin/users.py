"""
Admin users router for Learnity.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.user import User, UserRole
from learnity.routers.auth import get_current_user
from learnity.schemas.admin import UserStatusUpdate
from learnity.services import admin as admin_service


router = APIRouter()


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return admin_service.list_users(
        db,
        page,
        limit,
        role=role.value if role else None,
        search=search,
        is_active=is_active
    )


@router.patch("/{user_id}/status")
async def update_user_status(
    user_id: int,
    status_data: UserStatusUpdate,
    request: Request,
    admin_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Activate or deactivate an account. Admins cannot deactivate themselves.
    """
    user = admin_service.set_user_active(db, user_id, status_data.is_active, admin_user, request)
    db.commit()
    db.refresh(user)

    return user.to_dict()
