"""
Enrollments router for Learnity.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.progress import EnrollmentStatus
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.services.enrollment import list_student_enrollments


router = APIRouter()


@router.get("")
async def list_my_enrollments(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status: Optional[EnrollmentStatus] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Enrollments of the current user, most recently accessed first.
    """
    return list_student_enrollments(
        db,
        current_user.id,
        page,
        limit,
        status_filter=status.value if status else None
    )
