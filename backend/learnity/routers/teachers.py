"""
Teacher router for Learnity.

Public teacher directory plus the endpoints a teacher (or applicant)
uses for their own profile and application.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.core.errors import NotFoundError
from learnity.models.user import User, UserRole
from learnity.routers.auth import get_current_user, require_roles
from learnity.schemas.auth import TeacherProfileUpdate
from learnity.services import teacher_application
from learnity.utils.pagination import paginate


router = APIRouter()

get_teacher_or_applicant = require_roles(
    UserRole.TEACHER, UserRole.PENDING_TEACHER, UserRole.REJECTED_TEACHER
)


def _public_teacher(user: User) -> Dict[str, Any]:
    profile = user.teacher_profile
    return {
        **user.to_public_dict(),
        "bio": profile.bio if profile else None,
        "subjects": profile.subjects if profile else [],
        "experience": profile.experience if profile else 0,
        "hourly_rate": profile.hourly_rate if profile else None,
        "rating": profile.rating if profile else 0.0,
        "available_days": profile.available_days if profile else [],
    }


@router.get("")
async def list_teachers(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Approved teachers, for booking tutoring sessions.
    """
    query = db.query(User).filter(User.role == UserRole.TEACHER.value, User.is_active == True)  # noqa: E712
    if search:
        search_term = f"%{search}%"
        query = query.filter(or_(User.first_name.ilike(search_term), User.last_name.ilike(search_term)))
    query = query.order_by(User.first_name, User.last_name, User.id)

    teachers, meta = paginate(query, page, limit)
    return {"teachers": [_public_teacher(teacher) for teacher in teachers], **meta}


@router.get("/application-status")
async def get_application_status(
    current_user: User = Depends(get_teacher_or_applicant)
) -> Dict[str, Any]:
    """
    Status and completeness of the caller's teacher application.
    """
    return teacher_application.get_application_status(current_user)


@router.put("/me/profile")
async def update_teacher_profile(
    changes: TeacherProfileUpdate,
    current_user: User = Depends(get_teacher_or_applicant),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Update the caller's teacher profile.
    """
    profile = current_user.teacher_profile
    if profile is None:
        raise NotFoundError("Teacher profile", code="PROFILE_NOT_FOUND")

    for field, value in changes.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(profile, field, value)
    db.commit()
    db.refresh(profile)

    return {
        **profile.to_dict(),
        "profile_completion": profile.completion_percentage,
    }
