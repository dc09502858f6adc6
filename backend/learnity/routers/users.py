"""
User profile router for Learnity.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.core.errors import NotFoundError
from learnity.models.admin import AuditEventType
from learnity.models.user import User
from learnity.routers.auth import get_current_user, get_current_student
from learnity.schemas.auth import StudentProfileUpdate, UserUpdate
from learnity.services import audit


router = APIRouter()


@router.put("/me")
async def update_me(
    changes: UserUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Update name and profile picture.
    """
    values = changes.model_dump(exclude_unset=True)
    for field, value in values.items():
        setattr(current_user, field, value)

    audit.log_event(
        db,
        user_id=current_user.id,
        event_type=AuditEventType.PROFILE_UPDATE.value,
        action="Profile updated",
        request=request,
        entity_type="user",
        entity_id=current_user.id,
        new_values=values
    )
    db.commit()
    db.refresh(current_user)

    return current_user.to_dict()


@router.put("/me/student-profile")
async def update_student_profile(
    changes: StudentProfileUpdate,
    current_user: User = Depends(get_current_student),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Update learning preferences and recompute profile completion.
    """
    profile = current_user.student_profile
    if profile is None:
        raise NotFoundError("Student profile", code="PROFILE_NOT_FOUND")

    for field, value in changes.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(profile, field, value)
    profile.update_completion()
    db.commit()
    db.refresh(profile)

    return profile.to_dict()
