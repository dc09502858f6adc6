"""
Lesson progress router for Learnity.

Tracks watch time, lesson completion and sequential unlocking.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.schemas.progress import LessonProgressUpdate
from learnity.services import progress as progress_service
from learnity.services.enrollment import is_enrolled


router = APIRouter()


@router.post("/{lesson_id}/progress")
async def update_lesson_progress(
    lesson_id: int,
    progress_data: LessonProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Record how far the user got in a lesson.

    The lesson completes on its own once 90% of it has been watched.
    """
    result = progress_service.update_lesson_progress(
        db,
        current_user.id,
        lesson_id,
        progress_data.watched_seconds,
        progress_data.last_position
    )
    db.commit()
    return result


@router.post("/{lesson_id}/complete")
async def complete_lesson(
    lesson_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Mark a lesson as completed.
    """
    result = progress_service.mark_lesson_complete(db, current_user.id, lesson_id)
    db.commit()
    return result


@router.get("/{lesson_id}/access")
async def check_lesson_access(
    lesson_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    lesson = progress_service.get_lesson(db, lesson_id)
    return {
        "lesson_id": lesson.id,
        "is_enrolled": is_enrolled(db, current_user.id, lesson.course.id),
        "unlocked": progress_service.lesson_access(db, current_user.id, lesson),
    }
