"""
Quizzes router for Learnity (student side).
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.schemas.quiz import QuizSubmission
from learnity.services import quiz as quiz_service
from learnity.services.catalog import can_manage
from learnity.services.enrollment import get_active_enrollment


router = APIRouter()


@router.get("/{quiz_id}")
async def get_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get a quiz without its answers.
    """
    quiz = quiz_service.get_quiz(db, quiz_id)
    if not can_manage(current_user, quiz.course):
        get_active_enrollment(db, current_user.id, quiz.course.id)

    data = quiz.to_dict()
    data["stats"] = quiz_service.get_stats(db, current_user.id, quiz.id)
    return data


@router.post("/{quiz_id}/submit", status_code=status.HTTP_201_CREATED)
async def submit_quiz(
    quiz_id: int,
    submission: QuizSubmission,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Submit answers for every question of a quiz and get the score back.
    """
    result = quiz_service.submit_attempt(
        db,
        current_user.id,
        quiz_id,
        [answer.model_dump() for answer in submission.answers],
        submission.time_taken
    )
    db.commit()
    return result


@router.get("/{quiz_id}/attempts")
async def list_quiz_attempts(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Attempts of the current user on a quiz, newest first.
    """
    quiz = quiz_service.get_quiz(db, quiz_id)
    attempts = quiz_service.list_attempts(db, current_user.id, quiz.id)
    best = quiz_service.get_best_attempt(db, current_user.id, quiz.id)

    return {
        "attempts": [attempt.to_dict() for attempt in attempts],
        "best_attempt": best.to_dict() if best else None,
        "stats": quiz_service.get_stats(db, current_user.id, quiz.id),
    }
