"""
Admin teachers router for Learnity.

Lists teacher applications and reviews them one by one or in batches.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.schemas.admin import ApplicationReview, BatchReview
from learnity.services import teacher_application


router = APIRouter()


@router.get("")
async def list_teacher_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    status: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Teachers and applicants with application stats.
    """
    return teacher_application.list_teachers(db, page, limit, status_filter=status, search=search)


@router.post("/batch-review")
async def batch_review_applications(
    review_data: BatchReview,
    request: Request,
    admin_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Review several applications at once; failures are reported per item.
    """
    result = teacher_application.batch_review(
        db,
        [item.model_dump() for item in review_data.items],
        admin_user.id,
        request=request
    )
    db.commit()
    return result


@router.post("/{user_id}/review")
async def review_application(
    user_id: int,
    review_data: ApplicationReview,
    request: Request,
    admin_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    user = teacher_application.review_application(
        db,
        user_id,
        review_data.decision,
        admin_user.id,
        rejection_reason=review_data.rejection_reason,
        request=request
    )
    db.commit()
    db.refresh(user)

    return {
        "message": f"Application {review_data.decision}",
        "user": user.to_dict(),
        "application": user.teacher_profile.to_dict(),
    }
