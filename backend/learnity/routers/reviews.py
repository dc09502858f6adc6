"""
Reviews router for Learnity.

Creating and listing reviews lives under the courses router; this one
handles changes to an existing review by its author.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.schemas.review import ReviewUpdate
from learnity.services import review as review_service


router = APIRouter()


@router.patch("/{review_id}")
async def update_review(
    review_id: int,
    review_data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    review = review_service.update_review(
        db, review_id, current_user.id, review_data.model_dump(exclude_unset=True)
    )
    db.commit()
    db.refresh(review)

    return review.to_dict()


@router.delete("/{review_id}")
async def delete_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    review_service.delete_review(db, review_id, current_user.id)
    db.commit()

    return {"message": "Review deleted successfully"}
