"""
Courses router for Learnity.

Handles the public catalog and the student side of a course: enrolling,
progress, reviews and live sessions.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.course import Course, Difficulty
from learnity.models.user import User
from learnity.routers.auth import get_current_user, get_current_student, get_optional_user
from learnity.schemas.review import ReviewCreate
from learnity.services import catalog, enrollment as enrollment_service, review as review_service
from learnity.services import sessions as session_service
from learnity.services.progress import get_course_progress


router = APIRouter()

CONTACT_FIELDS = ("whatsapp_group_link", "contact_email", "contact_whatsapp")


def _course_detail(db: Session, course: Course, user: Optional[User]) -> Dict[str, Any]:
    data = course.to_dict(include_sections=True)
    enrolled = user is not None and enrollment_service.is_enrolled(db, user.id, course.id)
    data["is_enrolled"] = enrolled

    # Contact channels are for enrolled students and the course staff
    if not enrolled and not catalog.can_manage(user, course):
        for field in CONTACT_FIELDS:
            data.pop(field, None)
    return data


@router.get("")
async def list_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: Optional[str] = None,
    difficulty: Optional[Difficulty] = None,
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    is_free: Optional[bool] = None,
    search: Optional[str] = None,
    sort: str = Query("popular", pattern="^(popular|rating|newest)$"),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    List published courses with optional filtering and sorting.
    """
    return catalog.browse_courses(
        db,
        page=page,
        limit=limit,
        category=category,
        difficulty=difficulty.value if difficulty else None,
        min_rating=min_rating,
        is_free=is_free,
        search=search,
        sort=sort
    )


@router.get("/slug/{slug}")
async def get_course_by_slug(
    slug: str,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get a course with its sections and lessons by slug.
    """
    course = catalog.get_visible_course(db, catalog.get_course_by_slug(db, slug), current_user)
    return _course_detail(db, course, current_user)


@router.get("/{course_id}")
async def get_course(
    course_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get a course with its sections and lessons.
    """
    course = catalog.get_visible_course(db, catalog.get_course(db, course_id), current_user)
    return _course_detail(db, course, current_user)


@router.post("/{course_id}/enroll", status_code=status.HTTP_201_CREATED)
async def enroll_in_course(
    course_id: int,
    current_user: User = Depends(get_current_student),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Enroll the current student; paid courses are charged to the wallet.
    """
    enrollment = enrollment_service.enroll(db, current_user.id, course_id)
    db.commit()
    db.refresh(enrollment)

    return {
        "message": "Successfully enrolled in course",
        "enrollment": enrollment.to_dict(include_course=True),
    }


@router.delete("/{course_id}/enroll")
async def unenroll_from_course(
    course_id: int,
    current_user: User = Depends(get_current_student),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Leave a course; progress history is kept.
    """
    enrollment = enrollment_service.unenroll(db, current_user.id, course_id)
    db.commit()
    db.refresh(enrollment)

    return {
        "message": "Successfully unenrolled from course",
        "enrollment": enrollment.to_dict(),
    }


@router.get("/{course_id}/enrollment")
async def get_enrollment_status(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Whether the current user is enrolled in a course.
    """
    enrollment = enrollment_service.get_enrollment(db, current_user.id, course_id)
    return {
        "is_enrolled": enrollment_service.is_enrolled(db, current_user.id, course_id),
        "enrollment": enrollment.to_dict() if enrollment else None,
    }


@router.get("/{course_id}/progress")
async def get_progress(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Section by section progress of the current user in a course.
    """
    return get_course_progress(db, current_user.id, course_id)


@router.get("/{course_id}/reviews")
async def list_course_reviews(
    course_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Reviews of a course, newest first, with the rating summary.
    """
    catalog.get_course(db, course_id)
    return review_service.list_reviews(db, course_id, page, limit, min_rating)


@router.get("/{course_id}/reviews/eligibility")
async def get_review_eligibility(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return review_service.get_eligibility(db, current_user.id, course_id)


@router.post("/{course_id}/reviews", status_code=status.HTTP_201_CREATED)
async def create_course_review(
    course_id: int,
    review_data: ReviewCreate,
    current_user: User = Depends(get_current_student),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Review a course the student has made enough progress in.
    """
    review = review_service.create_review(
        db, current_user.id, course_id, review_data.rating, review_data.comment
    )
    db.commit()
    db.refresh(review)

    return review.to_dict()


@router.get("/{course_id}/live-sessions")
async def list_course_live_sessions(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Live sessions of a course, for its teacher and enrolled students.
    """
    course = catalog.get_course(db, course_id)
    sessions = session_service.list_live_sessions(db, course, current_user)
    return {"sessions": [session.to_dict() for session in sessions]}
