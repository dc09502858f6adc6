"""
Course reviews and rating aggregation.
"""

import logging
import math
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from learnity.models.course import Course
from learnity.models.progress import EnrollmentStatus
from learnity.models.review import Review
from learnity.services import enrollment as enrollment_service
from learnity.services import gamification
from learnity.utils.pagination import paginate


logger = logging.getLogger(__name__)


def _round_rating(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def get_review(db: Session, review_id: int) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()
    if review is None:
        raise NotFoundError("Review", code="REVIEW_NOT_FOUND")
    return review


def get_eligibility(db: Session, student_id: int, course_id: int) -> Dict[str, Any]:
    """Whether a student may review a course, with the reason when not."""
    course = db.query(Course).filter(Course.id == course_id).first()
    if course is None:
        return {"can_review": False, "reason": "Course not found"}

    enrollment = enrollment_service.get_enrollment(db, student_id, course_id)
    if enrollment is None:
        return {
            "can_review": False,
            "reason": "You must be enrolled in this course to leave a review",
        }

    if enrollment.status == EnrollmentStatus.UNENROLLED.value:
        return {
            "can_review": False,
            "reason": "You have unenrolled from this course",
            "enrollment_progress": enrollment.progress,
        }

    if enrollment.progress < settings.REVIEW_MIN_PROGRESS:
        return {
            "can_review": False,
            "reason": f"You must complete at least {settings.REVIEW_MIN_PROGRESS}% of the course to leave a review",
            "enrollment_progress": enrollment.progress,
        }

    existing = db.query(Review).filter(
        Review.student_id == student_id,
        Review.course_id == course_id
    ).first()
    if existing:
        return {
            "can_review": False,
            "reason": "You have already reviewed this course",
            "enrollment_progress": enrollment.progress,
            "has_existing_review": True,
        }

    return {
        "can_review": True,
        "enrollment_progress": enrollment.progress,
        "has_existing_review": False,
    }


def recalculate_course_rating(db: Session, course: Course) -> None:
    ratings = [rating for (rating,) in db.query(Review.rating).filter(Review.course_id == course.id).all()]
    course.review_count = len(ratings)
    course.average_rating = _round_rating(sum(ratings) / len(ratings)) if ratings else 0.0
    db.flush()


def create_review(
    db: Session,
    student_id: int,
    course_id: int,
    rating: int,
    comment: Optional[str] = None
) -> Review:
    eligibility = get_eligibility(db, student_id, course_id)
    if not eligibility["can_review"]:
        if eligibility.get("has_existing_review"):
            raise ConflictError(eligibility["reason"], code="ALREADY_REVIEWED")
        progress = eligibility.get("enrollment_progress")
        if progress is not None and progress < settings.REVIEW_MIN_PROGRESS:
            raise BadRequestError(eligibility["reason"], code="INSUFFICIENT_PROGRESS")
        if eligibility["reason"] == "Course not found":
            raise NotFoundError("Course", code="COURSE_NOT_FOUND")
        raise BadRequestError(eligibility["reason"], code="NOT_ENROLLED")

    review = Review(student_id=student_id, course_id=course_id, rating=rating, comment=comment)
    db.add(review)
    db.flush()

    recalculate_course_rating(db, review.course)
    gamification.check_and_award_badges(db, student_id)
    logger.info(f"User {student_id} reviewed course {course_id} with {rating} stars")
    return review


def _check_owner(review: Review, student_id: int) -> None:
    if review.student_id != student_id:
        raise ForbiddenError("You can only modify your own reviews", code="NOT_REVIEW_OWNER")


def update_review(db: Session, review_id: int, student_id: int, changes: Dict[str, Any]) -> Review:
    review = get_review(db, review_id)
    _check_owner(review, student_id)

    if "rating" in changes and changes["rating"] is not None:
        review.rating = changes["rating"]
    if "comment" in changes:
        review.comment = changes["comment"]
    db.flush()

    recalculate_course_rating(db, review.course)
    return review


def delete_review(db: Session, review_id: int, student_id: int) -> None:
    review = get_review(db, review_id)
    _check_owner(review, student_id)

    course = review.course
    db.delete(review)
    db.flush()
    recalculate_course_rating(db, course)


def rating_summary(db: Session, course_id: int) -> Dict[str, Any]:
    distribution = {str(star): 0 for star in range(1, 6)}
    ratings = [rating for (rating,) in db.query(Review.rating).filter(Review.course_id == course_id).all()]
    for rating in ratings:
        distribution[str(rating)] += 1

    return {
        "average_rating": _round_rating(sum(ratings) / len(ratings)) if ratings else 0.0,
        "review_count": len(ratings),
        "rating_distribution": distribution,
    }


def list_reviews(
    db: Session,
    course_id: int,
    page: int,
    limit: int,
    min_rating: Optional[int] = None
) -> Dict[str, Any]:
    query = db.query(Review).filter(Review.course_id == course_id)
    if min_rating:
        query = query.filter(Review.rating >= min_rating)
    query = query.order_by(Review.created_at.desc(), Review.id.desc())

    reviews, meta = paginate(query, page, limit)
    return {
        "reviews": [review.to_dict() for review in reviews],
        "summary": rating_summary(db, course_id),
        **meta,
    }
