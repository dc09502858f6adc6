"""
Enrollment service for Learnity.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from learnity.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from learnity.models.course import Course
from learnity.models.progress import Enrollment, EnrollmentStatus
from learnity.services import wallet as wallet_service
from learnity.utils.pagination import paginate


logger = logging.getLogger(__name__)


def get_enrollment(db: Session, student_id: int, course_id: int) -> Optional[Enrollment]:
    return db.query(Enrollment).filter(
        Enrollment.student_id == student_id,
        Enrollment.course_id == course_id
    ).first()


def get_active_enrollment(db: Session, student_id: int, course_id: int) -> Enrollment:
    """
    Raises:
        ForbiddenError: NOT_ENROLLED unless the enrollment is active
    """
    enrollment = get_enrollment(db, student_id, course_id)
    if enrollment is None or enrollment.status != EnrollmentStatus.ACTIVE.value:
        raise ForbiddenError("You must be enrolled in this course", code="NOT_ENROLLED")
    return enrollment


def is_enrolled(db: Session, student_id: int, course_id: int) -> bool:
    enrollment = get_enrollment(db, student_id, course_id)
    return enrollment is not None and enrollment.status != EnrollmentStatus.UNENROLLED.value


def enroll(db: Session, student_id: int, course_id: int) -> Enrollment:
    """
    Enroll a student, charging the wallet for paid courses.

    A previously unenrolled student is reactivated without being charged
    again, and keeps a completion earned before unenrolling.
    """
    course = db.query(Course).filter(Course.id == course_id).first()
    if course is None:
        raise NotFoundError("Course", code="COURSE_NOT_FOUND")

    if not course.is_published:
        raise BadRequestError("Course is not published", code="COURSE_NOT_PUBLISHED")

    existing = get_enrollment(db, student_id, course_id)
    if existing:
        if existing.status != EnrollmentStatus.UNENROLLED.value:
            raise ConflictError("You are already enrolled in this course", code="ALREADY_ENROLLED")

        # A finished course stays finished
        if existing.completed_at is not None:
            existing.status = EnrollmentStatus.COMPLETED.value
        else:
            existing.status = EnrollmentStatus.ACTIVE.value
        existing.last_accessed_at = datetime.utcnow()
        course.enrollment_count += 1
        db.flush()
        logger.info(f"User {student_id} re-enrolled in course {course_id}")
        return existing

    if course.is_paid:
        wallet_service.purchase(
            db,
            student_id,
            course.price,
            description=f"Enrolled in course: {course.title}",
            course_id=course.id
        )

    now = datetime.utcnow()
    enrollment = Enrollment(
        student_id=student_id,
        course_id=course_id,
        status=EnrollmentStatus.ACTIVE.value,
        progress=0,
        enrolled_at=now,
        last_accessed_at=now
    )
    db.add(enrollment)
    course.enrollment_count += 1
    db.flush()

    logger.info(f"User {student_id} enrolled in course {course_id}")
    return enrollment


def unenroll(db: Session, student_id: int, course_id: int) -> Enrollment:
    """Mark an enrollment unenrolled; the row is kept as history."""
    enrollment = get_enrollment(db, student_id, course_id)
    if enrollment is None:
        raise NotFoundError("Enrollment", code="NOT_ENROLLED")

    if enrollment.status == EnrollmentStatus.UNENROLLED.value:
        raise BadRequestError("You have already unenrolled from this course", code="ALREADY_UNENROLLED")

    enrollment.status = EnrollmentStatus.UNENROLLED.value
    course = enrollment.course
    course.enrollment_count = max(course.enrollment_count - 1, 0)
    db.flush()

    logger.info(f"User {student_id} unenrolled from course {course_id}")
    return enrollment


def set_progress(db: Session, student_id: int, course_id: int, progress: int) -> Enrollment:
    if progress < 0 or progress > 100:
        raise BadRequestError("Progress must be between 0 and 100", code="INVALID_PROGRESS")

    enrollment = get_enrollment(db, student_id, course_id)
    if enrollment is None:
        raise NotFoundError("Enrollment", code="ENROLLMENT_NOT_FOUND")
    if enrollment.status != EnrollmentStatus.ACTIVE.value:
        raise BadRequestError("Cannot update progress for inactive enrollment", code="NOT_ENROLLED")

    enrollment.progress = round(progress)
    enrollment.last_accessed_at = datetime.utcnow()
    db.flush()
    return enrollment


def list_student_enrollments(
    db: Session,
    student_id: int,
    page: int,
    limit: int,
    status_filter: Optional[str] = None
) -> Dict[str, Any]:
    query = db.query(Enrollment).filter(Enrollment.student_id == student_id)
    if status_filter:
        query = query.filter(Enrollment.status == status_filter)
    query = query.order_by(Enrollment.last_accessed_at.desc(), Enrollment.id.desc())

    enrollments, meta = paginate(query, page, limit)
    return {
        "enrollments": [enrollment.to_dict(include_course=True) for enrollment in enrollments],
        **meta,
    }


def list_course_enrollments(
    db: Session,
    course_id: int,
    page: int,
    limit: int,
    status_filter: Optional[str] = None
) -> Dict[str, Any]:
    query = db.query(Enrollment).filter(Enrollment.course_id == course_id)
    if status_filter:
        query = query.filter(Enrollment.status == status_filter)
    query = query.order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())

    enrollments, meta = paginate(query, page, limit)
    return {
        "enrollments": [
            {**enrollment.to_dict(), "student": enrollment.student.to_public_dict()}
            for enrollment in enrollments
        ],
        **meta,
    }
