"""
Lesson progress and course completion.

Marking a lesson complete awards LESSON_COMPLETE XP the first time only,
recomputes the enrollment percentage and checks whether the whole
course is done. Course completion pays out once: XP, badges and a
certificate.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, Set

from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.errors import BadRequestError, ForbiddenError, NotFoundError
from learnity.models.course import Course, Lesson
from learnity.models.progress import Enrollment, EnrollmentStatus, LessonProgress
from learnity.models.quiz import QuizAttempt
from learnity.models.gamification import XPReason
from learnity.services import enrollment as enrollment_service
from learnity.services import gamification
from learnity.services.certificate import issue_certificate
from learnity.utils.learning_path import (
    is_lesson_unlocked, section_states, next_lesson, percentage
)


logger = logging.getLogger(__name__)


def get_lesson(db: Session, lesson_id: int) -> Lesson:
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if lesson is None:
        raise NotFoundError("Lesson", code="LESSON_NOT_FOUND")
    return lesson


def completed_lesson_ids(db: Session, student_id: int, course: Course) -> Set[int]:
    lesson_ids = [lesson.id for lesson in course.ordered_lessons()]
    if not lesson_ids:
        return set()
    rows = db.query(LessonProgress.lesson_id).filter(
        LessonProgress.student_id == student_id,
        LessonProgress.lesson_id.in_(lesson_ids),
        LessonProgress.completed == True  # noqa: E712
    ).all()
    return {lesson_id for (lesson_id,) in rows}


def lesson_access(db: Session, student_id: int, lesson: Lesson) -> bool:
    course = lesson.course
    return is_lesson_unlocked(course, lesson.id, completed_lesson_ids(db, student_id, course))


def _check_access(db: Session, student_id: int, lesson: Lesson) -> Enrollment:
    enrollment = enrollment_service.get_active_enrollment(db, student_id, lesson.course.id)
    if not lesson_access(db, student_id, lesson):
        raise ForbiddenError(
            "This lesson is locked. Complete the previous lesson first.",
            code="SECTION_LOCKED"
        )
    return enrollment


def _get_or_create_lesson_progress(db: Session, student_id: int, lesson_id: int) -> LessonProgress:
    progress = db.query(LessonProgress).filter(
        LessonProgress.student_id == student_id,
        LessonProgress.lesson_id == lesson_id
    ).first()
    if progress is None:
        progress = LessonProgress(
            student_id=student_id,
            lesson_id=lesson_id,
            watched_seconds=0,
            last_position=0,
            completed=False
        )
        db.add(progress)
        db.flush()
    return progress


def update_lesson_progress(
    db: Session,
    student_id: int,
    lesson_id: int,
    watched_seconds: int,
    last_position: Optional[int] = None
) -> Dict[str, Any]:
    """
    Store watch progress and auto-complete past the completion threshold.
    """
    if watched_seconds < 0 or (last_position is not None and last_position < 0):
        raise BadRequestError("Progress values cannot be negative", code="INVALID_PROGRESS")

    lesson = get_lesson(db, lesson_id)
    enrollment = _check_access(db, student_id, lesson)

    progress = _get_or_create_lesson_progress(db, student_id, lesson_id)
    progress.watched_seconds = max(progress.watched_seconds, watched_seconds)
    progress.last_position = last_position if last_position is not None else watched_seconds
    enrollment.last_accessed_at = datetime.utcnow()
    db.flush()

    should_complete = (
        not progress.completed
        and lesson.duration > 0
        and progress.watched_seconds >= lesson.duration * settings.LESSON_COMPLETION_THRESHOLD
    )
    if should_complete:
        result = mark_lesson_complete(db, student_id, lesson_id)
        result["auto_completed"] = True
        return result

    return {
        "lesson_progress": progress.to_dict(),
        "auto_completed": False,
        "xp_awarded": 0,
    }


def mark_lesson_complete(db: Session, student_id: int, lesson_id: int) -> Dict[str, Any]:
    """Complete a lesson. Calling it again changes nothing but the access time."""
    lesson = get_lesson(db, lesson_id)
    enrollment = _check_access(db, student_id, lesson)

    progress = _get_or_create_lesson_progress(db, student_id, lesson_id)
    first_completion = not progress.completed

    xp_awarded = 0
    streak = None
    if first_completion:
        progress.completed = True
        progress.completed_at = datetime.utcnow()
        progress.watched_seconds = max(progress.watched_seconds, lesson.duration)
        db.flush()

        xp_awarded = gamification.award_reward(
            db, student_id, XPReason.LESSON_COMPLETE, source_id=lesson_id
        )["xp_awarded"]
        streak = gamification.update_streak(db, student_id)

    enrollment.last_accessed_at = datetime.utcnow()
    enrollment_progress = recalculate_enrollment_progress(db, enrollment)
    completion = check_course_completion(db, student_id, lesson.course.id)

    return {
        "lesson_progress": progress.to_dict(),
        "auto_completed": False,
        "already_completed": not first_completion,
        "xp_awarded": xp_awarded,
        "streak": streak,
        "enrollment_progress": enrollment_progress,
        "course_completed": completion["completed"],
        "certificate": completion["certificate"],
        "badges_unlocked": completion["badges_unlocked"],
    }


def recalculate_enrollment_progress(db: Session, enrollment: Enrollment) -> int:
    if enrollment.status == EnrollmentStatus.COMPLETED.value:
        return enrollment.progress

    course = enrollment.course
    total = len(course.ordered_lessons())
    done = len(completed_lesson_ids(db, enrollment.student_id, course))
    enrollment.progress = percentage(done, total)
    db.flush()
    return enrollment.progress


def _all_quizzes_passed(db: Session, student_id: int, course: Course) -> bool:
    quiz_ids = [lesson.quiz.id for lesson in course.ordered_lessons() if lesson.quiz]
    for quiz_id in quiz_ids:
        passed = db.query(QuizAttempt).filter(
            QuizAttempt.student_id == student_id,
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.passed == True  # noqa: E712
        ).first()
        if not passed:
            return False
    return True


def check_course_completion(db: Session, student_id: int, course_id: int) -> Dict[str, Any]:
    """
    Complete the enrollment once every lesson is done and every quiz passed.
    """
    result = {"completed": False, "newly_completed": False, "certificate": None, "badges_unlocked": []}

    enrollment = enrollment_service.get_enrollment(db, student_id, course_id)
    if enrollment is None or enrollment.status == EnrollmentStatus.UNENROLLED.value:
        return result

    if enrollment.status == EnrollmentStatus.COMPLETED.value or enrollment.completed_at is not None:
        result["completed"] = True
        return result

    course = enrollment.course
    lessons = course.ordered_lessons()
    if not lessons:
        return result

    done = completed_lesson_ids(db, student_id, course)
    if len(done) < len(lessons) or not _all_quizzes_passed(db, student_id, course):
        return result

    enrollment.status = EnrollmentStatus.COMPLETED.value
    enrollment.progress = 100
    enrollment.completed_at = datetime.utcnow()
    db.flush()
    logger.info(f"User {student_id} completed course {course_id}")

    gamification.award_reward(db, student_id, XPReason.COURSE_COMPLETE, source_id=course_id)
    badges = gamification.check_and_award_badges(db, student_id)
    certificate = issue_certificate(db, student_id, course_id)

    result.update({
        "completed": True,
        "newly_completed": True,
        "certificate": certificate.to_dict() if certificate else None,
        "badges_unlocked": badges,
    })
    return result


def get_course_progress(db: Session, student_id: int, course_id: int) -> Dict[str, Any]:
    course = db.query(Course).filter(Course.id == course_id).first()
    if course is None:
        raise NotFoundError("Course", code="COURSE_NOT_FOUND")

    enrollment = enrollment_service.get_enrollment(db, student_id, course_id)
    if enrollment is None or enrollment.status == EnrollmentStatus.UNENROLLED.value:
        raise ForbiddenError("You are not enrolled in this course", code="NOT_ENROLLED")

    records = {
        record.lesson_id: record
        for record in db.query(LessonProgress).filter(
            LessonProgress.student_id == student_id,
            LessonProgress.lesson_id.in_([lesson.id for lesson in course.ordered_lessons()] or [0])
        ).all()
    }
    done = {lesson_id for lesson_id, record in records.items() if record.completed}

    sections = []
    for state in section_states(course, done):
        section = state["section"]
        lessons = []
        for lesson in section.lessons:
            record = records.get(lesson.id)
            lessons.append({
                "lesson_id": lesson.id,
                "title": lesson.title,
                "type": lesson.type,
                "order": lesson.order,
                "duration": lesson.duration,
                "completed": lesson.id in done,
                "watched_seconds": record.watched_seconds if record else 0,
                "last_position": record.last_position if record else 0,
            })
        sections.append({
            "section_id": section.id,
            "title": section.title,
            "order": section.order,
            "total_lessons": state["total_lessons"],
            "completed_lessons": state["completed_lessons"],
            "progress_percentage": state["progress_percentage"],
            "is_unlocked": state["is_unlocked"],
            "lessons": lessons,
        })

    total_lessons = len(course.ordered_lessons())
    upcoming = None
    if enrollment.status != EnrollmentStatus.COMPLETED.value:
        lesson = next_lesson(course, done)
        if lesson:
            upcoming = {"lesson_id": lesson.id, "title": lesson.title, "section_id": lesson.section_id}

    return {
        "course_id": course.id,
        "total_lessons": total_lessons,
        "completed_lessons": len(done),
        "progress_percentage": percentage(len(done), total_lessons),
        "time_spent": sum(record.watched_seconds for record in records.values()),
        "sections": sections,
        "next_lesson": upcoming,
        "is_completed": enrollment.status == EnrollmentStatus.COMPLETED.value,
        "completed_at": enrollment.completed_at.isoformat() if enrollment.completed_at else None,
    }
