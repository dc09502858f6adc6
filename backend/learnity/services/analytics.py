"""
Course analytics and teacher dashboard statistics.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from learnity.models.course import Course, CourseStatus
from learnity.models.progress import Enrollment, EnrollmentStatus, LessonProgress
from learnity.models.quiz import QuizAttempt
from learnity.models.user import User
from learnity.utils.learning_path import percentage


PROGRESS_BUCKETS = (("0-25", 0, 25), ("25-50", 25, 50), ("50-75", 50, 75), ("75-100", 75, 101))
DROP_OFF_THRESHOLD = 20  # percent fewer completions than the previous lesson


def _average(values: List[int]) -> int:
    return int(sum(values) / len(values) + 0.5) if values else 0


def _quiz_performance(db: Session, course: Course) -> Dict[str, Any]:
    quizzes = [lesson.quiz for lesson in course.ordered_lessons() if lesson.quiz is not None]
    attempts = db.query(QuizAttempt).filter(
        QuizAttempt.quiz_id.in_([quiz.id for quiz in quizzes] or [0])
    ).all()

    stats = []
    for quiz in quizzes:
        quiz_attempts = [attempt for attempt in attempts if attempt.quiz_id == quiz.id]
        passed = len([attempt for attempt in quiz_attempts if attempt.passed])
        stats.append({
            "quiz_id": quiz.id,
            "title": quiz.title,
            "lesson_id": quiz.lesson_id,
            "total_attempts": len(quiz_attempts),
            "pass_rate": percentage(passed, len(quiz_attempts)),
            "average_score": _average([attempt.score for attempt in quiz_attempts]),
        })

    return {
        "total_quizzes": len(quizzes),
        "quiz_stats": stats,
        "overall_pass_rate": percentage(len([a for a in attempts if a.passed]), len(attempts)),
    }


def _lesson_engagement(db: Session, course: Course) -> List[Dict[str, Any]]:
    lessons = course.ordered_lessons()
    records = db.query(LessonProgress).filter(
        LessonProgress.lesson_id.in_([lesson.id for lesson in lessons] or [0])
    ).all()

    engagement = []
    for lesson in lessons:
        views = [record for record in records if record.lesson_id == lesson.id]
        completions = len([record for record in views if record.completed])
        engagement.append({
            "lesson_id": lesson.id,
            "title": lesson.title,
            "section_id": lesson.section_id,
            "total_views": len(views),
            "completions": completions,
            "completion_rate": percentage(completions, len(views)),
            "average_watch_time": _average([record.watched_seconds for record in views]),
            "duration": lesson.duration,
        })
    return engagement


def _drop_off_points(engagement: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    points = []
    for previous, lesson in zip(engagement, engagement[1:]):
        if not previous["completions"]:
            continue
        drop = (previous["completions"] - lesson["completions"]) * 100 / previous["completions"]
        if drop > DROP_OFF_THRESHOLD:
            points.append({
                "lesson_id": lesson["lesson_id"],
                "title": lesson["title"],
                "completion_rate": lesson["completion_rate"],
            })
    return points


def course_analytics(db: Session, course: Course) -> Dict[str, Any]:
    """
    Enrollment, progress, quiz and lesson engagement figures for one course.

    Unenrolled students count towards totals so drop-outs stay visible.
    """
    enrollments = db.query(Enrollment).filter(Enrollment.course_id == course.id).all()
    by_status = {state.value: 0 for state in EnrollmentStatus}
    for enrollment in enrollments:
        by_status[enrollment.status] = by_status.get(enrollment.status, 0) + 1

    distribution = {
        label: len([e for e in enrollments if low <= e.progress < high])
        for label, low, high in PROGRESS_BUCKETS
    }
    engagement = _lesson_engagement(db, course)

    return {
        "course_id": course.id,
        "overview": {
            "total_enrollments": len(enrollments),
            "enrollments_by_status": by_status,
            "completion_rate": percentage(by_status[EnrollmentStatus.COMPLETED.value], len(enrollments)),
            "average_progress": _average([enrollment.progress for enrollment in enrollments]),
            "average_rating": course.average_rating,
            "review_count": course.review_count,
            "lesson_count": course.lesson_count,
            "total_duration": course.total_duration,
        },
        "progress_distribution": distribution,
        "quiz_performance": _quiz_performance(db, course),
        "lesson_engagement": engagement,
        "drop_off_points": _drop_off_points(engagement),
    }


def teacher_stats(db: Session, teacher: User) -> Dict[str, Any]:
    """Totals across every course the teacher owns."""
    courses = db.query(Course).filter(Course.teacher_id == teacher.id).all()
    enrollments_by_status = {
        value: count for value, count in db.query(Enrollment.status, func.count(Enrollment.id)).join(
            Course, Enrollment.course_id == Course.id
        ).filter(Course.teacher_id == teacher.id).group_by(Enrollment.status).all()
    }
    recent_enrollments = db.query(func.count(Enrollment.id)).join(
        Course, Enrollment.course_id == Course.id
    ).filter(
        Course.teacher_id == teacher.id,
        Enrollment.enrolled_at >= datetime.utcnow() - timedelta(days=30)
    ).scalar() or 0

    total_reviews = sum(course.review_count for course in courses)
    weighted = sum(course.average_rating * course.review_count for course in courses)
    profile = teacher.teacher_profile

    return {
        "total_courses": len(courses),
        "published_courses": len([c for c in courses if c.status == CourseStatus.PUBLISHED.value]),
        "draft_courses": len([c for c in courses if c.status == CourseStatus.DRAFT.value]),
        "total_enrollments": sum(enrollments_by_status.values()),
        "active_enrollments": enrollments_by_status.get(EnrollmentStatus.ACTIVE.value, 0),
        "completed_enrollments": enrollments_by_status.get(EnrollmentStatus.COMPLETED.value, 0),
        "recent_enrollments": recent_enrollments,
        "total_lessons": sum(course.lesson_count for course in courses),
        "average_rating": round(weighted / total_reviews, 1) if total_reviews else 0.0,
        "total_reviews": total_reviews,
        "lessons_completed": profile.lessons_completed if profile else 0,
    }
