"""
Teacher router for Learnity.

Course authoring for approved teachers: courses, sections, lessons,
quizzes, course rooms and live sessions. Every route checks that the
caller owns the course it touches.
"""

import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.course import Course, CourseStatus, Lesson, Section
from learnity.models.progress import EnrollmentStatus
from learnity.models.quiz import Question, Quiz
from learnity.models.user import User, UserRole
from learnity.routers.auth import get_current_teacher, require_roles
from learnity.schemas.communication import LiveSessionCreate
from learnity.schemas.course import (
    CourseCreate, CourseUpdate, LessonCreate, LessonUpdate,
    ReorderRequest, SectionCreate, SectionUpdate
)
from learnity.schemas.quiz import QuestionCreate, QuestionUpdate, QuizCreate, QuizUpdate
from learnity.services import analytics, catalog, quiz as quiz_service, sessions as session_service
from learnity.services.enrollment import list_course_enrollments
from learnity.services.progress import get_lesson


logger = logging.getLogger(__name__)

router = APIRouter()


# Ownership helpers
def _owned_course(db: Session, course_id: int, user: User) -> Course:
    course = catalog.get_course(db, course_id)
    catalog.check_course_owner(user, course)
    return course


def _owned_section(db: Session, section_id: int, user: User) -> Section:
    section = catalog.get_section(db, section_id)
    catalog.check_course_owner(user, section.course)
    return section


def _owned_lesson(db: Session, lesson_id: int, user: User) -> Lesson:
    lesson = get_lesson(db, lesson_id)
    catalog.check_course_owner(user, lesson.course)
    return lesson


def _owned_quiz(db: Session, quiz_id: int, user: User) -> Quiz:
    quiz = quiz_service.get_quiz(db, quiz_id)
    catalog.check_course_owner(user, quiz.course)
    return quiz


def _owned_question(db: Session, question_id: int, user: User) -> Question:
    question = quiz_service.get_question(db, question_id)
    catalog.check_course_owner(user, question.quiz.course)
    return question


# Courses
@router.get("/courses")
async def list_my_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[CourseStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Courses of the current teacher, including drafts.
    """
    return catalog.list_teacher_courses(
        db,
        current_user.id,
        page,
        limit,
        status_filter=status_filter.value if status_filter else None
    )


@router.post("/courses", status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Create a new draft course.
    """
    course = catalog.create_course(db, current_user.id, course_data.model_dump())
    db.commit()
    db.refresh(course)

    return course.to_dict(include_sections=True)


@router.get("/courses/{course_id}")
async def get_my_course(
    course_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    course = _owned_course(db, course_id, current_user)
    return course.to_dict(include_sections=True)


@router.patch("/courses/{course_id}")
async def update_course(
    course_id: int,
    course_data: CourseUpdate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Update course details. Changing the title regenerates the slug.
    """
    course = _owned_course(db, course_id, current_user)
    catalog.update_course(db, course, course_data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(course)

    return course.to_dict(include_sections=True)


@router.post("/courses/{course_id}/publish")
async def publish_course(
    course_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    course = _owned_course(db, course_id, current_user)
    catalog.publish_course(db, course)
    db.commit()
    db.refresh(course)

    return {"message": "Course published successfully", "course": course.to_dict()}


@router.post("/courses/{course_id}/unpublish")
async def unpublish_course(
    course_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    course = _owned_course(db, course_id, current_user)
    catalog.unpublish_course(db, course)
    db.commit()
    db.refresh(course)

    return {"message": "Course unpublished successfully", "course": course.to_dict()}


@router.delete("/courses/{course_id}")
async def delete_course(
    course_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    """
    Delete a course. Published courses with students have to be unpublished instead.
    """
    course = _owned_course(db, course_id, current_user)
    catalog.delete_course(db, course)
    db.commit()

    return {"message": "Course deleted successfully"}


@router.get("/courses/{course_id}/enrollments")
async def list_enrollments(
    course_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[EnrollmentStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN)),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Students enrolled in a course, for its teacher and admins.
    """
    course = _owned_course(db, course_id, current_user)
    return list_course_enrollments(
        db,
        course.id,
        page,
        limit,
        status_filter=status_filter.value if status_filter else None
    )


@router.get("/courses/{course_id}/analytics")
async def get_course_analytics(
    course_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Enrollment, quiz and lesson engagement figures for an owned course.
    """
    course = _owned_course(db, course_id, current_user)
    return analytics.course_analytics(db, course)


@router.get("/stats")
async def get_teacher_stats(
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return analytics.teacher_stats(db, current_user)


# Sections
@router.post("/courses/{course_id}/sections", status_code=status.HTTP_201_CREATED)
async def create_section(
    course_id: int,
    section_data: SectionCreate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    course = _owned_course(db, course_id, current_user)
    section = catalog.create_section(db, course, section_data.model_dump())
    db.commit()
    db.refresh(section)

    return section.to_dict()


@router.put("/courses/{course_id}/sections/reorder")
async def reorder_sections(
    course_id: int,
    order: ReorderRequest,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Reorder sections; ``ids`` must list every section of the course once.
    """
    course = _owned_course(db, course_id, current_user)
    catalog.reorder_sections(db, course, order.ids)
    db.commit()
    db.refresh(course)

    return {"sections": [section.to_dict() for section in course.sections]}


@router.patch("/sections/{section_id}")
async def update_section(
    section_id: int,
    section_data: SectionUpdate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    section = _owned_section(db, section_id, current_user)
    catalog.update_section(db, section, section_data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(section)

    return section.to_dict()


@router.delete("/sections/{section_id}")
async def delete_section(
    section_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    section = _owned_section(db, section_id, current_user)
    catalog.delete_section(db, section)
    db.commit()

    return {"message": "Section deleted successfully"}


# Lessons
@router.post("/sections/{section_id}/lessons", status_code=status.HTTP_201_CREATED)
async def create_lesson(
    section_id: int,
    lesson_data: LessonCreate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Add a lesson at the end of a section. Video lessons need a YouTube URL.
    """
    section = _owned_section(db, section_id, current_user)
    lesson = catalog.create_lesson(db, section, lesson_data.model_dump())
    db.commit()
    db.refresh(lesson)

    return lesson.to_dict()


@router.put("/sections/{section_id}/lessons/reorder")
async def reorder_lessons(
    section_id: int,
    order: ReorderRequest,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    section = _owned_section(db, section_id, current_user)
    catalog.reorder_lessons(db, section, order.ids)
    db.commit()
    db.refresh(section)

    return section.to_dict()


@router.patch("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: int,
    lesson_data: LessonUpdate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    lesson = _owned_lesson(db, lesson_id, current_user)
    catalog.update_lesson(db, lesson, lesson_data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(lesson)

    return lesson.to_dict()


@router.delete("/lessons/{lesson_id}")
async def delete_lesson(
    lesson_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    lesson = _owned_lesson(db, lesson_id, current_user)
    catalog.delete_lesson(db, lesson)
    db.commit()

    return {"message": "Lesson deleted successfully"}


# Quizzes
@router.post("/lessons/{lesson_id}/quiz", status_code=status.HTTP_201_CREATED)
async def create_quiz(
    lesson_id: int,
    quiz_data: QuizCreate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Attach a quiz to a lesson. A lesson has at most one quiz.
    """
    lesson = _owned_lesson(db, lesson_id, current_user)
    quiz = quiz_service.create_quiz(db, lesson, quiz_data.model_dump())
    db.commit()
    db.refresh(quiz)

    return quiz.to_dict(include_answers=True)


@router.get("/quizzes/{quiz_id}")
async def get_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    quiz = _owned_quiz(db, quiz_id, current_user)
    return quiz.to_dict(include_answers=True)


@router.patch("/quizzes/{quiz_id}")
async def update_quiz(
    quiz_id: int,
    quiz_data: QuizUpdate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    quiz = _owned_quiz(db, quiz_id, current_user)
    quiz_service.update_quiz(db, quiz, quiz_data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(quiz)

    return quiz.to_dict(include_answers=True)


@router.delete("/quizzes/{quiz_id}")
async def delete_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    quiz = _owned_quiz(db, quiz_id, current_user)
    quiz_service.delete_quiz(db, quiz)
    db.commit()

    return {"message": "Quiz deleted successfully"}


@router.post("/quizzes/{quiz_id}/questions", status_code=status.HTTP_201_CREATED)
async def add_question(
    quiz_id: int,
    question_data: QuestionCreate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    quiz = _owned_quiz(db, quiz_id, current_user)
    question = quiz_service.add_question(db, quiz, question_data.model_dump())
    db.commit()
    db.refresh(question)

    return question.to_dict(include_answer=True)


@router.put("/quizzes/{quiz_id}/questions/reorder")
async def reorder_questions(
    quiz_id: int,
    order: ReorderRequest,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    quiz = _owned_quiz(db, quiz_id, current_user)
    quiz_service.reorder_questions(db, quiz, order.ids)
    db.commit()
    db.refresh(quiz)

    return quiz.to_dict(include_answers=True)


@router.patch("/questions/{question_id}")
async def update_question(
    question_id: int,
    question_data: QuestionUpdate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    question = _owned_question(db, question_id, current_user)
    quiz_service.update_question(db, question, question_data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(question)

    return question.to_dict(include_answer=True)


@router.delete("/questions/{question_id}")
async def delete_question(
    question_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    question = _owned_question(db, question_id, current_user)
    quiz_service.delete_question(db, question)
    db.commit()

    return {"message": "Question deleted successfully"}


# Course rooms and live sessions
@router.post("/courses/{course_id}/room")
async def create_course_room(
    course_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get the video room of a course, creating it on first use.
    """
    course = _owned_course(db, course_id, current_user)
    room = session_service.get_or_create_course_room(db, course)
    db.commit()
    db.refresh(room)

    return room.to_dict()


@router.post("/courses/{course_id}/live-sessions", status_code=status.HTTP_201_CREATED)
async def schedule_live_session(
    course_id: int,
    session_data: LiveSessionCreate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    course = _owned_course(db, course_id, current_user)
    live = session_service.schedule_live_session(db, course, current_user.id, session_data.model_dump())
    db.commit()
    db.refresh(live)
    logger.info(f"Teacher {current_user.id} scheduled live session {live.id} for course {course.id}")

    return live.to_dict()
