"""
Course catalog service.

Categories, course authoring (sections and lessons) and the public
course browser.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session

from learnity.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from learnity.models.course import Category, Course, CourseStatus, Lesson, LessonType, Section
from learnity.models.progress import Enrollment
from learnity.models.user import User
from learnity.utils.pagination import paginate
from learnity.utils.text import slugify, extract_youtube_id


logger = logging.getLogger(__name__)

COURSE_SORTS = ("popular", "rating", "newest")
COURSE_FIELDS = (
    "title", "description", "thumbnail_url", "category_id", "difficulty", "tags",
    "is_free", "price", "require_sequential_progress",
    "whatsapp_group_link", "contact_email", "contact_whatsapp",
)


# Categories

def list_categories(db: Session) -> List[Category]:
    return db.query(Category).order_by(Category.name).all()


def create_category(
    db: Session,
    name: str,
    description: Optional[str] = None,
    icon: Optional[str] = None
) -> Category:
    slug = slugify(name)
    existing = db.query(Category).filter(
        or_(Category.slug == slug, Category.name == name)
    ).first()
    if existing:
        raise ConflictError("Category already exists", code="CATEGORY_EXISTS")

    category = Category(name=name, slug=slug, description=description, icon=icon)
    db.add(category)
    db.flush()
    return category


# Courses

def get_course(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if course is None:
        raise NotFoundError("Course", code="COURSE_NOT_FOUND")
    return course


def can_manage(user: Optional[User], course: Course) -> bool:
    return user is not None and (user.is_admin or course.teacher_id == user.id)


def check_course_owner(user: User, course: Course) -> None:
    if course.teacher_id != user.id:
        raise ForbiddenError("You can only manage your own courses")


def get_visible_course(db: Session, course: Course, user: Optional[User]) -> Course:
    """Drafts and unpublished courses are hidden from everyone but the owner and admins."""
    if not course.is_published and not can_manage(user, course):
        raise NotFoundError("Course", code="COURSE_NOT_FOUND")
    return course


def get_course_by_slug(db: Session, slug: str) -> Course:
    course = db.query(Course).filter(Course.slug == slug).first()
    if course is None:
        raise NotFoundError("Course", code="COURSE_NOT_FOUND")
    return course


def unique_course_slug(db: Session, title: str, exclude_id: Optional[int] = None) -> str:
    """Slug of ``title``, suffixed with -1, -2, ... until it is free."""
    base = slugify(title)
    candidate = base
    suffix = 0
    while True:
        query = db.query(Course.id).filter(Course.slug == candidate)
        if exclude_id is not None:
            query = query.filter(Course.id != exclude_id)
        if query.first() is None:
            return candidate
        suffix += 1
        candidate = f"{base}-{suffix}"


def _check_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is not None and db.query(Category).filter(Category.id == category_id).first() is None:
        raise NotFoundError("Category", code="CATEGORY_NOT_FOUND")


def create_course(db: Session, teacher_id: int, data: Dict[str, Any]) -> Course:
    """New courses always start as drafts."""
    _check_category(db, data.get("category_id"))

    values = {field: data[field] for field in COURSE_FIELDS if field in data}
    course = Course(
        **values,
        teacher_id=teacher_id,
        slug=unique_course_slug(db, data["title"]),
        status=CourseStatus.DRAFT.value
    )
    if course.is_free is None:
        course.is_free = True
    if course.is_free:
        course.price = None
    if course.tags is None:
        course.tags = []

    db.add(course)
    db.flush()
    logger.info(f"Teacher {teacher_id} created course {course.id} ({course.slug})")
    return course


def update_course(db: Session, course: Course, changes: Dict[str, Any]) -> Course:
    if "category_id" in changes:
        _check_category(db, changes["category_id"])

    for field in COURSE_FIELDS:
        if field in changes:
            setattr(course, field, changes[field])

    if "title" in changes:
        course.slug = unique_course_slug(db, course.title, exclude_id=course.id)
    if course.is_free:
        course.price = None

    db.flush()
    return course


def publish_course(db: Session, course: Course) -> Course:
    if not course.sections or not course.ordered_lessons():
        raise BadRequestError(
            "Course must have at least one section with a lesson before publishing",
            code="CANNOT_PUBLISH_EMPTY"
        )

    course.update_statistics()
    course.status = CourseStatus.PUBLISHED.value
    course.published_at = datetime.utcnow()
    db.flush()
    logger.info(f"Course {course.id} published")
    return course


def unpublish_course(db: Session, course: Course) -> Course:
    course.status = CourseStatus.UNPUBLISHED.value
    db.flush()
    logger.info(f"Course {course.id} unpublished")
    return course


def delete_course(db: Session, course: Course) -> None:
    has_enrollments = db.query(Enrollment.id).filter(Enrollment.course_id == course.id).first() is not None
    if course.status != CourseStatus.DRAFT.value and has_enrollments:
        raise BadRequestError(
            "Cannot delete a course that has enrollments. Unpublish it instead.",
            code="CANNOT_DELETE_WITH_ENROLLMENTS"
        )

    logger.info(f"Course {course.id} deleted")
    db.delete(course)
    db.flush()


def browse_courses(
    db: Session,
    page: int,
    limit: int,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    min_rating: Optional[float] = None,
    is_free: Optional[bool] = None,
    search: Optional[str] = None,
    sort: str = "popular"
) -> Dict[str, Any]:
    """
    Published courses matching the filters.

    ``category`` is a category slug. ``search`` matches title, description
    and tags case-insensitively.
    """
    if sort not in COURSE_SORTS:
        raise BadRequestError(f"Sort must be one of: {', '.join(COURSE_SORTS)}", code="INVALID_SORT")

    query = db.query(Course).filter(Course.status == CourseStatus.PUBLISHED.value)

    if category:
        query = query.join(Category, Course.category_id == Category.id).filter(Category.slug == category)
    if difficulty:
        query = query.filter(Course.difficulty == difficulty)
    if min_rating is not None:
        query = query.filter(Course.average_rating >= min_rating)
    if is_free is not None:
        query = query.filter(Course.is_free == is_free)
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                Course.title.ilike(search_term),
                Course.description.ilike(search_term),
                cast(Course.tags, String).ilike(search_term)
            )
        )

    if sort == "popular":
        query = query.order_by(Course.enrollment_count.desc(), Course.id.desc())
    elif sort == "rating":
        query = query.order_by(Course.average_rating.desc(), Course.review_count.desc(), Course.id.desc())
    else:
        query = query.order_by(Course.published_at.desc(), Course.id.desc())

    courses, meta = paginate(query, page, limit)
    return {"courses": [course.to_dict() for course in courses], **meta}


def list_teacher_courses(
    db: Session,
    teacher_id: int,
    page: int,
    limit: int,
    status_filter: Optional[str] = None
) -> Dict[str, Any]:
    query = db.query(Course).filter(Course.teacher_id == teacher_id)
    if status_filter:
        query = query.filter(Course.status == status_filter)
    query = query.order_by(Course.created_at.desc(), Course.id.desc())

    courses, meta = paginate(query, page, limit)
    return {"courses": [course.to_dict() for course in courses], **meta}


def _refresh_statistics(db: Session, course: Course) -> None:
    db.flush()
    db.refresh(course)
    course.update_statistics()
    db.flush()


# Sections

def get_section(db: Session, section_id: int) -> Section:
    section = db.query(Section).filter(Section.id == section_id).first()
    if section is None:
        raise NotFoundError("Section", code="SECTION_NOT_FOUND")
    return section


def create_section(db: Session, course: Course, data: Dict[str, Any]) -> Section:
    section = Section(
        title=data["title"],
        description=data.get("description"),
        order=len(course.sections)
    )
    course.sections.append(section)
    db.flush()
    return section


def update_section(db: Session, section: Section, changes: Dict[str, Any]) -> Section:
    for field in ("title", "description"):
        if field in changes:
            setattr(section, field, changes[field])
    db.flush()
    return section


def delete_section(db: Session, section: Section) -> None:
    course = section.course
    db.delete(section)
    _refresh_statistics(db, course)
    for index, remaining in enumerate(course.sections):
        remaining.order = index
    db.flush()


def _check_same_ids(requested: List[int], current: List[int], resource: str) -> None:
    if len(requested) != len(set(requested)) or sorted(requested) != sorted(current):
        raise BadRequestError(
            f"{resource} ids must list every {resource.lower()} exactly once",
            code="INVALID_ORDER"
        )


def reorder_sections(db: Session, course: Course, section_ids: List[int]) -> Course:
    sections = {section.id: section for section in course.sections}
    _check_same_ids(section_ids, list(sections), "Section")

    for index, section_id in enumerate(section_ids):
        sections[section_id].order = index
    db.flush()
    db.refresh(course)
    return course


# Lessons

def _resolve_video(lesson_type: str, youtube_url: Optional[str]) -> Optional[str]:
    if lesson_type != LessonType.VIDEO.value:
        return None

    youtube_id = extract_youtube_id(youtube_url)
    if youtube_id is None:
        raise BadRequestError("A valid YouTube URL is required for video lessons", code="INVALID_YOUTUBE_URL")
    return youtube_id


def create_lesson(db: Session, section: Section, data: Dict[str, Any]) -> Lesson:
    lesson_type = data.get("type") or LessonType.VIDEO.value
    youtube_id = _resolve_video(lesson_type, data.get("youtube_url"))

    lesson = Lesson(
        title=data["title"],
        description=data.get("description"),
        type=lesson_type,
        youtube_url=data.get("youtube_url") if youtube_id else None,
        youtube_id=youtube_id,
        duration=data.get("duration") or 0,
        order=len(section.lessons)
    )
    section.lessons.append(lesson)
    _refresh_statistics(db, section.course)
    return lesson


def update_lesson(db: Session, lesson: Lesson, changes: Dict[str, Any]) -> Lesson:
    lesson_type = changes.get("type") or lesson.type
    if "youtube_url" in changes or "type" in changes:
        youtube_url = changes.get("youtube_url", lesson.youtube_url)
        lesson.youtube_id = _resolve_video(lesson_type, youtube_url)
        lesson.youtube_url = youtube_url if lesson.youtube_id else None
        lesson.type = lesson_type

    for field in ("title", "description", "duration"):
        if field in changes and changes[field] is not None:
            setattr(lesson, field, changes[field])

    _refresh_statistics(db, lesson.course)
    return lesson


def delete_lesson(db: Session, lesson: Lesson) -> None:
    section = lesson.section
    db.delete(lesson)
    db.flush()
    db.refresh(section)
    for index, remaining in enumerate(section.lessons):
        remaining.order = index
    _refresh_statistics(db, section.course)


def reorder_lessons(db: Session, section: Section, lesson_ids: List[int]) -> Section:
    lessons = {lesson.id: lesson for lesson in section.lessons}
    _check_same_ids(lesson_ids, list(lessons), "Lesson")

    for index, lesson_id in enumerate(lesson_ids):
        lessons[lesson_id].order = index
    db.flush()
    db.refresh(section)
    return section
