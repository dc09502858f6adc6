"""
Course models for Learnity.

Defines Category, Course, Section and Lesson models for the course
catalog. Lessons are ordered inside sections and sections inside a
course; that combined order drives sequential unlocking.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text, Float, Numeric,
    ForeignKey, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from learnity.core.database import Base


class Difficulty(str, Enum):
    """Difficulty levels for courses."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CourseStatus(str, Enum):
    """Publishing status of a course."""
    DRAFT = "draft"
    PUBLISHED = "published"
    UNPUBLISHED = "unpublished"


class LessonType(str, Enum):
    """Types of lessons in a section."""
    VIDEO = "video"
    QUIZ = "quiz"


class Category(Base):
    """
    Course category used for catalog filtering.
    """
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    courses = relationship("Course", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug='{self.slug}')>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "icon": self.icon,
        }


class Course(Base):
    """
    Course owned by a teacher, made of ordered sections.
    """
    __tablename__ = "courses"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Basic information
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Ownership and classification
    teacher_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("categories.id"), nullable=True)
    difficulty: Mapped[str] = mapped_column(
        String(20),
        default=Difficulty.BEGINNER.value,
        nullable=False
    )
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # Publishing and pricing
    status: Mapped[str] = mapped_column(
        String(20),
        default=CourseStatus.DRAFT.value,
        nullable=False
    )
    is_free: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    require_sequential_progress: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Contact channels shown to enrolled students
    whatsapp_group_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_whatsapp: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Cached statistics
    total_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # seconds
    lesson_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    enrollment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    teacher = relationship("User", back_populates="courses")
    category = relationship("Category", back_populates="courses")
    sections = relationship(
        "Section",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Section.order"
    )
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="course", cascade="all, delete-orphan")
    certificates = relationship("Certificate", back_populates="course", cascade="all, delete-orphan")
    room = relationship("CourseRoom", back_populates="course", uselist=False, cascade="all, delete-orphan")

    # Table constraints
    __table_args__ = (
        CheckConstraint("average_rating >= 0 AND average_rating <= 5", name="check_rating_range"),
        CheckConstraint("enrollment_count >= 0", name="check_enrollment_count_positive"),
        CheckConstraint("price IS NULL OR price >= 0", name="check_price_positive"),
        Index("idx_course_status_category", "status", "category_id"),
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, title='{self.title}', slug='{self.slug}')>"

    @property
    def is_paid(self) -> bool:
        return not self.is_free and self.price is not None and self.price > 0

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatus.PUBLISHED.value

    def ordered_lessons(self) -> List["Lesson"]:
        """All lessons flattened in section then lesson order."""
        lessons = []
        for section in self.sections:
            lessons.extend(section.lessons)
        return lessons

    def update_statistics(self) -> None:
        """Refresh cached lesson count and duration."""
        lessons = self.ordered_lessons()
        self.lesson_count = len(lessons)
        self.total_duration = sum(lesson.duration for lesson in lessons)

    def to_dict(self, include_sections: bool = False) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "thumbnail_url": self.thumbnail_url,
            "teacher": self.teacher.to_public_dict() if self.teacher else None,
            "category": self.category.to_dict() if self.category else None,
            "difficulty": self.difficulty,
            "tags": self.tags or [],
            "status": self.status,
            "is_free": self.is_free,
            "price": float(self.price) if self.price is not None else None,
            "require_sequential_progress": self.require_sequential_progress,
            "total_duration": self.total_duration,
            "lesson_count": self.lesson_count,
            "enrollment_count": self.enrollment_count,
            "average_rating": self.average_rating,
            "review_count": self.review_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "published_at": self.published_at.isoformat() if self.published_at else None,
        }
        if include_sections:
            data["whatsapp_group_link"] = self.whatsapp_group_link
            data["contact_email"] = self.contact_email
            data["contact_whatsapp"] = self.contact_whatsapp
            data["sections"] = [section.to_dict() for section in self.sections]
        return data


class Section(Base):
    """
    Ordered group of lessons within a course.
    """
    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    course = relationship("Course", back_populates="sections")
    lessons = relationship(
        "Lesson",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="Lesson.order"
    )

    __table_args__ = (
        CheckConstraint('"order" >= 0', name="check_section_order_positive"),
    )

    def __repr__(self) -> str:
        return f"<Section(id={self.id}, course_id={self.course_id}, order={self.order})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "lessons": [lesson.to_dict() for lesson in self.lessons],
        }


class Lesson(Base):
    """
    A single video or quiz lesson.
    """
    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), default=LessonType.VIDEO.value, nullable=False)
    youtube_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    youtube_id: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # seconds
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    section = relationship("Section", back_populates="lessons")
    quiz = relationship("Quiz", back_populates="lesson", uselist=False, cascade="all, delete-orphan")
    progress_records = relationship("LessonProgress", back_populates="lesson", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("duration >= 0", name="check_lesson_duration_positive"),
        CheckConstraint('"order" >= 0', name="check_lesson_order_positive"),
    )

    def __repr__(self) -> str:
        return f"<Lesson(id={self.id}, section_id={self.section_id}, type='{self.type}')>"

    @property
    def course(self) -> Course:
        return self.section.course

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "section_id": self.section_id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "youtube_url": self.youtube_url,
            "youtube_id": self.youtube_id,
            "duration": self.duration,
            "order": self.order,
            "quiz_id": self.quiz.id if self.quiz else None,
        }
