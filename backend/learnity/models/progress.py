"""
Progress tracking models for Learnity.

Defines Enrollment, LessonProgress and Certificate models for tracking
a student's way through a course.
"""

from datetime import datetime
from typing import Optional
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime,
    ForeignKey, UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from learnity.core.database import Base


class EnrollmentStatus(str, Enum):
    """Status of a student's enrollment in a course."""
    ACTIVE = "active"
    COMPLETED = "completed"
    UNENROLLED = "unenrolled"


class Enrollment(Base):
    """
    A student's registration in a course.
    """
    __tablename__ = "enrollments"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Student and course relationship
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )

    # Progress tracking
    status: Mapped[str] = mapped_column(
        String(20),
        default=EnrollmentStatus.ACTIVE.value,
        nullable=False
    )
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # percent

    # Timestamps
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_accessed_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    student = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")

    # Table constraints
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_student_course_enrollment"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="check_enrollment_progress"),
        Index("idx_enrollment_student_status", "student_id", "status"),
        Index("idx_enrollment_course_status", "course_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Enrollment(student_id={self.student_id}, course_id={self.course_id}, progress={self.progress}%)>"

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE.value

    def to_dict(self, include_course: bool = False) -> dict:
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "course_id": self.course_id,
            "status": self.status,
            "progress": self.progress,
            "enrolled_at": self.enrolled_at.isoformat() if self.enrolled_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "last_accessed_at": self.last_accessed_at.isoformat() if self.last_accessed_at else None,
        }
        if include_course and self.course:
            data["course"] = self.course.to_dict()
        return data


class LessonProgress(Base):
    """
    Watch position and completion of a lesson for one student.
    """
    __tablename__ = "lesson_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    lesson_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False
    )

    watched_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

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

    lesson = relationship("Lesson", back_populates="progress_records")

    __table_args__ = (
        UniqueConstraint("student_id", "lesson_id", name="uq_student_lesson_progress"),
        CheckConstraint("watched_seconds >= 0", name="check_watched_positive"),
        CheckConstraint("last_position >= 0", name="check_position_positive"),
        Index("idx_lesson_progress_student", "student_id", "completed"),
    )

    def __repr__(self) -> str:
        return f"<LessonProgress(student_id={self.student_id}, lesson_id={self.lesson_id}, completed={self.completed})>"

    def to_dict(self) -> dict:
        return {
            "lesson_id": self.lesson_id,
            "watched_seconds": self.watched_seconds,
            "last_position": self.last_position,
            "completed": self.completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class Certificate(Base):
    """
    Completion certificate, one per student and course.
    """
    __tablename__ = "certificates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    certificate_id: Mapped[str] = mapped_column(String(14), unique=True, nullable=False, index=True)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    student = relationship("User")
    course = relationship("Course", back_populates="certificates")

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_student_course_certificate"),
    )

    def __repr__(self) -> str:
        return f"<Certificate(certificate_id='{self.certificate_id}')>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "certificate_id": self.certificate_id,
            "student_id": self.student_id,
            "student_name": self.student.full_name if self.student else None,
            "course_id": self.course_id,
            "course_title": self.course.title if self.course else None,
            "issued_at": self.issued_at.isoformat() if self.issued_at else None,
        }
