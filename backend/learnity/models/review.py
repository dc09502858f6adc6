"""
Course review model for Learnity.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import (
    Integer, DateTime, Text,
    ForeignKey, UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from learnity.core.database import Base


class Review(Base):
    """
    Star rating with an optional comment; one per student and course.
    """
    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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

    student = relationship("User")
    course = relationship("Course", back_populates="reviews")

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_student_course_review"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="check_review_rating_range"),
        Index("idx_review_course_created", "course_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, course_id={self.course_id}, rating={self.rating})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "rating": self.rating,
            "comment": self.comment,
            "student": self.student.to_public_dict() if self.student else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
