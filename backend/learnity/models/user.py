"""
User models for Learnity.

Defines the User table with authentication fields and role, plus the
role specific StudentProfile and TeacherProfile (teacher application).
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text, Float,
    ForeignKey, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from learnity.core.database import Base


class UserRole(str, Enum):
    """Platform roles."""
    STUDENT = "student"
    TEACHER = "teacher"
    PENDING_TEACHER = "pending_teacher"
    REJECTED_TEACHER = "rejected_teacher"
    ADMIN = "admin"


class ApplicationStatus(str, Enum):
    """Status of a teacher application."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(Base):
    """
    User model for authentication and profile management.
    """
    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Authentication fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.STUDENT.value,
        nullable=False,
        index=True
    )

    # Profile fields
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    profile_picture: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Status fields
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

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
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    student_profile = relationship(
        "StudentProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    teacher_profile = relationship(
        "TeacherProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        foreign_keys="TeacherProfile.user_id"
    )
    progress = relationship(
        "UserProgress", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    courses = relationship("Course", back_populates="teacher")
    enrollments = relationship("Enrollment", back_populates="student", cascade="all, delete-orphan")
    badges = relationship("Badge", back_populates="user", cascade="all, delete-orphan")
    wallet = relationship("Wallet", back_populates="user", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "role IN ('student', 'teacher', 'pending_teacher', 'rejected_teacher', 'admin')",
            name="check_user_role"
        ),
        Index("idx_user_email_active", "email", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER.value

    def to_public_dict(self) -> dict:
        """Minimal representation used when embedding users in other payloads."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "profile_picture": self.profile_picture,
        }

    def to_dict(self, include_sensitive: bool = False) -> dict:
        """Convert user to dictionary representation."""
        data = {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "role": self.role,
            "profile_picture": self.profile_picture,
            "is_active": self.is_active,
            "email_verified": self.email_verified,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
        }

        if include_sensitive:
            data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None

        return data


class StudentProfile(Base):
    """
    Learning preferences for a student account.
    """
    __tablename__ = "student_profiles"

    BASE_COMPLETION = 20
    COMPLETION_STEP = 20

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    grade_level: Mapped[str] = mapped_column(String(50), nullable=False)
    subjects: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    learning_goals: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    interests: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    study_preferences: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    profile_completion_percentage: Mapped[int] = mapped_column(Integer, default=20, nullable=False)

    user = relationship("User", back_populates="student_profile")

    __table_args__ = (
        CheckConstraint(
            "profile_completion_percentage >= 0 AND profile_completion_percentage <= 100",
            name="check_student_completion_range"
        ),
    )

    def update_completion(self) -> None:
        """Recalculate profile completion from the optional fields."""
        percentage = self.BASE_COMPLETION
        for field in (self.learning_goals, self.interests, self.study_preferences, self.subjects):
            if field:
                percentage += self.COMPLETION_STEP
        self.profile_completion_percentage = min(percentage, 100)

    def to_dict(self) -> dict:
        return {
            "grade_level": self.grade_level,
            "subjects": self.subjects or [],
            "learning_goals": self.learning_goals or [],
            "interests": self.interests or [],
            "study_preferences": self.study_preferences or [],
            "profile_completion_percentage": self.profile_completion_percentage,
        }


class TeacherProfile(Base):
    """
    Teacher profile doubling as the teacher application reviewed by admins.
    """
    __tablename__ = "teacher_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    # Application
    application_status: Mapped[str] = mapped_column(
        String(20),
        default=ApplicationStatus.PENDING.value,
        nullable=False,
        index=True
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Credentials
    qualifications: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    subjects: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # years
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hourly_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    documents: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    video_intro_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    available_days: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # Teaching record
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    lessons_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    user = relationship("User", back_populates="teacher_profile", foreign_keys=[user_id])
    reviewer = relationship("User", foreign_keys=[approved_by])

    __table_args__ = (
        CheckConstraint("experience >= 0", name="check_experience_positive"),
        Index("idx_teacher_profile_status_submitted", "application_status", "submitted_at"),
    )

    def __repr__(self) -> str:
        return f"<TeacherProfile(user_id={self.user_id}, status='{self.application_status}')>"

    def completion_items(self) -> List[dict]:
        """Checklist used to score how complete an application is."""
        picture = self.user.profile_picture if self.user else None
        return [
            {"id": "bio", "title": "Professional Bio", "category": "required",
             "completed": bool(self.bio) and len(self.bio) > 50},
            {"id": "video", "title": "Intro Video", "category": "recommended",
             "completed": bool(self.video_intro_url)},
            {"id": "documents", "title": "Verify Degrees", "category": "required",
             "completed": bool(self.documents)},
            {"id": "qualifications", "title": "List Qualifications", "category": "required",
             "completed": bool(self.qualifications)},
            {"id": "subjects", "title": "Teaching Subjects", "category": "required",
             "completed": bool(self.subjects)},
            {"id": "availability", "title": "Teaching Hours", "category": "recommended",
             "completed": bool(self.available_days)},
            {"id": "profile_picture", "title": "Profile Picture", "category": "recommended",
             "completed": bool(picture)},
            {"id": "experience", "title": "Years of Experience", "category": "required",
             "completed": self.experience > 0},
        ]

    @property
    def completion_percentage(self) -> int:
        items = self.completion_items()
        done = len([item for item in items if item["completed"]])
        return int(done * 100 / len(items) + 0.5)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "application_status": self.application_status,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "approved_by": self.approved_by,
            "rejection_reason": self.rejection_reason,
            "qualifications": self.qualifications or [],
            "subjects": self.subjects or [],
            "experience": self.experience,
            "bio": self.bio,
            "hourly_rate": self.hourly_rate,
            "documents": self.documents or [],
            "video_intro_url": self.video_intro_url,
            "available_days": self.available_days or [],
            "rating": self.rating,
            "lessons_completed": self.lessons_completed,
        }
