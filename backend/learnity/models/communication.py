"""
Communication models for Learnity.

Covers one-on-one TutoringSession bookings, per-course CourseRoom and
its scheduled LiveSession broadcasts, and direct messaging between two
users (DirectChannel / Message).
"""

from datetime import datetime
from typing import Optional
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text,
    ForeignKey, UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from learnity.core.database import Base


class TutoringSessionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LiveSessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    ENDED = "ended"
    CANCELLED = "cancelled"


class TutoringSession(Base):
    """
    One-on-one session requested by a student from a teacher.
    """
    __tablename__ = "tutoring_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    teacher_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=60, nullable=False)  # minutes
    status: Mapped[str] = mapped_column(
        String(20),
        default=TutoringSessionStatus.PENDING.value,
        nullable=False
    )

    room_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    room_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

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

    student = relationship("User", foreign_keys=[student_id])
    teacher = relationship("User", foreign_keys=[teacher_id])

    __table_args__ = (
        CheckConstraint("duration >= 15 AND duration <= 240", name="check_tutoring_duration"),
        Index("idx_tutoring_teacher_status", "teacher_id", "status"),
        Index("idx_tutoring_student_status", "student_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<TutoringSession(id={self.id}, status='{self.status}')>"

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.student_id, self.teacher_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "student": self.student.to_public_dict() if self.student else None,
            "teacher": self.teacher.to_public_dict() if self.teacher else None,
            "title": self.title,
            "description": self.description,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "duration": self.duration,
            "status": self.status,
            "room_id": self.room_id,
            "rejection_reason": self.rejection_reason,
            "cancellation_reason": self.cancellation_reason,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


class CourseRoom(Base):
    """
    Video and chat room shared by a course.
    """
    __tablename__ = "course_rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    room_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    room_name: Mapped[str] = mapped_column(String(100), nullable=False)
    chat_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    video_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    course = relationship("Course", back_populates="room")
    live_sessions = relationship(
        "LiveSession",
        back_populates="course_room",
        cascade="all, delete-orphan",
        order_by="LiveSession.scheduled_at"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "room_id": self.room_id,
            "room_name": self.room_name,
            "chat_enabled": self.chat_enabled,
            "video_enabled": self.video_enabled,
        }


class LiveSession(Base):
    """
    Scheduled broadcast held in a course room.
    """
    __tablename__ = "live_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    course_room_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("course_rooms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    host_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=60, nullable=False)  # minutes
    status: Mapped[str] = mapped_column(
        String(20),
        default=LiveSessionStatus.SCHEDULED.value,
        nullable=False
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    recording_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    max_participants: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    course_room = relationship("CourseRoom", back_populates="live_sessions")
    host = relationship("User")

    __table_args__ = (
        CheckConstraint("max_participants > 0", name="check_max_participants_positive"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "course_id": self.course_room.course_id if self.course_room else None,
            "host": self.host.to_public_dict() if self.host else None,
            "title": self.title,
            "description": self.description,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "duration": self.duration,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "recording_url": self.recording_url,
            "max_participants": self.max_participants,
        }


class DirectChannel(Base):
    """
    Conversation between exactly two users.

    ``user1_id`` is always the smaller id so a pair maps to one row.
    """
    __tablename__ = "direct_channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user1_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    user2_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    user1 = relationship("User", foreign_keys=[user1_id])
    user2 = relationship("User", foreign_keys=[user2_id])
    messages = relationship(
        "Message",
        back_populates="channel",
        cascade="all, delete-orphan",
        order_by="Message.id"
    )

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_direct_channel_pair"),
        CheckConstraint("user1_id < user2_id", name="check_channel_pair_order"),
    )

    def other_user(self, user_id: int):
        return self.user2 if user_id == self.user1_id else self.user1

    def has_member(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)


class Message(Base):
    """
    A single direct message.
    """
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    channel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("direct_channels.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    channel = relationship("DirectChannel", back_populates="messages")

    __table_args__ = (
        Index("idx_message_channel_created", "channel_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "sender_id": self.sender_id,
            "body": self.body,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
