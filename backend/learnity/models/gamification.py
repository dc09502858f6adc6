"""
Gamification models for Learnity.

UserProgress keeps the running XP, level and streak of a user,
XPActivity is the append-only XP ledger and Badge records unlocked
achievements.
"""

from datetime import datetime
from typing import Optional
from enum import Enum
from sqlalchemy import (
    Integer, String, DateTime,
    ForeignKey, UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from learnity.core.database import Base


class XPReason(str, Enum):
    """Why XP was awarded."""
    LESSON_COMPLETE = "lesson_complete"
    QUIZ_PASS = "quiz_pass"
    COURSE_COMPLETE = "course_complete"
    DAILY_LOGIN = "daily_login"
    STREAK_BONUS = "streak_bonus"


class BadgeType(str, Enum):
    """Unlockable badges."""
    FIRST_COURSE_COMPLETE = "first_course_complete"
    FIVE_COURSES_COMPLETE = "five_courses_complete"
    TEN_COURSES_COMPLETE = "ten_courses_complete"
    STREAK_7_DAYS = "streak_7_days"
    STREAK_30_DAYS = "streak_30_days"
    STREAK_100_DAYS = "streak_100_days"
    QUIZ_MASTER = "quiz_master"
    TOP_REVIEWER = "top_reviewer"


class UserProgress(Base):
    """
    Aggregated XP, level and streak for a user.
    """
    __tablename__ = "user_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    # XP and level tracking
    total_xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Streak tracking
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_activity_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    user = relationship("User", back_populates="progress")

    __table_args__ = (
        CheckConstraint("total_xp >= 0", name="check_xp_positive"),
        CheckConstraint("current_level >= 1", name="check_level_positive"),
        CheckConstraint("current_streak >= 0", name="check_streak_positive"),
        CheckConstraint("longest_streak >= current_streak", name="check_longest_streak"),
        Index("idx_user_progress_xp", "total_xp"),
    )

    def __repr__(self) -> str:
        return f"<UserProgress(user_id={self.user_id}, xp={self.total_xp}, level={self.current_level})>"

    def update_streak(self, activity_date: datetime) -> None:
        """Update the daily learning streak for an activity at ``activity_date``."""
        if not self.last_activity_at:
            # First activity
            self.current_streak = 1
        else:
            days_diff = (activity_date.date() - self.last_activity_at.date()).days

            if days_diff == 0:
                # Same day activity, no change
                pass
            elif days_diff == 1:
                self.current_streak += 1
            else:
                # Streak broken
                self.current_streak = 1

        if self.current_streak > self.longest_streak:
            self.longest_streak = self.current_streak
        self.last_activity_at = activity_date


class XPActivity(Base):
    """
    XP transaction history for users.
    """
    __tablename__ = "xp_activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    # Id of the lesson, quiz or course that triggered the award
    source_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    user = relationship("User")

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_xp_amount_positive"),
        Index("idx_xp_activity_user_created", "user_id", "created_at"),
        Index("idx_xp_activity_user_reason", "user_id", "reason", "source_id"),
    )

    def __repr__(self) -> str:
        return f"<XPActivity(user_id={self.user_id}, amount={self.amount}, reason='{self.reason}')>"

    @classmethod
    def create_activity(
        cls,
        user_id: int,
        amount: int,
        reason: str,
        source_id: Optional[str] = None
    ) -> "XPActivity":
        """Factory method to create XP ledger rows."""
        return cls(
            user_id=user_id,
            amount=amount,
            reason=reason,
            source_id=source_id
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "reason": self.reason,
            "source_id": self.source_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Badge(Base):
    """
    Badge unlocked by a user; at most one row per user and type.
    """
    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    user = relationship("User", back_populates="badges")

    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_user_badge_type"),
    )

    def __repr__(self) -> str:
        return f"<Badge(user_id={self.user_id}, type='{self.type}')>"
