"""
Gamification service for Learnity.

Awards XP, keeps the daily streak, unlocks badges and builds the
leaderboard. XP and streaks live on ``UserProgress``; every award is
also written to the ``XPActivity`` ledger.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from sqlalchemy import func, distinct
from sqlalchemy.orm import Session

from learnity.core.errors import BadRequestError
from learnity.models.user import User
from learnity.models.gamification import UserProgress, XPActivity, Badge, BadgeType, XPReason
from learnity.models.progress import Enrollment, EnrollmentStatus
from learnity.models.quiz import QuizAttempt
from learnity.models.review import Review
from learnity.utils.xp_calculator import (
    XP_REWARDS, STREAK_BONUSES, calculate_level, level_progress
)
from learnity.utils.pagination import paginate


logger = logging.getLogger(__name__)


BADGE_INFO: Dict[str, Dict[str, str]] = {
    BadgeType.FIRST_COURSE_COMPLETE.value: {
        "name": "First Steps",
        "description": "Completed your first course",
        "icon": "🎓",
    },
    BadgeType.FIVE_COURSES_COMPLETE.value: {
        "name": "Dedicated Learner",
        "description": "Completed 5 courses",
        "icon": "📚",
    },
    BadgeType.TEN_COURSES_COMPLETE.value: {
        "name": "Knowledge Seeker",
        "description": "Completed 10 courses",
        "icon": "🏆",
    },
    BadgeType.STREAK_7_DAYS.value: {
        "name": "Week Warrior",
        "description": "Maintained a 7-day learning streak",
        "icon": "🔥",
    },
    BadgeType.STREAK_30_DAYS.value: {
        "name": "Monthly Master",
        "description": "Maintained a 30-day learning streak",
        "icon": "⚡",
    },
    BadgeType.STREAK_100_DAYS.value: {
        "name": "Century Champion",
        "description": "Maintained a 100-day learning streak",
        "icon": "💎",
    },
    BadgeType.QUIZ_MASTER.value: {
        "name": "Quiz Master",
        "description": "Passed 50 quizzes",
        "icon": "🧠",
    },
    BadgeType.TOP_REVIEWER.value: {
        "name": "Top Reviewer",
        "description": "Written 10 course reviews",
        "icon": "⭐",
    },
}

COURSE_BADGES = [
    (1, BadgeType.FIRST_COURSE_COMPLETE.value),
    (5, BadgeType.FIVE_COURSES_COMPLETE.value),
    (10, BadgeType.TEN_COURSES_COMPLETE.value),
]
QUIZ_MASTER_COUNT = 50
TOP_REVIEWER_COUNT = 10

LEADERBOARD_PERIODS = ("all", "month", "week")


def get_or_create_progress(db: Session, user_id: int) -> UserProgress:
    progress = db.query(UserProgress).filter(UserProgress.user_id == user_id).first()
    if progress is None:
        progress = UserProgress(
            user_id=user_id,
            total_xp=0,
            current_level=1,
            current_streak=0,
            longest_streak=0
        )
        db.add(progress)
        db.flush()
    return progress


def award_xp(
    db: Session,
    user_id: int,
    amount: int,
    reason: str,
    source_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Credit XP to a user and record it in the ledger.

    Raises:
        BadRequestError: INVALID_XP_AMOUNT when ``amount`` is not positive
    """
    if amount <= 0:
        raise BadRequestError("XP amount must be positive", code="INVALID_XP_AMOUNT")

    progress = get_or_create_progress(db, user_id)
    previous_xp = progress.total_xp
    previous_level = progress.current_level

    progress.total_xp = previous_xp + amount
    progress.current_level = calculate_level(progress.total_xp)
    db.add(XPActivity.create_activity(
        user_id=user_id,
        amount=amount,
        reason=reason,
        source_id=str(source_id) if source_id is not None else None
    ))
    db.flush()

    leveled_up = progress.current_level > previous_level
    logger.info(f"Awarded {amount} XP to user {user_id} for {reason}")
    if leveled_up:
        logger.info(f"User {user_id} reached level {progress.current_level}")

    return {
        "previous_xp": previous_xp,
        "new_xp": progress.total_xp,
        "xp_awarded": amount,
        "previous_level": previous_level,
        "new_level": progress.current_level,
        "leveled_up": leveled_up,
    }


def award_reward(db: Session, user_id: int, reason: XPReason, source_id: Optional[Any] = None) -> Dict[str, Any]:
    """Award the fixed XP amount for ``reason``."""
    return award_xp(db, user_id, XP_REWARDS[reason.value], reason.value, source_id)


def award_daily_login(db: Session, user_id: int, now: Optional[datetime] = None) -> int:
    """Award DAILY_LOGIN XP once per calendar day. Returns the XP awarded."""
    now = now or datetime.utcnow()
    day_start = datetime(now.year, now.month, now.day)

    already_awarded = db.query(XPActivity).filter(
        XPActivity.user_id == user_id,
        XPActivity.reason == XPReason.DAILY_LOGIN.value,
        XPActivity.created_at >= day_start
    ).first()
    if already_awarded:
        return 0

    return award_reward(db, user_id, XPReason.DAILY_LOGIN)["xp_awarded"]


def award_badge(db: Session, user_id: int, badge_type: str) -> Optional[Badge]:
    """Unlock a badge unless the user already holds it."""
    existing = db.query(Badge).filter(
        Badge.user_id == user_id,
        Badge.type == badge_type
    ).first()
    if existing:
        return None

    badge = Badge(user_id=user_id, type=badge_type)
    db.add(badge)
    db.flush()
    logger.info(f"User {user_id} unlocked badge {badge_type}")
    return badge


def update_streak(db: Session, user_id: int, activity_date: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Record learning activity for today and pay out streak milestones.

    Milestone bonuses are tied to the streak badge, so each is paid once.
    """
    activity_date = activity_date or datetime.utcnow()
    progress = get_or_create_progress(db, user_id)
    previous_streak = progress.current_streak

    progress.update_streak(activity_date)
    db.flush()

    bonus_xp = 0
    badge_awarded = None
    milestone = STREAK_BONUSES.get(progress.current_streak)
    if milestone and progress.current_streak != previous_streak:
        bonus, badge_type = milestone
        badge = award_badge(db, user_id, badge_type)
        if badge:
            award_xp(db, user_id, bonus, XPReason.STREAK_BONUS.value)
            bonus_xp = bonus
            badge_awarded = badge_type

    return {
        "previous_streak": previous_streak,
        "current_streak": progress.current_streak,
        "longest_streak": progress.longest_streak,
        "streak_incremented": progress.current_streak > previous_streak,
        "bonus_xp_awarded": bonus_xp,
        "badge_awarded": badge_awarded,
    }


def check_and_award_badges(db: Session, user_id: int) -> List[str]:
    """Evaluate every badge rule for a user. Returns newly unlocked types."""
    unlocked = []

    completed_courses = db.query(Enrollment).filter(
        Enrollment.student_id == user_id,
        Enrollment.status == EnrollmentStatus.COMPLETED.value
    ).count()
    for required, badge_type in COURSE_BADGES:
        if completed_courses >= required and award_badge(db, user_id, badge_type):
            unlocked.append(badge_type)

    progress = get_or_create_progress(db, user_id)
    for days, (_, badge_type) in STREAK_BONUSES.items():
        if progress.longest_streak >= days and award_badge(db, user_id, badge_type):
            unlocked.append(badge_type)

    quizzes_passed = db.query(func.count(distinct(QuizAttempt.quiz_id))).filter(
        QuizAttempt.student_id == user_id,
        QuizAttempt.passed == True  # noqa: E712
    ).scalar() or 0
    if quizzes_passed >= QUIZ_MASTER_COUNT and award_badge(db, user_id, BadgeType.QUIZ_MASTER.value):
        unlocked.append(BadgeType.QUIZ_MASTER.value)

    reviews_written = db.query(Review).filter(Review.student_id == user_id).count()
    if reviews_written >= TOP_REVIEWER_COUNT and award_badge(db, user_id, BadgeType.TOP_REVIEWER.value):
        unlocked.append(BadgeType.TOP_REVIEWER.value)

    return unlocked


def badge_to_dict(badge: Badge) -> Dict[str, Any]:
    return {
        "type": badge.type,
        **BADGE_INFO.get(badge.type, {}),
        "unlocked_at": badge.unlocked_at.isoformat() if badge.unlocked_at else None,
    }


def get_summary(db: Session, user: User) -> Dict[str, Any]:
    progress = get_or_create_progress(db, user.id)
    badges = db.query(Badge).filter(Badge.user_id == user.id).order_by(Badge.unlocked_at.desc()).all()
    recent = db.query(XPActivity).filter(
        XPActivity.user_id == user.id
    ).order_by(XPActivity.created_at.desc(), XPActivity.id.desc()).limit(10).all()

    return {
        "user_id": user.id,
        "total_xp": progress.total_xp,
        **level_progress(progress.total_xp),
        "current_streak": progress.current_streak,
        "longest_streak": progress.longest_streak,
        "last_activity_at": progress.last_activity_at.isoformat() if progress.last_activity_at else None,
        "badges": [badge_to_dict(badge) for badge in badges],
        "recent_xp_activities": [activity.to_dict() for activity in recent],
    }


def get_xp_history(db: Session, user_id: int, page: int, limit: int) -> Dict[str, Any]:
    query = db.query(XPActivity).filter(
        XPActivity.user_id == user_id
    ).order_by(XPActivity.created_at.desc(), XPActivity.id.desc())
    activities, meta = paginate(query, page, limit)
    return {"activities": [activity.to_dict() for activity in activities], **meta}


def get_badge_catalog(db: Session, user_id: int) -> List[Dict[str, Any]]:
    """All badges with the caller's unlock state."""
    owned = {
        badge.type: badge
        for badge in db.query(Badge).filter(Badge.user_id == user_id).all()
    }
    catalog = []
    for badge_type in BadgeType:
        badge = owned.get(badge_type.value)
        catalog.append({
            "type": badge_type.value,
            **BADGE_INFO[badge_type.value],
            "unlocked": badge is not None,
            "unlocked_at": badge.unlocked_at.isoformat() if badge and badge.unlocked_at else None,
        })
    return catalog


def _period_start(period: str, now: datetime) -> Optional[datetime]:
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    return None


def get_leaderboard(db: Session, current_user_id: int, period: str = "all", limit: int = 10) -> Dict[str, Any]:
    """
    Rank students by XP.

    ``all`` ranks by total XP; ``month`` and ``week`` sum the ledger over
    the last 30 or 7 days.
    """
    if period not in LEADERBOARD_PERIODS:
        raise BadRequestError(f"Period must be one of: {', '.join(LEADERBOARD_PERIODS)}")

    start = _period_start(period, datetime.utcnow())
    if start is None:
        rows = db.query(
            UserProgress.user_id, UserProgress.total_xp.label("xp")
        ).filter(UserProgress.total_xp > 0).order_by(
            UserProgress.total_xp.desc(), UserProgress.user_id
        ).all()
    else:
        xp_sum = func.sum(XPActivity.amount)
        rows = db.query(
            XPActivity.user_id, xp_sum.label("xp")
        ).filter(XPActivity.created_at >= start).group_by(
            XPActivity.user_id
        ).order_by(xp_sum.desc(), XPActivity.user_id).all()

    users = {
        user.id: user
        for user in db.query(User).filter(User.id.in_([row.user_id for row in rows])).all()
    } if rows else {}
    levels = {
        progress.user_id: progress.current_level
        for progress in db.query(UserProgress).filter(
            UserProgress.user_id.in_(list(users.keys()))
        ).all()
    } if users else {}

    entries = []
    current_user_rank = None
    for rank, row in enumerate(rows, start=1):
        if row.user_id == current_user_id:
            current_user_rank = rank
        if rank <= limit:
            user = users.get(row.user_id)
            entries.append({
                "rank": rank,
                "user": user.to_public_dict() if user else {"id": row.user_id},
                "xp": int(row.xp or 0),
                "level": levels.get(row.user_id, 1),
            })

    return {
        "period": period,
        "entries": entries,
        "current_user_rank": current_user_rank,
    }
