"""
Gamification router for Learnity: XP, levels, streaks, badges and the
leaderboard.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.services import gamification


router = APIRouter()


@router.get("/me")
async def get_my_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    XP, level, streaks and badges of the current user.
    """
    summary = gamification.get_summary(db, current_user)
    db.commit()
    return summary


@router.get("/xp-history")
async def get_xp_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return gamification.get_xp_history(db, current_user.id, page, limit)


@router.get("/badges")
async def list_badges(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Every badge with whether the current user has unlocked it.
    """
    badges = gamification.get_badge_catalog(db, current_user.id)
    return {
        "badges": badges,
        "unlocked_count": sum(1 for badge in badges if badge["unlocked"]),
        "total_count": len(badges),
    }


@router.get("/leaderboard")
async def get_leaderboard(
    period: str = Query("all", pattern="^(all|month|week)$"),
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return gamification.get_leaderboard(db, current_user.id, period, limit)
