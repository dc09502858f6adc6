"""
XP rewards and level calculation.
"""

from typing import Dict, List

from learnity.models.gamification import XPReason, BadgeType


XP_REWARDS: Dict[str, int] = {
    XPReason.LESSON_COMPLETE.value: 10,
    XPReason.QUIZ_PASS.value: 20,
    XPReason.COURSE_COMPLETE.value: 50,
    XPReason.DAILY_LOGIN.value: 5,
}

# streak length -> (bonus XP, badge)
STREAK_BONUSES: Dict[int, tuple] = {
    7: (25, BadgeType.STREAK_7_DAYS.value),
    30: (100, BadgeType.STREAK_30_DAYS.value),
    100: (500, BadgeType.STREAK_100_DAYS.value),
}

# XP required to reach level i + 1
LEVEL_THRESHOLDS: List[int] = [0, 100, 250, 500, 1000, 2000, 3500, 5500, 8000, 11000, 15000]

# Past the last threshold every 5000 XP is one more level
XP_PER_EXTRA_LEVEL = 5000


def calculate_level(total_xp: int) -> int:
    """
    Calculate the level reached with ``total_xp``.

    >>> calculate_level(0), calculate_level(100), calculate_level(20000)
    (1, 2, 12)
    """
    max_threshold = LEVEL_THRESHOLDS[-1]
    if total_xp >= max_threshold:
        return len(LEVEL_THRESHOLDS) + (total_xp - max_threshold) // XP_PER_EXTRA_LEVEL

    level = 0
    for threshold in LEVEL_THRESHOLDS:
        if total_xp >= threshold:
            level += 1
        else:
            break
    return max(level, 1)


def xp_for_level(level: int) -> int:
    """Total XP needed to reach ``level``."""
    if level <= 1:
        return 0
    if level <= len(LEVEL_THRESHOLDS):
        return LEVEL_THRESHOLDS[level - 1]
    return LEVEL_THRESHOLDS[-1] + (level - len(LEVEL_THRESHOLDS)) * XP_PER_EXTRA_LEVEL


def xp_to_next_level(total_xp: int) -> int:
    return xp_for_level(calculate_level(total_xp) + 1) - total_xp


def level_progress(total_xp: int) -> dict:
    """Describe where ``total_xp`` sits between the current and the next level."""
    level = calculate_level(total_xp)
    current_floor = xp_for_level(level)
    next_floor = xp_for_level(level + 1)
    span = next_floor - current_floor

    return {
        "current_level": level,
        "current_level_xp": current_floor,
        "next_level_xp": next_floor,
        "xp_to_next_level": next_floor - total_xp,
        "progress_percentage": round((total_xp - current_floor) / span * 100) if span else 100,
    }
