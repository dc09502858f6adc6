"""Tests for XP, streaks, badges and the leaderboard."""

from datetime import datetime, timedelta

import pytest
from fastapi import status

from learnity.core.errors import BadRequestError
from learnity.models import Badge, UserProgress, XPActivity
from learnity.services import gamification

from .conftest import auth_headers


GAMIFICATION_URL = "/api/v1/gamification"


class TestAwardXP:

    def test_award_creates_progress_and_levels_up(self, db_session, student):
        result = gamification.award_xp(db_session, student.id, 120, "lesson_complete")

        assert result["previous_xp"] == 0
        assert result["new_xp"] == 120
        assert result["leveled_up"] is True
        assert result["new_level"] == 2

        progress = db_session.query(UserProgress).filter(UserProgress.user_id == student.id).one()
        assert progress.total_xp == 120
        assert progress.current_level == 2
        assert db_session.query(XPActivity).filter(XPActivity.user_id == student.id).count() == 1

    def test_non_positive_amount(self, db_session, student):
        with pytest.raises(BadRequestError) as exc_info:
            gamification.award_xp(db_session, student.id, 0, "lesson_complete")
        assert exc_info.value.code == "INVALID_XP_AMOUNT"


class TestStreaks:

    def test_consecutive_days(self, db_session, student):
        start = datetime(2026, 3, 1, 9, 0)

        first = gamification.update_streak(db_session, student.id, start)
        same_day = gamification.update_streak(db_session, student.id, start + timedelta(hours=5))
        next_day = gamification.update_streak(db_session, student.id, start + timedelta(days=1))

        assert first["current_streak"] == 1
        assert same_day["current_streak"] == 1
        assert same_day["streak_incremented"] is False
        assert next_day["current_streak"] == 2

    def test_gap_resets_streak(self, db_session, student):
        start = datetime(2026, 3, 1, 9, 0)
        gamification.update_streak(db_session, student.id, start)
        gamification.update_streak(db_session, student.id, start + timedelta(days=1))

        result = gamification.update_streak(db_session, student.id, start + timedelta(days=3))

        assert result["current_streak"] == 1
        assert result["longest_streak"] == 2

    def test_week_streak_bonus_paid_once(self, db_session, student):
        start = datetime(2026, 3, 1, 9, 0)
        results = [
            gamification.update_streak(db_session, student.id, start + timedelta(days=day))
            for day in range(7)
        ]

        assert results[-1]["current_streak"] == 7
        assert results[-1]["bonus_xp_awarded"] == 25
        assert results[-1]["badge_awarded"] == "streak_7_days"
        assert gamification.get_or_create_progress(db_session, student.id).total_xp == 25

        # Break the streak and build it up again
        restart = start + timedelta(days=10)
        again = [
            gamification.update_streak(db_session, student.id, restart + timedelta(days=day))
            for day in range(7)
        ]
        assert again[-1]["current_streak"] == 7
        assert again[-1]["bonus_xp_awarded"] == 0
        assert db_session.query(Badge).filter(Badge.user_id == student.id).count() == 1


class TestEndpoints:

    def test_summary(self, client, db_session, student):
        gamification.award_xp(db_session, student.id, 150, "lesson_complete")
        db_session.commit()

        response = client.get(f"{GAMIFICATION_URL}/me", headers=auth_headers(student))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total_xp"] == 150
        assert data["current_level"] == 2
        assert data["xp_to_next_level"] == 100
        assert data["progress_percentage"] == 33
        assert len(data["recent_xp_activities"]) == 1

    def test_badge_catalog(self, client, db_session, student):
        gamification.award_badge(db_session, student.id, "first_course_complete")
        db_session.commit()

        data = client.get(f"{GAMIFICATION_URL}/badges", headers=auth_headers(student)).json()

        assert data["total_count"] == 8
        assert data["unlocked_count"] == 1
        unlocked = [badge["type"] for badge in data["badges"] if badge["unlocked"]]
        assert unlocked == ["first_course_complete"]

    def test_xp_history(self, client, db_session, student):
        gamification.award_xp(db_session, student.id, 10, "lesson_complete")
        gamification.award_xp(db_session, student.id, 20, "quiz_pass")
        db_session.commit()

        data = client.get(f"{GAMIFICATION_URL}/xp-history", headers=auth_headers(student)).json()

        assert data["total"] == 2
        assert {activity["amount"] for activity in data["activities"]} == {10, 20}

    def test_leaderboard(self, client, db_session, student, other_student):
        gamification.award_xp(db_session, student.id, 300, "lesson_complete")
        gamification.award_xp(db_session, other_student.id, 120, "lesson_complete")
        db_session.commit()

        data = client.get(f"{GAMIFICATION_URL}/leaderboard", headers=auth_headers(other_student)).json()

        assert data["period"] == "all"
        assert [entry["user"]["id"] for entry in data["entries"]] == [student.id, other_student.id]
        assert data["entries"][0]["xp"] == 300
        assert data["entries"][0]["level"] == 3
        assert data["current_user_rank"] == 2

    def test_weekly_leaderboard_counts_recent_xp(self, client, db_session, student, other_student):
        gamification.award_xp(db_session, student.id, 40, "lesson_complete")
        gamification.award_xp(db_session, student.id, 20, "quiz_pass")
        db_session.commit()

        data = client.get(
            f"{GAMIFICATION_URL}/leaderboard",
            headers=auth_headers(student),
            params={"period": "week", "limit": 5}
        ).json()

        assert data["entries"][0]["xp"] == 60
        assert data["current_user_rank"] == 1

    def test_invalid_period(self, client, student):
        response = client.get(
            f"{GAMIFICATION_URL}/leaderboard", headers=auth_headers(student), params={"period": "year"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
