"""Tests for quiz authoring, submission and scoring."""

from fastapi import status

from learnity.models import QuizAttempt, XPActivity

from .conftest import auth_headers


QUIZZES_URL = "/api/v1/quizzes"


def answers_for(quiz, *selected):
    return [
        {"question_id": question.id, "selected_index": index}
        for question, index in zip(quiz.questions, selected)
    ]


def submit(client, user, quiz, answers):
    return client.post(
        f"{QUIZZES_URL}/{quiz.id}/submit",
        headers=auth_headers(user),
        json={"answers": answers, "time_taken": 45}
    )


class TestTaking:

    def test_student_view_hides_answers(self, client, student, enrollment, quiz):
        response = client.get(f"{QUIZZES_URL}/{quiz.id}", headers=auth_headers(student))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["question_count"] == 2
        assert all("correct_option_index" not in question for question in data["questions"])
        assert data["stats"]["total_attempts"] == 0

    def test_quiz_requires_enrollment(self, client, other_student, quiz):
        response = client.get(f"{QUIZZES_URL}/{quiz.id}", headers=auth_headers(other_student))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["code"] == "NOT_ENROLLED"

    def test_passing_attempt(self, client, db_session, student, enrollment, quiz):
        response = submit(client, student, quiz, answers_for(quiz, 1, 0))

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["score"] == 100
        assert data["passed"] is True
        assert data["correct_answers"] == 2
        assert data["xp_awarded"] == 20
        assert all(result["is_correct"] for result in data["results"])

    def test_failing_attempt(self, client, student, enrollment, quiz):
        data = submit(client, student, quiz, answers_for(quiz, 1, 1)).json()

        assert data["score"] == 50
        assert data["passed"] is False
        assert data["xp_awarded"] == 0
        assert data["results"][1]["correct_option_index"] == 0

    def test_xp_only_for_first_pass(self, client, db_session, student, enrollment, quiz):
        submit(client, student, quiz, answers_for(quiz, 1, 0))
        again = submit(client, student, quiz, answers_for(quiz, 1, 0)).json()

        assert again["passed"] is True
        assert again["xp_awarded"] == 0
        quiz_xp = db_session.query(XPActivity).filter(
            XPActivity.user_id == student.id,
            XPActivity.reason == "quiz_pass"
        ).count()
        assert quiz_xp == 1

    def test_duplicate_answers(self, client, student, enrollment, quiz):
        first = quiz.questions[0].id
        response = submit(client, student, quiz, [
            {"question_id": first, "selected_index": 1},
            {"question_id": first, "selected_index": 2},
        ])

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "DUPLICATE_ANSWERS"

    def test_unknown_question(self, client, student, enrollment, quiz):
        answers = answers_for(quiz, 1, 0) + [{"question_id": 9999, "selected_index": 0}]
        response = submit(client, student, quiz, answers)

        assert response.json()["error"]["code"] == "QUESTION_NOT_FOUND"

    def test_missing_answers(self, client, db_session, student, enrollment, quiz):
        response = submit(client, student, quiz, answers_for(quiz, 1))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        error = response.json()["error"]
        assert error["code"] == "MISSING_ANSWERS"
        assert error["details"]["missing_question_ids"] == [quiz.questions[1].id]
        assert db_session.query(QuizAttempt).count() == 0

    def test_selected_index_out_of_range(self, client, student, enrollment, quiz):
        response = submit(client, student, quiz, answers_for(quiz, 4, 0))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_attempt_history(self, client, student, enrollment, quiz):
        submit(client, student, quiz, answers_for(quiz, 1, 1))
        submit(client, student, quiz, answers_for(quiz, 1, 0))

        data = client.get(f"{QUIZZES_URL}/{quiz.id}/attempts", headers=auth_headers(student)).json()

        assert [attempt["score"] for attempt in data["attempts"]] == [100, 50]
        assert data["best_attempt"]["score"] == 100
        assert data["stats"]["total_attempts"] == 2
        assert data["stats"]["average_score"] == 75.0
        assert data["stats"]["passed"] is True

    def test_passing_last_quiz_completes_course(self, client, student, lessons, enrollment, quiz):
        for lesson in lessons:
            client.post(f"/api/v1/lessons/{lesson.id}/complete", headers=auth_headers(student))

        data = submit(client, student, quiz, answers_for(quiz, 1, 0)).json()

        assert data["course_completed"] is True
        assert "first_course_complete" in data["badges_unlocked"]


class TestAuthoring:

    def quiz_payload(self):
        return {
            "title": "Variables check",
            "passing_score": 60,
            "questions": [
                {"question": "Which is a variable?", "options": ["x", "7"], "correct_option_index": 0},
                {"question": "Which is a constant?", "options": ["y", "3", "z"], "correct_option_index": 1},
            ],
        }

    def test_create_quiz(self, client, teacher, lessons):
        response = client.post(
            f"/api/v1/teacher/lessons/{lessons[0].id}/quiz",
            headers=auth_headers(teacher),
            json=self.quiz_payload()
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["passing_score"] == 60
        assert [question["correct_option_index"] for question in data["questions"]] == [0, 1]

    def test_one_quiz_per_lesson(self, client, teacher, lessons, quiz):
        response = client.post(
            f"/api/v1/teacher/lessons/{lessons[1].id}/quiz",
            headers=auth_headers(teacher),
            json=self.quiz_payload()
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"]["code"] == "QUIZ_ALREADY_EXISTS"

    def test_correct_index_must_exist(self, client, teacher, lessons):
        payload = self.quiz_payload()
        payload["questions"][0]["correct_option_index"] = 2

        response = client.post(
            f"/api/v1/teacher/lessons/{lessons[0].id}/quiz",
            headers=auth_headers(teacher),
            json=payload
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_question_checks_index(self, client, teacher, quiz):
        response = client.patch(
            f"/api/v1/teacher/questions/{quiz.questions[1].id}",
            headers=auth_headers(teacher),
            json={"correct_option_index": 3}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "INVALID_CORRECT_INDEX"

    def test_other_teacher_cannot_edit(self, client, other_teacher, quiz):
        response = client.patch(
            f"/api/v1/teacher/quizzes/{quiz.id}",
            headers=auth_headers(other_teacher),
            json={"passing_score": 10}
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_add_and_delete_question(self, client, teacher, quiz):
        headers = auth_headers(teacher)
        added = client.post(f"/api/v1/teacher/quizzes/{quiz.id}/questions", headers=headers, json={
            "question": "3x = 9, x = ?",
            "options": ["1", "2", "3"],
            "correct_option_index": 2,
        })
        assert added.status_code == status.HTTP_201_CREATED
        assert added.json()["order"] == 2

        client.delete(f"/api/v1/teacher/questions/{quiz.questions[0].id}", headers=headers)

        data = client.get(f"/api/v1/teacher/quizzes/{quiz.id}", headers=headers).json()
        assert data["question_count"] == 2
        assert [question["order"] for question in data["questions"]] == [0, 1]
