"""Tests for course analytics and teacher statistics."""

from fastapi import status

from learnity.models import Enrollment, LessonProgress

from .conftest import auth_headers


def analytics_url(course):
    return f"/api/v1/teacher/courses/{course.id}/analytics"


def submit(client, user, quiz, *selected):
    answers = [
        {"question_id": question.id, "selected_index": index}
        for question, index in zip(quiz.questions, selected)
    ]
    client.post(f"/api/v1/quizzes/{quiz.id}/submit", headers=auth_headers(user), json={"answers": answers})


def test_course_analytics(client, db_session, teacher, student, other_student, course, lessons, enrollment, quiz):
    db_session.add(Enrollment(student_id=other_student.id, course_id=course.id, status="completed", progress=100))
    db_session.add_all([
        LessonProgress(student_id=student.id, lesson_id=lessons[0].id, completed=True, watched_seconds=100),
        LessonProgress(student_id=other_student.id, lesson_id=lessons[0].id, completed=True, watched_seconds=80),
        LessonProgress(student_id=student.id, lesson_id=lessons[1].id, watched_seconds=30),
    ])
    db_session.commit()
    submit(client, student, quiz, 1, 1)
    submit(client, student, quiz, 1, 0)

    response = client.get(analytics_url(course), headers=auth_headers(teacher))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    overview = data["overview"]
    assert overview["total_enrollments"] == 2
    assert overview["enrollments_by_status"] == {"active": 1, "completed": 1, "unenrolled": 0}
    assert overview["completion_rate"] == 50
    assert overview["average_progress"] == 50
    assert data["progress_distribution"] == {"0-25": 1, "25-50": 0, "50-75": 0, "75-100": 1}

    quizzes = data["quiz_performance"]
    assert quizzes["total_quizzes"] == 1
    assert quizzes["quiz_stats"][0]["total_attempts"] == 2
    assert quizzes["quiz_stats"][0]["pass_rate"] == 50
    assert quizzes["quiz_stats"][0]["average_score"] == 75

    first, second, third = data["lesson_engagement"]
    assert (first["total_views"], first["completions"], first["average_watch_time"]) == (2, 2, 90)
    assert second["completion_rate"] == 0
    assert third["total_views"] == 0
    assert [point["lesson_id"] for point in data["drop_off_points"]] == [lessons[1].id]


def test_analytics_for_course_without_activity(client, teacher, course):
    data = client.get(analytics_url(course), headers=auth_headers(teacher)).json()

    assert data["overview"]["total_enrollments"] == 0
    assert data["overview"]["completion_rate"] == 0
    assert data["quiz_performance"]["overall_pass_rate"] == 0
    assert data["drop_off_points"] == []


def test_analytics_owner_only(client, other_teacher, student, course):
    assert client.get(analytics_url(course), headers=auth_headers(other_teacher)).status_code == status.HTTP_403_FORBIDDEN
    assert client.get(analytics_url(course), headers=auth_headers(student)).status_code == status.HTTP_403_FORBIDDEN


def test_teacher_stats(client, db_session, teacher, other_student, course, enrollment):
    db_session.add(Enrollment(student_id=other_student.id, course_id=course.id, status="completed", progress=100))
    course.review_count = 2
    course.average_rating = 4.5
    db_session.commit()
    client.post("/api/v1/teacher/courses", headers=auth_headers(teacher), json={
        "title": "Statistics Primer",
        "description": "Means, medians and spread for beginners",
    })

    response = client.get("/api/v1/teacher/stats", headers=auth_headers(teacher))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total_courses"] == 2
    assert data["published_courses"] == 1
    assert data["draft_courses"] == 1
    assert data["total_enrollments"] == 2
    assert data["active_enrollments"] == 1
    assert data["completed_enrollments"] == 1
    assert data["recent_enrollments"] == 2
    assert data["total_lessons"] == 3
    assert data["average_rating"] == 4.5
    assert data["total_reviews"] == 2
