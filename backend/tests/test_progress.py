"""Tests for lesson progress, course completion and certificates."""

from fastapi import status
from sqlalchemy import func

from learnity.models import Badge, Certificate, Enrollment, SystemSettings, XPActivity
from learnity.services import progress as progress_service

from .conftest import auth_headers


LESSONS_URL = "/api/v1/lessons"


def complete(client, user, lesson):
    return client.post(f"{LESSONS_URL}/{lesson.id}/complete", headers=auth_headers(user))


def test_partial_watch_is_saved(client, student, lessons, enrollment):
    response = client.post(
        f"{LESSONS_URL}/{lessons[0].id}/progress",
        headers=auth_headers(student),
        json={"watched_seconds": 50}
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["auto_completed"] is False
    assert data["lesson_progress"]["watched_seconds"] == 50
    assert data["lesson_progress"]["completed"] is False


def test_watching_ninety_percent_completes_lesson(client, db_session, student, lessons, enrollment):
    response = client.post(
        f"{LESSONS_URL}/{lessons[0].id}/progress",
        headers=auth_headers(student),
        json={"watched_seconds": 90}
    )

    data = response.json()
    assert data["auto_completed"] is True
    assert data["xp_awarded"] == 10
    assert data["enrollment_progress"] == 33

    db_session.expire_all()
    assert db_session.get(Enrollment, enrollment.id).progress == 33


def test_negative_progress_rejected(client, student, lessons, enrollment):
    response = client.post(
        f"{LESSONS_URL}/{lessons[0].id}/progress",
        headers=auth_headers(student),
        json={"watched_seconds": -5}
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "INVALID_PROGRESS"


def test_progress_requires_enrollment(client, student, lessons):
    response = complete(client, student, lessons[0])

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"]["code"] == "NOT_ENROLLED"


def test_completion_is_idempotent(client, db_session, student, lessons, enrollment):
    first = complete(client, student, lessons[0]).json()
    second = complete(client, student, lessons[0]).json()

    assert first["xp_awarded"] == 10
    assert first["already_completed"] is False
    assert second["xp_awarded"] == 0
    assert second["already_completed"] is True

    lesson_xp = db_session.query(XPActivity).filter(
        XPActivity.user_id == student.id,
        XPActivity.reason == "lesson_complete"
    ).count()
    assert lesson_xp == 1


def test_sequential_course_locks_later_lessons(client, db_session, student, course, lessons, enrollment):
    course.require_sequential_progress = True
    db_session.commit()
    headers = auth_headers(student)

    locked = complete(client, student, lessons[1])
    assert locked.status_code == status.HTTP_403_FORBIDDEN
    assert locked.json()["error"]["code"] == "SECTION_LOCKED"

    access = client.get(f"{LESSONS_URL}/{lessons[1].id}/access", headers=headers).json()
    assert access["unlocked"] is False

    complete(client, student, lessons[0])
    access = client.get(f"{LESSONS_URL}/{lessons[1].id}/access", headers=headers).json()
    assert access["unlocked"] is True


def test_course_progress_overview(client, student, course, lessons, enrollment):
    complete(client, student, lessons[0])

    response = client.get(f"/api/v1/courses/{course.id}/progress", headers=auth_headers(student))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total_lessons"] == 3
    assert data["completed_lessons"] == 1
    assert data["progress_percentage"] == 33
    assert data["sections"][0]["completed_lessons"] == 1
    assert data["sections"][0]["progress_percentage"] == 50
    assert data["next_lesson"]["lesson_id"] == lessons[1].id
    assert data["is_completed"] is False


def test_finishing_every_lesson_completes_course(client, db_session, student, course, lessons, enrollment):
    for lesson in lessons[:-1]:
        assert complete(client, student, lesson).json()["course_completed"] is False

    final = complete(client, student, lessons[-1]).json()

    assert final["course_completed"] is True
    assert final["enrollment_progress"] == 100
    assert "first_course_complete" in final["badges_unlocked"]
    code = final["certificate"]["certificate_id"]

    db_session.expire_all()
    assert db_session.get(Enrollment, enrollment.id).status == "completed"
    total_xp = db_session.query(func.sum(XPActivity.amount)).filter(XPActivity.user_id == student.id).scalar()
    assert total_xp == 3 * 10 + 50
    assert db_session.query(Badge).filter(Badge.user_id == student.id).count() == 1

    certificates = client.get("/api/v1/certificates", headers=auth_headers(student)).json()["certificates"]
    assert [certificate["certificate_id"] for certificate in certificates] == [code]

    verified = client.get(f"/api/v1/certificates/verify/{code.lower()}")
    assert verified.status_code == status.HTTP_200_OK
    assert verified.json()["valid"] is True
    assert verified.json()["student_name"] == "Sam Student"
    assert verified.json()["course_title"] == "Algebra Basics"


def test_unpassed_quiz_blocks_completion(client, db_session, student, lessons, enrollment, quiz):
    for lesson in lessons:
        result = complete(client, student, lesson).json()

    assert result["enrollment_progress"] == 100
    assert result["course_completed"] is False

    db_session.expire_all()
    assert db_session.get(Enrollment, enrollment.id).status == "active"
    assert db_session.query(Certificate).count() == 0


def test_no_certificate_while_disabled(client, db_session, student, lessons, enrollment, platform_settings):
    setting = db_session.query(SystemSettings).filter(SystemSettings.key == "enable_certificates").one()
    setting.value = "false"
    db_session.commit()

    for lesson in lessons:
        result = complete(client, student, lesson).json()

    assert result["course_completed"] is True
    assert result["certificate"] is None


def test_verify_unknown_certificate(client, db_session):
    response = client.get("/api/v1/certificates/verify/AAAA-BBBB-CCCC")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "CERTIFICATE_NOT_FOUND"


def test_course_completion_rewarded_once_across_reenrollment(client, db_session, student, course, lessons, enrollment):
    headers = auth_headers(student)
    for lesson in lessons:
        complete(client, student, lesson)

    for _ in range(2):
        client.delete(f"/api/v1/courses/{course.id}/enroll", headers=headers)
        rejoined = client.post(f"/api/v1/courses/{course.id}/enroll", headers=headers)
        assert rejoined.status_code == status.HTTP_201_CREATED
        assert rejoined.json()["enrollment"]["status"] == "completed"

    db_session.expire_all()
    assert db_session.get(Enrollment, enrollment.id).status == "completed"
    course_xp = db_session.query(XPActivity).filter(
        XPActivity.user_id == student.id,
        XPActivity.reason == "course_complete"
    ).count()
    assert course_xp == 1
    assert db_session.query(Certificate).count() == 1


def test_completion_check_ignores_reactivated_enrollment(client, db_session, student, course, lessons, enrollment):
    for lesson in lessons:
        complete(client, student, lesson)

    db_session.expire_all()
    finished = db_session.get(Enrollment, enrollment.id)
    finished.status = "active"
    db_session.commit()

    result = progress_service.check_course_completion(db_session, student.id, course.id)

    assert result["completed"] is True
    assert result["newly_completed"] is False
    assert db_session.query(XPActivity).filter(XPActivity.reason == "course_complete").count() == 1


def test_section_unlocks_at_eighty_percent(client, db_session, student, teacher):
    from learnity.models import Course, Lesson, Section

    def video(title, order):
        return Lesson(title=title, type="video", order=order, duration=120,
                      youtube_url="https://youtu.be/dQw4w9WgXcQ", youtube_id="dQw4w9WgXcQ")

    course = Course(
        title="Geometry Path",
        slug="geometry-path",
        description="Shapes, angles and proofs in order",
        teacher_id=teacher.id,
        status="published",
        require_sequential_progress=True
    )
    course.sections = [
        Section(title="Angles", order=1, lessons=[video(f"Angles part {n}", n) for n in range(1, 6)]),
        Section(title="Triangles", order=2, lessons=[video("Triangle basics", 1)]),
    ]
    db_session.add(course)
    db_session.flush()
    db_session.add(Enrollment(student_id=student.id, course_id=course.id, status="active", progress=0))
    db_session.commit()
    db_session.refresh(course)
    angles = course.sections[0].lessons
    headers = auth_headers(student)

    for lesson in angles[:3]:
        complete(client, student, lesson)
    data = client.get(f"/api/v1/courses/{course.id}/progress", headers=headers).json()
    assert data["sections"][0]["progress_percentage"] == 60
    assert data["sections"][0]["is_unlocked"] is True
    assert data["sections"][1]["is_unlocked"] is False
    assert data["next_lesson"]["lesson_id"] == angles[3].id

    complete(client, student, angles[3])
    data = client.get(f"/api/v1/courses/{course.id}/progress", headers=headers).json()
    assert data["sections"][0]["progress_percentage"] == 80
    assert data["sections"][1]["is_unlocked"] is True
