"""Tests for course reviews and rating aggregates."""

from fastapi import status

from learnity.models import Course, Enrollment

from .conftest import auth_headers


def review_url(course):
    return f"/api/v1/courses/{course.id}/reviews"


def enroll_with_progress(db_session, user, course, progress):
    enrollment = Enrollment(student_id=user.id, course_id=course.id, status="active", progress=progress)
    db_session.add(enrollment)
    db_session.commit()
    return enrollment


def test_review_needs_half_the_course(client, db_session, student, course):
    enroll_with_progress(db_session, student, course, 40)

    eligibility = client.get(f"{review_url(course)}/eligibility", headers=auth_headers(student)).json()
    assert eligibility["can_review"] is False
    assert eligibility["enrollment_progress"] == 40

    response = client.post(review_url(course), headers=auth_headers(student), json={"rating": 5})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "INSUFFICIENT_PROGRESS"


def test_review_needs_enrollment(client, student, course):
    response = client.post(review_url(course), headers=auth_headers(student), json={"rating": 5})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "NOT_ENROLLED"


def test_create_review_updates_course_rating(client, db_session, student, other_student, course):
    enroll_with_progress(db_session, student, course, 60)
    enroll_with_progress(db_session, other_student, course, 100)

    first = client.post(review_url(course), headers=auth_headers(student), json={
        "rating": 4,
        "comment": "Clear explanations and good pacing",
    })
    assert first.status_code == status.HTTP_201_CREATED
    assert first.json()["student"]["id"] == student.id

    client.post(review_url(course), headers=auth_headers(other_student), json={"rating": 5})

    db_session.expire_all()
    refreshed = db_session.get(Course, course.id)
    assert refreshed.review_count == 2
    assert refreshed.average_rating == 4.5

    listing = client.get(review_url(course)).json()
    assert listing["total"] == 2
    assert listing["summary"]["rating_distribution"] == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1}

    filtered = client.get(review_url(course), params={"min_rating": 5}).json()
    assert filtered["total"] == 1


def test_one_review_per_course(client, db_session, student, course):
    enroll_with_progress(db_session, student, course, 80)
    client.post(review_url(course), headers=auth_headers(student), json={"rating": 3})

    response = client.post(review_url(course), headers=auth_headers(student), json={"rating": 5})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"]["code"] == "ALREADY_REVIEWED"


def test_short_comment_rejected(client, db_session, student, course):
    enroll_with_progress(db_session, student, course, 80)

    response = client.post(review_url(course), headers=auth_headers(student), json={"rating": 3, "comment": "meh"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_update_and_delete_own_review(client, db_session, student, other_student, course):
    enroll_with_progress(db_session, student, course, 80)
    review = client.post(review_url(course), headers=auth_headers(student), json={"rating": 2}).json()

    foreign = client.patch(
        f"/api/v1/reviews/{review['id']}", headers=auth_headers(other_student), json={"rating": 1}
    )
    assert foreign.status_code == status.HTTP_403_FORBIDDEN
    assert foreign.json()["error"]["code"] == "NOT_REVIEW_OWNER"

    updated = client.patch(f"/api/v1/reviews/{review['id']}", headers=auth_headers(student), json={"rating": 5})
    assert updated.json()["rating"] == 5

    db_session.expire_all()
    assert db_session.get(Course, course.id).average_rating == 5.0

    deleted = client.delete(f"/api/v1/reviews/{review['id']}", headers=auth_headers(student))
    assert deleted.status_code == status.HTTP_200_OK

    db_session.expire_all()
    refreshed = db_session.get(Course, course.id)
    assert refreshed.review_count == 0
    assert refreshed.average_rating == 0.0
