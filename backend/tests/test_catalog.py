"""Tests for course authoring and the public catalog."""

from fastapi import status

from learnity.models import Category, Course

from .conftest import auth_headers


TEACHER_URL = "/api/v1/teacher"
COURSES_URL = "/api/v1/courses"


def create_course(client, teacher, **overrides):
    payload = {
        "title": "Geometry for Beginners",
        "description": "Angles, triangles and circles explained step by step",
        "difficulty": "beginner",
        "tags": ["maths", "geometry"],
    }
    payload.update(overrides)
    return client.post(f"{TEACHER_URL}/courses", headers=auth_headers(teacher), json=payload)


def test_create_course_starts_as_draft(client, teacher):
    response = create_course(client, teacher)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "draft"
    assert data["slug"] == "geometry-for-beginners"
    assert data["is_free"] is True
    assert data["sections"] == []


def test_duplicate_titles_get_suffixed_slugs(client, teacher):
    first = create_course(client, teacher).json()
    second = create_course(client, teacher).json()
    third = create_course(client, teacher).json()

    assert first["slug"] == "geometry-for-beginners"
    assert second["slug"] == "geometry-for-beginners-1"
    assert third["slug"] == "geometry-for-beginners-2"


def test_paid_course_requires_price(client, teacher):
    response = create_course(client, teacher, is_free=False)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_too_many_tags_rejected(client, teacher):
    response = create_course(client, teacher, tags=["a", "b", "c", "d", "e", "f"])
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_cannot_publish_empty_course(client, teacher):
    course = create_course(client, teacher).json()

    response = client.post(f"{TEACHER_URL}/courses/{course['id']}/publish", headers=auth_headers(teacher))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "CANNOT_PUBLISH_EMPTY"


def test_build_and_publish_course(client, db_session, teacher):
    headers = auth_headers(teacher)
    course = create_course(client, teacher).json()

    section = client.post(
        f"{TEACHER_URL}/courses/{course['id']}/sections", headers=headers, json={"title": "Angles"}
    )
    assert section.status_code == status.HTTP_201_CREATED
    section_id = section.json()["id"]

    bad_lesson = client.post(f"{TEACHER_URL}/sections/{section_id}/lessons", headers=headers, json={
        "title": "Measuring angles",
        "youtube_url": "https://vimeo.com/123456",
    })
    assert bad_lesson.status_code == status.HTTP_400_BAD_REQUEST
    assert bad_lesson.json()["error"]["code"] == "INVALID_YOUTUBE_URL"

    lesson = client.post(f"{TEACHER_URL}/sections/{section_id}/lessons", headers=headers, json={
        "title": "Measuring angles",
        "youtube_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "duration": 420,
    })
    assert lesson.status_code == status.HTTP_201_CREATED
    assert lesson.json()["youtube_id"] == "dQw4w9WgXcQ"
    assert lesson.json()["type"] == "video"

    published = client.post(f"{TEACHER_URL}/courses/{course['id']}/publish", headers=headers)
    assert published.status_code == status.HTTP_200_OK
    assert published.json()["course"]["status"] == "published"
    assert published.json()["course"]["lesson_count"] == 1
    assert published.json()["course"]["total_duration"] == 420

    catalog = client.get(COURSES_URL)
    assert [item["id"] for item in catalog.json()["courses"]] == [course["id"]]


def test_drafts_hidden_from_public(client, teacher):
    course = create_course(client, teacher).json()

    assert client.get(f"{COURSES_URL}/{course['id']}").status_code == status.HTTP_404_NOT_FOUND
    assert client.get(COURSES_URL).json()["total"] == 0

    owner_view = client.get(f"{COURSES_URL}/{course['id']}", headers=auth_headers(teacher))
    assert owner_view.status_code == status.HTTP_200_OK


def test_only_owner_can_edit(client, course, other_teacher):
    response = client.patch(
        f"{TEACHER_URL}/courses/{course.id}",
        headers=auth_headers(other_teacher),
        json={"title": "Hijacked course"}
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_retitle_updates_slug(client, teacher, course):
    response = client.patch(
        f"{TEACHER_URL}/courses/{course.id}",
        headers=auth_headers(teacher),
        json={"title": "Algebra Fundamentals"}
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["slug"] == "algebra-fundamentals"


def test_reorder_sections(client, teacher, course):
    first, second = [section.id for section in course.sections]

    response = client.put(
        f"{TEACHER_URL}/courses/{course.id}/sections/reorder",
        headers=auth_headers(teacher),
        json={"ids": [second, first]}
    )

    assert response.status_code == status.HTTP_200_OK
    assert [section["id"] for section in response.json()["sections"]] == [second, first]


def test_reorder_requires_every_section(client, teacher, course):
    response = client.put(
        f"{TEACHER_URL}/courses/{course.id}/sections/reorder",
        headers=auth_headers(teacher),
        json={"ids": [course.sections[0].id]}
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "INVALID_ORDER"


def test_cannot_delete_course_with_enrollments(client, teacher, course, enrollment):
    response = client.delete(f"{TEACHER_URL}/courses/{course.id}", headers=auth_headers(teacher))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "CANNOT_DELETE_WITH_ENROLLMENTS"


def test_delete_draft(client, db_session, teacher):
    course = create_course(client, teacher).json()

    response = client.delete(f"{TEACHER_URL}/courses/{course['id']}", headers=auth_headers(teacher))

    assert response.status_code == status.HTTP_200_OK
    db_session.expire_all()
    assert db_session.query(Course).filter(Course.id == course["id"]).first() is None


class TestBrowse:

    def test_filters(self, client, db_session, course, paid_course):
        category = Category(name="Mathematics", slug="mathematics")
        db_session.add(category)
        db_session.flush()
        course.category_id = category.id
        db_session.commit()

        free = client.get(COURSES_URL, params={"is_free": True}).json()
        assert [item["id"] for item in free["courses"]] == [course.id]

        by_category = client.get(COURSES_URL, params={"category": "mathematics"}).json()
        assert [item["id"] for item in by_category["courses"]] == [course.id]

        search = client.get(COURSES_URL, params={"search": "DERIVATIVES"}).json()
        assert [item["id"] for item in search["courses"]] == [paid_course.id]

    def test_pagination(self, client, course, paid_course):
        data = client.get(COURSES_URL, params={"limit": 1, "page": 2}).json()

        assert data["total"] == 2
        assert data["total_pages"] == 2
        assert data["has_more"] is False
        assert len(data["courses"]) == 1

    def test_invalid_sort(self, client, db_session):
        response = client.get(COURSES_URL, params={"sort": "cheapest"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_contact_fields_only_for_enrolled(self, client, student, course, enrollment, other_student):
        public = client.get(f"{COURSES_URL}/{course.id}").json()
        assert "contact_email" not in public
        assert public["is_enrolled"] is False

        outsider = client.get(f"{COURSES_URL}/{course.id}", headers=auth_headers(other_student)).json()
        assert "whatsapp_group_link" not in outsider

        enrolled = client.get(f"{COURSES_URL}/{course.id}", headers=auth_headers(student)).json()
        assert enrolled["is_enrolled"] is True
        assert enrolled["contact_email"] == "tara@school.edu"

    def test_get_by_slug(self, client, course):
        response = client.get(f"{COURSES_URL}/slug/algebra-basics")

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["sections"]) == 2

    def test_categories(self, client, db_session, admin):
        response = client.post(
            "/api/v1/admin/categories", headers=auth_headers(admin), json={"name": "Computer Science"}
        )
        assert response.status_code == status.HTTP_201_CREATED

        categories = client.get("/api/v1/categories").json()["categories"]
        assert categories[0]["slug"] == "computer-science"
