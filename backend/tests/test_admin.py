"""Tests for the admin endpoints."""

from fastapi import status

from learnity.models import AuditLog, SystemSettings, User

from .conftest import auth_headers


ADMIN_URL = "/api/v1/admin"


def test_non_admins_are_rejected(client, student, teacher):
    for user in (student, teacher):
        response = client.get(f"{ADMIN_URL}/dashboard", headers=auth_headers(user))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["message"] == "Admin access required"


def test_dashboard(client, admin, student, teacher, pending_teacher, course, enrollment):
    response = client.get(f"{ADMIN_URL}/dashboard", headers=auth_headers(admin))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["statistics"]["users"]["total"] == 4
    assert data["statistics"]["users"]["by_role"]["student"] == 1
    assert data["statistics"]["courses"]["by_status"] == {"published": 1}
    assert data["statistics"]["enrollments"]["active"] == 1
    assert data["statistics"]["pending_applications"] == 1
    assert data["teachers"]["pending_applications"] == 1
    assert data["teachers"]["approved_teachers"] == 1


class TestTeacherApplications:

    def test_list_pending(self, client, admin, teacher, pending_teacher):
        data = client.get(f"{ADMIN_URL}/teachers", headers=auth_headers(admin), params={"status": "pending"}).json()

        assert data["total"] == 1
        assert data["teachers"][0]["id"] == pending_teacher.id
        assert data["teachers"][0]["application"]["application_status"] == "pending"
        assert data["stats"]["total_teachers"] == 2

    def test_unknown_status_filter(self, client, admin):
        response = client.get(f"{ADMIN_URL}/teachers", headers=auth_headers(admin), params={"status": "archived"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "INVALID_STATUS"

    def test_approve(self, client, db_session, admin, pending_teacher):
        response = client.post(
            f"{ADMIN_URL}/teachers/{pending_teacher.id}/review",
            headers=auth_headers(admin),
            json={"decision": "approved"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["role"] == "teacher"
        assert data["application"]["application_status"] == "approved"
        assert data["application"]["approved_by"] == admin.id

        log = db_session.query(AuditLog).filter(AuditLog.event_type == "teacher_application_approve").one()
        assert log.user_id == admin.id
        assert log.entity_id == pending_teacher.id

        # The approved teacher can now author courses
        created = client.post("/api/v1/teacher/courses", headers=auth_headers(pending_teacher), json={
            "title": "World History",
            "description": "Major events of the twentieth century",
        })
        assert created.status_code == status.HTTP_201_CREATED

    def test_reject_requires_reason(self, client, admin, pending_teacher):
        response = client.post(
            f"{ADMIN_URL}/teachers/{pending_teacher.id}/review",
            headers=auth_headers(admin),
            json={"decision": "rejected", "rejection_reason": "   "}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "REJECTION_REASON_REQUIRED"

    def test_reject(self, client, admin, pending_teacher):
        response = client.post(
            f"{ADMIN_URL}/teachers/{pending_teacher.id}/review",
            headers=auth_headers(admin),
            json={"decision": "rejected", "rejection_reason": "Missing teaching certificate"}
        )

        data = response.json()
        assert data["user"]["role"] == "rejected_teacher"
        assert data["application"]["rejection_reason"] == "Missing teaching certificate"

        status_view = client.get("/api/v1/teachers/application-status", headers=auth_headers(pending_teacher))
        assert status_view.json()["status"] == "rejected"

    def test_cannot_review_twice(self, client, admin, teacher):
        response = client.post(
            f"{ADMIN_URL}/teachers/{teacher.id}/review",
            headers=auth_headers(admin),
            json={"decision": "approved"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "ALREADY_REVIEWED"

    def test_batch_review_reports_each_item(self, client, db_session, admin, teacher, pending_teacher):
        response = client.post(f"{ADMIN_URL}/teachers/batch-review", headers=auth_headers(admin), json={
            "items": [
                {"user_id": pending_teacher.id, "decision": "approved"},
                {"user_id": teacher.id, "decision": "approved"},
                {"user_id": 9999, "decision": "rejected", "rejection_reason": "Unknown"},
            ],
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["summary"] == {"total": 3, "successful": 1, "failed": 2}
        assert [result["success"] for result in data["results"]] == [True, False, False]
        assert data["results"][1]["error"]["code"] == "ALREADY_REVIEWED"
        assert data["results"][2]["error"]["code"] == "APPLICATION_NOT_FOUND"

        db_session.expire_all()
        assert db_session.get(User, pending_teacher.id).role == "teacher"


class TestUsers:

    def test_list_users_by_role(self, client, admin, student, other_student, teacher):
        data = client.get(f"{ADMIN_URL}/users", headers=auth_headers(admin), params={"role": "student"}).json()

        assert data["total"] == 2
        assert {user["id"] for user in data["users"]} == {student.id, other_student.id}

    def test_deactivate_user(self, client, admin, student):
        response = client.patch(
            f"{ADMIN_URL}/users/{student.id}/status", headers=auth_headers(admin), json={"is_active": False}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["is_active"] is False
        assert client.get("/api/v1/auth/me", headers=auth_headers(student)).status_code == status.HTTP_403_FORBIDDEN

    def test_cannot_deactivate_self(self, client, admin):
        response = client.patch(
            f"{ADMIN_URL}/users/{admin.id}/status", headers=auth_headers(admin), json={"is_active": False}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "CANNOT_DEACTIVATE_SELF"


class TestSettings:

    def test_settings_grouped_by_category(self, client, admin, platform_settings):
        data = client.get(f"{ADMIN_URL}/settings", headers=auth_headers(admin)).json()["settings"]

        features = {setting["key"]: setting["value"] for setting in data["features"]}
        assert features["enable_registration"] is True
        assert data["wallet"][0]["value"] == 10.0

    def test_update_setting(self, client, db_session, admin, platform_settings):
        response = client.put(
            f"{ADMIN_URL}/settings/min_withdrawal_amount", headers=auth_headers(admin), json={"value": 25}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["setting"]["value"] == 25.0

        db_session.expire_all()
        setting = db_session.query(SystemSettings).filter(SystemSettings.key == "min_withdrawal_amount").one()
        assert setting.last_modified_by == admin.id

    def test_wrong_type_rejected(self, client, admin, platform_settings):
        response = client.put(
            f"{ADMIN_URL}/settings/enable_registration", headers=auth_headers(admin), json={"value": "maybe"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "INVALID_SETTING_VALUE"

    def test_locked_setting(self, client, admin, platform_settings):
        response = client.put(f"{ADMIN_URL}/settings/schema_version", headers=auth_headers(admin), json={"value": 2})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["code"] == "SETTING_NOT_EDITABLE"

    def test_unknown_setting(self, client, admin, platform_settings):
        response = client.put(f"{ADMIN_URL}/settings/dark_mode", headers=auth_headers(admin), json={"value": True})
        assert response.status_code == status.HTTP_404_NOT_FOUND


def test_audit_log_listing(client, admin, student):
    client.post("/api/v1/auth/login", data={"username": student.email, "password": "Wr0ng!pass"})

    data = client.get(
        f"{ADMIN_URL}/audit-logs", headers=auth_headers(admin), params={"success": False}
    ).json()

    assert data["total"] == 1
    assert data["logs"][0]["event_type"] == "auth_login"
    assert data["logs"][0]["user_id"] == student.id


def test_security_events_listing(client, admin, student):
    for _ in range(6):
        client.post("/api/v1/auth/login", data={"username": student.email, "password": "Wr0ng!pass"})

    data = client.get(
        f"{ADMIN_URL}/security-events",
        headers=auth_headers(admin),
        params={"event_type": "multiple_failed_attempts", "blocked": True}
    ).json()

    assert data["total"] == 1
    event = data["events"][0]
    assert event["user_id"] == student.id
    assert event["risk_level"] == "high"
    assert event["details"]["email"] == student.email

    low_risk = client.get(f"{ADMIN_URL}/security-events", headers=auth_headers(admin), params={"risk_level": "low"})
    assert low_risk.json()["total"] == 0
