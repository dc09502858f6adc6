"""Tests for tutoring sessions, live sessions and direct messages."""

from datetime import datetime, timedelta

from fastapi import status

from learnity.core.security import verify_token
from learnity.models import TeacherProfile

from .conftest import auth_headers


TUTORING_URL = "/api/v1/tutoring-sessions"
LIVE_URL = "/api/v1/live-sessions"
MESSAGES_URL = "/api/v1/messages"


def tomorrow():
    return (datetime.utcnow() + timedelta(days=1)).isoformat()


def request_session(client, student, teacher, scheduled_at=None):
    return client.post(TUTORING_URL, headers=auth_headers(student), json={
        "teacher_id": teacher.id,
        "title": "Help with quadratic equations",
        "scheduled_at": scheduled_at or tomorrow(),
        "duration": 45,
    })


class TestTutoring:

    def test_request(self, client, student, teacher):
        response = request_session(client, student, teacher)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["status"] == "pending"
        assert data["teacher"]["id"] == teacher.id
        assert data["room_id"] is None

    def test_request_in_the_past(self, client, student, teacher):
        yesterday = (datetime.utcnow() - timedelta(days=1)).isoformat()
        response = request_session(client, student, teacher, scheduled_at=yesterday)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "INVALID_SCHEDULE"

    def test_request_needs_a_teacher(self, client, student, other_student):
        response = request_session(client, student, other_student)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "TEACHER_NOT_FOUND"

    def test_accept_opens_room(self, client, student, other_student, teacher, other_teacher):
        session = request_session(client, student, teacher).json()

        foreign = client.post(f"{TUTORING_URL}/{session['id']}/accept", headers=auth_headers(other_teacher))
        assert foreign.status_code == status.HTTP_403_FORBIDDEN

        accepted = client.post(f"{TUTORING_URL}/{session['id']}/accept", headers=auth_headers(teacher))
        assert accepted.json()["status"] == "accepted"
        assert accepted.json()["room_id"]

        again = client.post(f"{TUTORING_URL}/{session['id']}/accept", headers=auth_headers(teacher))
        assert again.status_code == status.HTTP_400_BAD_REQUEST
        assert again.json()["error"]["code"] == "ALREADY_PROCESSED"

        room = client.get(f"{TUTORING_URL}/{session['id']}/room", headers=auth_headers(student)).json()
        assert room["room_id"] == accepted.json()["room_id"]
        assert room["role"] == "guest"
        claims = verify_token(room["token"])
        assert claims["type"] == "room"
        assert claims["sub"] == str(student.id)

        host = client.get(f"{TUTORING_URL}/{session['id']}/room", headers=auth_headers(teacher)).json()
        assert host["role"] == "host"

        outsider = client.get(f"{TUTORING_URL}/{session['id']}/room", headers=auth_headers(other_student))
        assert outsider.status_code == status.HTTP_403_FORBIDDEN

    def test_room_not_ready_before_accept(self, client, student, teacher):
        session = request_session(client, student, teacher).json()

        response = client.get(f"{TUTORING_URL}/{session['id']}/room", headers=auth_headers(student))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "ROOM_NOT_READY"

    def test_reject(self, client, student, teacher):
        session = request_session(client, student, teacher).json()

        response = client.post(
            f"{TUTORING_URL}/{session['id']}/reject",
            headers=auth_headers(teacher),
            json={"reason": "Fully booked that day"}
        )

        assert response.json()["status"] == "rejected"
        assert response.json()["rejection_reason"] == "Fully booked that day"

    def test_full_lifecycle(self, client, db_session, student, teacher):
        session = request_session(client, student, teacher).json()
        headers = auth_headers(teacher)

        early_start = client.post(f"{TUTORING_URL}/{session['id']}/start", headers=headers)
        assert early_start.json()["error"]["code"] == "INVALID_STATUS"

        client.post(f"{TUTORING_URL}/{session['id']}/accept", headers=headers)
        started = client.post(f"{TUTORING_URL}/{session['id']}/start", headers=headers).json()
        assert started["status"] == "live"
        assert started["started_at"] is not None

        ended = client.post(f"{TUTORING_URL}/{session['id']}/end", headers=headers).json()
        assert ended["status"] == "completed"

        cancelled = client.post(f"{TUTORING_URL}/{session['id']}/cancel", headers=auth_headers(student), json={})
        assert cancelled.status_code == status.HTTP_400_BAD_REQUEST

        db_session.expire_all()
        profile = db_session.query(TeacherProfile).filter(TeacherProfile.user_id == teacher.id).one()
        assert profile.lessons_completed == 1

    def test_student_cancels(self, client, student, teacher):
        session = request_session(client, student, teacher).json()

        response = client.post(
            f"{TUTORING_URL}/{session['id']}/cancel",
            headers=auth_headers(student),
            json={"reason": "Exam moved"}
        )

        assert response.json()["status"] == "cancelled"
        assert response.json()["cancellation_reason"] == "Exam moved"

    def test_listing_per_role(self, client, student, other_student, teacher):
        request_session(client, student, teacher)

        assert client.get(TUTORING_URL, headers=auth_headers(teacher)).json()["total"] == 1
        assert client.get(TUTORING_URL, headers=auth_headers(student)).json()["total"] == 1
        assert client.get(TUTORING_URL, headers=auth_headers(other_student)).json()["total"] == 0

        accepted = client.get(TUTORING_URL, headers=auth_headers(teacher), params={"status": "accepted"}).json()
        assert accepted["total"] == 0


class TestLiveSessions:

    def schedule(self, client, teacher, course):
        return client.post(
            f"/api/v1/teacher/courses/{course.id}/live-sessions",
            headers=auth_headers(teacher),
            json={"title": "Weekly Q&A", "scheduled_at": tomorrow(), "duration": 30, "max_participants": 20}
        )

    def test_schedule_and_join(self, client, student, other_student, teacher, course, enrollment):
        response = self.schedule(client, teacher, course)
        assert response.status_code == status.HTTP_201_CREATED
        live = response.json()
        assert live["status"] == "scheduled"
        assert live["course_id"] == course.id

        too_early = client.get(f"{LIVE_URL}/{live['id']}/join", headers=auth_headers(student))
        assert too_early.status_code == status.HTTP_400_BAD_REQUEST
        assert too_early.json()["error"]["code"] == "SESSION_NOT_LIVE"

        started = client.post(f"{LIVE_URL}/{live['id']}/start", headers=auth_headers(teacher)).json()
        assert started["status"] == "live"

        joined = client.get(f"{LIVE_URL}/{live['id']}/join", headers=auth_headers(student)).json()
        assert joined["role"] == "guest"
        assert joined["token"]

        host = client.get(f"{LIVE_URL}/{live['id']}/join", headers=auth_headers(teacher)).json()
        assert host["role"] == "host"
        assert host["room_id"] == joined["room_id"]

        outsider = client.get(f"{LIVE_URL}/{live['id']}/join", headers=auth_headers(other_student))
        assert outsider.status_code == status.HTTP_403_FORBIDDEN
        assert outsider.json()["error"]["code"] == "NOT_ENROLLED"

        ended = client.post(
            f"{LIVE_URL}/{live['id']}/end",
            headers=auth_headers(teacher),
            json={"recording_url": "https://videos.example.com/qa-1"}
        ).json()
        assert ended["status"] == "ended"
        assert ended["recording_url"] == "https://videos.example.com/qa-1"

    def test_course_listing(self, client, student, teacher, course, enrollment):
        self.schedule(client, teacher, course)

        data = client.get(f"/api/v1/courses/{course.id}/live-sessions", headers=auth_headers(student)).json()

        assert [session["title"] for session in data["sessions"]] == ["Weekly Q&A"]

    def test_only_owner_manages(self, client, teacher, other_teacher, course):
        live = self.schedule(client, teacher, course).json()

        response = client.post(f"{LIVE_URL}/{live['id']}/start", headers=auth_headers(other_teacher))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_cancel_only_while_scheduled(self, client, teacher, course):
        live = self.schedule(client, teacher, course).json()
        headers = auth_headers(teacher)

        cancelled = client.post(f"{LIVE_URL}/{live['id']}/cancel", headers=headers).json()
        assert cancelled["status"] == "cancelled"

        restarted = client.post(f"{LIVE_URL}/{live['id']}/start", headers=headers)
        assert restarted.json()["error"]["code"] == "INVALID_STATUS"


class TestMessaging:

    def send(self, client, sender, recipient, body="Hello!"):
        return client.post(MESSAGES_URL, headers=auth_headers(sender), json={
            "recipient_id": recipient.id,
            "body": body,
        })

    def test_enrolled_student_messages_teacher(self, client, student, teacher, enrollment):
        response = self.send(client, student, teacher, "Could you explain exercise 4?")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["sender_id"] == student.id
        assert response.json()["read_at"] is None

    def test_students_cannot_message_strangers(self, client, student, other_student, teacher):
        for recipient in (other_student, teacher):
            response = self.send(client, student, recipient)
            assert response.status_code == status.HTTP_403_FORBIDDEN
            assert response.json()["error"]["code"] == "MESSAGING_NOT_ALLOWED"

    def test_cannot_message_self(self, client, teacher):
        response = self.send(client, teacher, teacher)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "CANNOT_MESSAGE_SELF"

    def test_unknown_recipient(self, client, teacher):
        response = client.post(MESSAGES_URL, headers=auth_headers(teacher), json={"recipient_id": 9999, "body": "Hi"})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_teacher_starts_conversation_and_student_replies(self, client, student, other_student, teacher):
        self.send(client, teacher, other_student, "Welcome to the class")

        reply = self.send(client, other_student, teacher, "Thanks!")
        assert reply.status_code == status.HTTP_201_CREATED

    def test_conversations_and_read_receipts(self, client, student, teacher, other_student, enrollment):
        self.send(client, student, teacher, "First question")
        self.send(client, student, teacher, "Second question")

        conversations = client.get(f"{MESSAGES_URL}/conversations", headers=auth_headers(teacher)).json()
        assert len(conversations["conversations"]) == 1
        conversation = conversations["conversations"][0]
        assert conversation["other_user"]["id"] == student.id
        assert conversation["unread_count"] == 2
        assert conversation["last_message"]["body"] == "Second question"

        thread = client.get(f"{MESSAGES_URL}/conversations/{conversation['id']}", headers=auth_headers(teacher)).json()
        assert [message["body"] for message in thread["messages"]] == ["First question", "Second question"]
        assert all(message["read_at"] for message in thread["messages"])

        conversations = client.get(f"{MESSAGES_URL}/conversations", headers=auth_headers(teacher)).json()
        assert conversations["conversations"][0]["unread_count"] == 0

        outsider = client.get(
            f"{MESSAGES_URL}/conversations/{conversation['id']}", headers=auth_headers(other_student)
        )
        assert outsider.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_conversation(self, client, student):
        response = client.get(f"{MESSAGES_URL}/conversations/9999", headers=auth_headers(student))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "CONVERSATION_NOT_FOUND"


def test_aware_schedule_is_normalised_to_utc(client, db_session, student, teacher):
    from learnity.models import TutoringSession

    scheduled = (datetime.utcnow() + timedelta(days=2)).replace(microsecond=0)
    local = (scheduled + timedelta(hours=2)).isoformat() + "+02:00"
    response = request_session(client, student, teacher, scheduled_at=local)

    assert response.status_code == status.HTTP_201_CREATED
    db_session.expire_all()
    stored = db_session.get(TutoringSession, response.json()["id"]).scheduled_at
    assert stored.tzinfo is None
    assert stored == scheduled
