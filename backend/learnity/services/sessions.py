"""
Tutoring sessions, course rooms and live sessions.

Video rooms are identified locally; joining one hands out a short-lived
room token signed with the application key.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session

from learnity.core.errors import BadRequestError, ForbiddenError, NotFoundError
from learnity.core.security import create_room_token
from learnity.models.communication import (
    CourseRoom, LiveSession, LiveSessionStatus, TutoringSession, TutoringSessionStatus
)
from learnity.models.course import Course
from learnity.models.user import User, UserRole
from learnity.services import enrollment as enrollment_service
from learnity.utils.pagination import paginate


logger = logging.getLogger(__name__)


def _new_room_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


def _check_future(scheduled_at: datetime) -> None:
    if scheduled_at <= datetime.utcnow():
        raise BadRequestError("Scheduled time must be in the future", code="INVALID_SCHEDULE")


def _invalid_status(current: str, action: str) -> BadRequestError:
    return BadRequestError(f"Cannot {action} a session that is {current}", code="INVALID_STATUS")


def _credentials(room_id: str, room_name: str, user_id: int, role: str) -> Dict[str, Any]:
    return {
        "room_id": room_id,
        "room_name": room_name,
        "role": role,
        "token": create_room_token(room_id, user_id, role),
    }


# Tutoring sessions

def get_tutoring_session(db: Session, session_id: int) -> TutoringSession:
    session = db.query(TutoringSession).filter(TutoringSession.id == session_id).first()
    if session is None:
        raise NotFoundError("Session", code="SESSION_NOT_FOUND")
    return session


def _check_session_teacher(session: TutoringSession, user_id: int) -> None:
    if session.teacher_id != user_id:
        raise ForbiddenError("Only the session's teacher can do this")


def request_session(
    db: Session,
    student_id: int,
    teacher_id: int,
    title: str,
    scheduled_at: datetime,
    duration: int = 60,
    description: Optional[str] = None
) -> TutoringSession:
    teacher = db.query(User).filter(
        User.id == teacher_id,
        User.role == UserRole.TEACHER.value
    ).first()
    if teacher is None:
        raise NotFoundError("Teacher", code="TEACHER_NOT_FOUND")
    _check_future(scheduled_at)

    session = TutoringSession(
        student_id=student_id,
        teacher_id=teacher_id,
        title=title,
        description=description,
        scheduled_at=scheduled_at,
        duration=duration,
        status=TutoringSessionStatus.PENDING.value
    )
    db.add(session)
    db.flush()
    logger.info(f"User {student_id} requested tutoring session {session.id} with teacher {teacher_id}")
    return session


def accept_session(db: Session, session_id: int, teacher_id: int) -> TutoringSession:
    """Accept a pending request and open its room."""
    session = get_tutoring_session(db, session_id)
    _check_session_teacher(session, teacher_id)
    if session.status != TutoringSessionStatus.PENDING.value:
        raise BadRequestError("Session has already been processed", code="ALREADY_PROCESSED")

    session.status = TutoringSessionStatus.ACCEPTED.value
    session.room_id = _new_room_id("tutoring")
    session.room_name = f"tutoring-{session.id}"
    db.flush()
    return session


def reject_session(db: Session, session_id: int, teacher_id: int, reason: str) -> TutoringSession:
    session = get_tutoring_session(db, session_id)
    _check_session_teacher(session, teacher_id)
    if session.status != TutoringSessionStatus.PENDING.value:
        raise BadRequestError("Session has already been processed", code="ALREADY_PROCESSED")

    session.status = TutoringSessionStatus.REJECTED.value
    session.rejection_reason = reason
    db.flush()
    return session


def cancel_session(db: Session, session_id: int, user_id: int, reason: Optional[str] = None) -> TutoringSession:
    session = get_tutoring_session(db, session_id)
    if not session.is_participant(user_id):
        raise ForbiddenError("You are not a participant of this session")
    if session.status in (TutoringSessionStatus.COMPLETED.value, TutoringSessionStatus.CANCELLED.value):
        raise _invalid_status(session.status, "cancel")

    session.status = TutoringSessionStatus.CANCELLED.value
    session.cancellation_reason = reason
    session.cancelled_at = datetime.utcnow()
    db.flush()
    return session


def start_session(db: Session, session_id: int, teacher_id: int) -> TutoringSession:
    session = get_tutoring_session(db, session_id)
    _check_session_teacher(session, teacher_id)
    if session.status != TutoringSessionStatus.ACCEPTED.value:
        raise _invalid_status(session.status, "start")

    session.status = TutoringSessionStatus.LIVE.value
    session.started_at = datetime.utcnow()
    db.flush()
    return session


def end_session(db: Session, session_id: int, teacher_id: int) -> TutoringSession:
    session = get_tutoring_session(db, session_id)
    _check_session_teacher(session, teacher_id)
    if session.status != TutoringSessionStatus.LIVE.value:
        raise _invalid_status(session.status, "end")

    session.status = TutoringSessionStatus.COMPLETED.value
    session.ended_at = datetime.utcnow()
    db.flush()

    profile = session.teacher.teacher_profile
    if profile is not None:
        profile.lessons_completed += 1
        db.flush()
    return session


def list_tutoring_sessions(
    db: Session,
    user: User,
    page: int,
    limit: int,
    status_filter: Optional[str] = None
) -> Dict[str, Any]:
    """Sessions the user teaches (teachers) or booked (everyone else)."""
    query = db.query(TutoringSession)
    if user.role == UserRole.TEACHER.value:
        query = query.filter(TutoringSession.teacher_id == user.id)
    else:
        query = query.filter(TutoringSession.student_id == user.id)
    if status_filter:
        query = query.filter(TutoringSession.status == status_filter)
    query = query.order_by(TutoringSession.scheduled_at.desc(), TutoringSession.id.desc())

    sessions, meta = paginate(query, page, limit)
    return {"sessions": [session.to_dict() for session in sessions], **meta}


def tutoring_room_credentials(db: Session, session_id: int, user_id: int) -> Dict[str, Any]:
    session = get_tutoring_session(db, session_id)
    if not session.is_participant(user_id):
        raise ForbiddenError("You are not a participant of this session")
    if not session.room_id:
        raise BadRequestError("Room not created yet", code="ROOM_NOT_READY")

    role = "host" if user_id == session.teacher_id else "guest"
    return _credentials(session.room_id, session.room_name, user_id, role)


# Course rooms and live sessions

def get_or_create_course_room(db: Session, course: Course) -> CourseRoom:
    room = db.query(CourseRoom).filter(CourseRoom.course_id == course.id).first()
    if room is None:
        room = CourseRoom(
            course_id=course.id,
            room_id=_new_room_id("course"),
            room_name=f"course-{course.id}"
        )
        db.add(room)
        db.flush()
        logger.info(f"Room {room.room_id} created for course {course.id}")
    return room


def get_live_session(db: Session, live_session_id: int) -> LiveSession:
    live = db.query(LiveSession).filter(LiveSession.id == live_session_id).first()
    if live is None:
        raise NotFoundError("Live session", code="LIVE_SESSION_NOT_FOUND")
    return live


def schedule_live_session(db: Session, course: Course, host_id: int, data: Dict[str, Any]) -> LiveSession:
    _check_future(data["scheduled_at"])
    room = get_or_create_course_room(db, course)

    live = LiveSession(
        course_room_id=room.id,
        host_id=host_id,
        title=data["title"],
        description=data.get("description"),
        scheduled_at=data["scheduled_at"],
        duration=data.get("duration") or 60,
        max_participants=data.get("max_participants") or 100,
        status=LiveSessionStatus.SCHEDULED.value
    )
    db.add(live)
    db.flush()
    return live


def start_live_session(db: Session, live: LiveSession) -> LiveSession:
    if live.status != LiveSessionStatus.SCHEDULED.value:
        raise _invalid_status(live.status, "start")
    live.status = LiveSessionStatus.LIVE.value
    live.started_at = datetime.utcnow()
    db.flush()
    return live


def end_live_session(db: Session, live: LiveSession, recording_url: Optional[str] = None) -> LiveSession:
    if live.status != LiveSessionStatus.LIVE.value:
        raise _invalid_status(live.status, "end")
    live.status = LiveSessionStatus.ENDED.value
    live.ended_at = datetime.utcnow()
    if recording_url:
        live.recording_url = recording_url
    db.flush()
    return live


def cancel_live_session(db: Session, live: LiveSession) -> LiveSession:
    if live.status != LiveSessionStatus.SCHEDULED.value:
        raise _invalid_status(live.status, "cancel")
    live.status = LiveSessionStatus.CANCELLED.value
    db.flush()
    return live


def _check_live_access(db: Session, course: Course, user: User) -> None:
    if user.is_admin or course.teacher_id == user.id:
        return
    enrollment_service.get_active_enrollment(db, user.id, course.id)


def list_live_sessions(db: Session, course: Course, user: User) -> List[LiveSession]:
    _check_live_access(db, course, user)
    room = db.query(CourseRoom).filter(CourseRoom.course_id == course.id).first()
    if room is None:
        return []
    return list(room.live_sessions)


def join_live_session(db: Session, live: LiveSession, user: User) -> Dict[str, Any]:
    """Room credentials, handed out only while the session is live."""
    room = live.course_room
    _check_live_access(db, room.course, user)
    if live.status != LiveSessionStatus.LIVE.value:
        raise BadRequestError("Session is not live", code="SESSION_NOT_LIVE")

    role = "host" if user.id == live.host_id else "guest"
    return _credentials(room.room_id, room.room_name, user.id, role)
