"""
Direct messages between two users.
"""

import logging
from datetime import datetime
from typing import List, Dict, Any, Tuple

from sqlalchemy import or_, and_, func
from sqlalchemy.orm import Session

from learnity.core.errors import BadRequestError, ForbiddenError, NotFoundError
from learnity.models.communication import DirectChannel, Message, TutoringSession
from learnity.models.course import Course
from learnity.models.progress import Enrollment, EnrollmentStatus
from learnity.models.user import User, UserRole


logger = logging.getLogger(__name__)


def _pair(first_id: int, second_id: int) -> Tuple[int, int]:
    return (first_id, second_id) if first_id < second_id else (second_id, first_id)


def find_channel(db: Session, first_id: int, second_id: int):
    user1_id, user2_id = _pair(first_id, second_id)
    return db.query(DirectChannel).filter(
        DirectChannel.user1_id == user1_id,
        DirectChannel.user2_id == user2_id
    ).first()


def get_or_create_channel(db: Session, first_id: int, second_id: int) -> DirectChannel:
    channel = find_channel(db, first_id, second_id)
    if channel is None:
        user1_id, user2_id = _pair(first_id, second_id)
        channel = DirectChannel(user1_id=user1_id, user2_id=user2_id)
        db.add(channel)
        db.flush()
    return channel


def can_message(db: Session, sender: User, recipient: User) -> bool:
    """
    Teachers and admins may message anyone. Everyone else may message the
    teacher of a course they are enrolled in, a tutoring counterpart, or
    someone they already have a conversation with.
    """
    if sender.role in (UserRole.TEACHER.value, UserRole.ADMIN.value):
        return True

    if find_channel(db, sender.id, recipient.id) is not None:
        return True

    teaches_enrolled_course = db.query(Enrollment.id).join(
        Course, Enrollment.course_id == Course.id
    ).filter(
        Enrollment.student_id == sender.id,
        Enrollment.status != EnrollmentStatus.UNENROLLED.value,
        Course.teacher_id == recipient.id
    ).first() is not None
    if teaches_enrolled_course:
        return True

    return db.query(TutoringSession.id).filter(
        or_(
            and_(TutoringSession.student_id == sender.id, TutoringSession.teacher_id == recipient.id),
            and_(TutoringSession.student_id == recipient.id, TutoringSession.teacher_id == sender.id)
        )
    ).first() is not None


def send_message(db: Session, sender: User, recipient_id: int, body: str) -> Message:
    if recipient_id == sender.id:
        raise BadRequestError("You cannot message yourself", code="CANNOT_MESSAGE_SELF")

    recipient = db.query(User).filter(User.id == recipient_id, User.is_active == True).first()  # noqa: E712
    if recipient is None:
        raise NotFoundError("User", code="USER_NOT_FOUND")

    if not can_message(db, sender, recipient):
        raise ForbiddenError("You cannot message this user", code="MESSAGING_NOT_ALLOWED")

    channel = get_or_create_channel(db, sender.id, recipient.id)
    message = Message(channel_id=channel.id, sender_id=sender.id, body=body)
    db.add(message)
    channel.last_message_at = datetime.utcnow()
    db.flush()
    return message


def _unread_count(db: Session, channel: DirectChannel, user_id: int) -> int:
    return db.query(func.count(Message.id)).filter(
        Message.channel_id == channel.id,
        Message.sender_id != user_id,
        Message.read_at.is_(None)
    ).scalar() or 0


def list_conversations(db: Session, user: User) -> List[Dict[str, Any]]:
    channels = db.query(DirectChannel).filter(
        or_(DirectChannel.user1_id == user.id, DirectChannel.user2_id == user.id)
    ).order_by(DirectChannel.last_message_at.desc(), DirectChannel.id.desc()).all()

    conversations = []
    for channel in channels:
        last_message = channel.messages[-1] if channel.messages else None
        conversations.append({
            "id": channel.id,
            "other_user": channel.other_user(user.id).to_public_dict(),
            "last_message": last_message.to_dict() if last_message else None,
            "unread_count": _unread_count(db, channel, user.id),
            "last_message_at": channel.last_message_at.isoformat() if channel.last_message_at else None,
        })
    return conversations


def get_thread(db: Session, channel_id: int, user: User) -> Dict[str, Any]:
    """All messages of a conversation, oldest first. Incoming ones are marked read."""
    channel = db.query(DirectChannel).filter(DirectChannel.id == channel_id).first()
    if channel is None:
        raise NotFoundError("Conversation", code="CONVERSATION_NOT_FOUND")
    if not channel.has_member(user.id):
        raise ForbiddenError("You are not part of this conversation")

    now = datetime.utcnow()
    for message in channel.messages:
        if message.sender_id != user.id and message.read_at is None:
            message.read_at = now
    db.flush()

    return {
        "id": channel.id,
        "other_user": channel.other_user(user.id).to_public_dict(),
        "messages": [message.to_dict() for message in channel.messages],
    }
