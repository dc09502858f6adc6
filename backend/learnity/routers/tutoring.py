"""
Tutoring sessions router for Learnity.

Students book one-on-one sessions with a teacher; the teacher accepts or
rejects them and runs the session in a private video room.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.communication import TutoringSessionStatus
from learnity.models.user import User
from learnity.routers.auth import get_current_user, get_current_student, get_current_teacher
from learnity.schemas.communication import SessionCancel, SessionReject, TutoringSessionCreate
from learnity.services import sessions as session_service


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def request_session(
    session_data: TutoringSessionCreate,
    current_user: User = Depends(get_current_student),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Ask a teacher for a tutoring session at a future time.
    """
    session = session_service.request_session(
        db,
        current_user.id,
        session_data.teacher_id,
        session_data.title,
        session_data.scheduled_at,
        duration=session_data.duration,
        description=session_data.description
    )
    db.commit()
    db.refresh(session)

    return session.to_dict()


@router.get("")
async def list_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[TutoringSessionStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Sessions the current user teaches or has booked.
    """
    return session_service.list_tutoring_sessions(
        db,
        current_user,
        page,
        limit,
        status_filter=status_filter.value if status_filter else None
    )


@router.post("/{session_id}/accept")
async def accept_session(
    session_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    session = session_service.accept_session(db, session_id, current_user.id)
    db.commit()
    db.refresh(session)

    return session.to_dict()


@router.post("/{session_id}/reject")
async def reject_session(
    session_id: int,
    reject_data: SessionReject,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    session = session_service.reject_session(db, session_id, current_user.id, reject_data.reason)
    db.commit()
    db.refresh(session)

    return session.to_dict()


@router.post("/{session_id}/cancel")
async def cancel_session(
    session_id: int,
    cancel_data: SessionCancel,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Either participant may cancel until the session is completed.
    """
    session = session_service.cancel_session(db, session_id, current_user.id, cancel_data.reason)
    db.commit()
    db.refresh(session)

    return session.to_dict()


@router.post("/{session_id}/start")
async def start_session(
    session_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    session = session_service.start_session(db, session_id, current_user.id)
    db.commit()
    db.refresh(session)

    return session.to_dict()


@router.post("/{session_id}/end")
async def end_session(
    session_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    session = session_service.end_session(db, session_id, current_user.id)
    db.commit()
    db.refresh(session)

    return session.to_dict()


@router.get("/{session_id}/room")
async def get_room_credentials(
    session_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Room id and a short-lived room token for a session participant.
    """
    return session_service.tutoring_room_credentials(db, session_id, current_user.id)
