"""
Live sessions router for Learnity.

Scheduling happens under the teacher router; these routes move a session
through its lifecycle and hand out join credentials.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.models.communication import LiveSession
from learnity.models.user import User
from learnity.routers.auth import get_current_user, get_current_teacher
from learnity.schemas.communication import LiveSessionEnd
from learnity.services import sessions as session_service
from learnity.services.catalog import check_course_owner


router = APIRouter()


def _hosted_session(db: Session, live_session_id: int, user: User) -> LiveSession:
    live = session_service.get_live_session(db, live_session_id)
    check_course_owner(user, live.course_room.course)
    return live


@router.post("/{live_session_id}/start")
async def start_live_session(
    live_session_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    live = _hosted_session(db, live_session_id, current_user)
    session_service.start_live_session(db, live)
    db.commit()
    db.refresh(live)

    return live.to_dict()


@router.post("/{live_session_id}/end")
async def end_live_session(
    live_session_id: int,
    end_data: LiveSessionEnd,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    live = _hosted_session(db, live_session_id, current_user)
    session_service.end_live_session(db, live, end_data.recording_url)
    db.commit()
    db.refresh(live)

    return live.to_dict()


@router.post("/{live_session_id}/cancel")
async def cancel_live_session(
    live_session_id: int,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    live = _hosted_session(db, live_session_id, current_user)
    session_service.cancel_live_session(db, live)
    db.commit()
    db.refresh(live)

    return live.to_dict()


@router.get("/{live_session_id}/join")
async def join_live_session(
    live_session_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Join credentials for the host and enrolled students while the session is live.
    """
    live = session_service.get_live_session(db, live_session_id)
    return session_service.join_live_session(db, live, current_user)
