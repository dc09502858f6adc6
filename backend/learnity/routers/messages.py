"""
Direct messages router for Learnity.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.schemas.communication import MessageCreate
from learnity.services import messaging


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Send a message, opening a conversation with the recipient if needed.
    """
    message = messaging.send_message(db, current_user, message_data.recipient_id, message_data.body)
    db.commit()
    db.refresh(message)

    return message.to_dict()


@router.get("/conversations")
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return {"conversations": messaging.list_conversations(db, current_user)}


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Messages of a conversation, oldest first. Opening it marks incoming messages as read.
    """
    thread = messaging.get_thread(db, conversation_id, current_user)
    db.commit()
    return thread
