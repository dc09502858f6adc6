"""
Audit trail and security event helpers.
"""

import logging
from typing import Optional, Dict, Any

from fastapi import Request
from sqlalchemy.orm import Session

from learnity.models.admin import AuditLog, SecurityEvent


logger = logging.getLogger(__name__)


def client_info(request: Optional[Request]) -> Dict[str, Optional[str]]:
    """Extract the caller's IP address and user agent from a request."""
    if request is None:
        return {"ip_address": None, "user_agent": None}
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def log_event(
    db: Session,
    user_id: Optional[int],
    event_type: str,
    action: str,
    request: Optional[Request] = None,
    **kwargs: Any
) -> AuditLog:
    """
    Add an audit entry to the session.

    Extra keyword arguments are passed through to ``AuditLog.log_action``.
    """
    entry = AuditLog.log_action(
        user_id=user_id,
        event_type=event_type,
        action=action,
        **client_info(request),
        **kwargs
    )
    db.add(entry)
    return entry


def log_security_event(
    db: Session,
    event_type: str,
    risk_level: str,
    user_id: Optional[int] = None,
    request: Optional[Request] = None,
    blocked: bool = False,
    reason: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> SecurityEvent:
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        risk_level=risk_level,
        blocked=blocked,
        reason=reason,
        details=details or {},
        **client_info(request)
    )
    db.add(event)
    logger.warning(f"Security event {event_type} ({risk_level}) for user {user_id}: {reason}")
    return event
