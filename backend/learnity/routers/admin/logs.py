"""
Admin audit router for Learnity: audit logs and security events.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.admin import AuditEventType, RiskLevel, SecurityEventType
from learnity.services import admin as admin_service


router = APIRouter()


@router.get("/audit-logs")
async def get_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.MAX_PAGE_SIZE),
    user_id: Optional[int] = None,
    event_type: Optional[AuditEventType] = None,
    success: Optional[bool] = None,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get audit logs, newest first.
    """
    return admin_service.list_audit_logs(
        db,
        page,
        limit,
        user_id=user_id,
        event_type=event_type.value if event_type else None,
        success=success
    )


@router.get("/security-events")
async def get_security_events(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.MAX_PAGE_SIZE),
    event_type: Optional[SecurityEventType] = None,
    risk_level: Optional[RiskLevel] = None,
    blocked: Optional[bool] = None,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return admin_service.list_security_events(
        db,
        page,
        limit,
        event_type=event_type.value if event_type else None,
        risk_level=risk_level.value if risk_level else None,
        blocked=blocked
    )
