"""
Administration helpers: platform statistics, user management, platform
settings and the audit trail.
"""

import logging
from typing import Optional, Any, Dict, List

from fastapi import Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from learnity.core.errors import BadRequestError, ForbiddenError, NotFoundError
from learnity.models.admin import AuditEventType, AuditLog, SecurityEvent, SystemSettings
from learnity.models.course import Course
from learnity.models.gamification import XPActivity
from learnity.models.progress import Enrollment, EnrollmentStatus
from learnity.models.user import ApplicationStatus, TeacherProfile, User
from learnity.models.wallet import Transaction, TransactionStatus
from learnity.services import audit
from learnity.utils.pagination import paginate


logger = logging.getLogger(__name__)


def _grouped_counts(db: Session, column) -> Dict[str, int]:
    return {value: count for value, count in db.query(column, func.count()).group_by(column).all()}


def dashboard_stats(db: Session) -> Dict[str, Any]:
    users_by_role = _grouped_counts(db, User.role)
    courses_by_status = _grouped_counts(db, Course.status)
    enrollments_by_status = _grouped_counts(db, Enrollment.status)

    pending_applications = db.query(func.count(TeacherProfile.id)).filter(
        TeacherProfile.application_status == ApplicationStatus.PENDING.value
    ).scalar() or 0
    pending_transactions = db.query(func.count(Transaction.id)).filter(
        Transaction.status == TransactionStatus.PENDING.value
    ).scalar() or 0
    total_xp = db.query(func.sum(XPActivity.amount)).scalar() or 0

    return {
        "users": {
            "total": sum(users_by_role.values()),
            "by_role": users_by_role,
        },
        "courses": {
            "total": sum(courses_by_status.values()),
            "by_status": courses_by_status,
        },
        "enrollments": {
            "total": sum(enrollments_by_status.values()),
            "active": enrollments_by_status.get(EnrollmentStatus.ACTIVE.value, 0),
            "completed": enrollments_by_status.get(EnrollmentStatus.COMPLETED.value, 0),
        },
        "pending_applications": pending_applications,
        "pending_transactions": pending_transactions,
        "total_xp_awarded": int(total_xp),
    }


# Users

def list_users(
    db: Session,
    page: int,
    limit: int,
    role: Optional[str] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None
) -> Dict[str, Any]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                User.email.ilike(search_term),
                User.first_name.ilike(search_term),
                User.last_name.ilike(search_term)
            )
        )
    query = query.order_by(User.created_at.desc(), User.id.desc())

    users, meta = paginate(query, page, limit)
    return {"users": [user.to_dict() for user in users], **meta}


def set_user_active(
    db: Session,
    user_id: int,
    is_active: bool,
    admin: User,
    request: Optional[Request] = None
) -> User:
    if user_id == admin.id and not is_active:
        raise BadRequestError("You cannot deactivate your own account", code="CANNOT_DEACTIVATE_SELF")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User", code="USER_NOT_FOUND")

    previous = user.is_active
    user.is_active = is_active
    audit.log_event(
        db,
        user_id=admin.id,
        event_type=AuditEventType.ADMIN_ACTION.value,
        action="User activated" if is_active else "User deactivated",
        request=request,
        entity_type="user",
        entity_id=user.id,
        old_values={"is_active": previous},
        new_values={"is_active": is_active}
    )
    db.flush()
    logger.info(f"Admin {admin.id} set user {user.id} active={is_active}")
    return user


# Platform settings

def list_settings(db: Session, category: Optional[str] = None) -> List[SystemSettings]:
    query = db.query(SystemSettings)
    if category:
        query = query.filter(SystemSettings.category == category)
    return query.order_by(SystemSettings.category, SystemSettings.key).all()


def update_setting(
    db: Session,
    key: str,
    value: Any,
    admin: User,
    request: Optional[Request] = None
) -> SystemSettings:
    setting = db.query(SystemSettings).filter(SystemSettings.key == key).first()
    if setting is None:
        raise NotFoundError("Setting", code="SETTING_NOT_FOUND")
    if not setting.is_editable:
        raise ForbiddenError(f"Setting '{key}' cannot be modified", code="SETTING_NOT_EDITABLE")

    old_value = setting.get_typed_value()
    try:
        setting.set_typed_value(value)
    except (TypeError, ValueError) as e:
        raise BadRequestError(str(e), code="INVALID_SETTING_VALUE")
    setting.last_modified_by = admin.id

    audit.log_event(
        db,
        user_id=admin.id,
        event_type=AuditEventType.ADMIN_ACTION.value,
        action=f"Setting {key} updated",
        request=request,
        entity_type="setting",
        old_values={key: old_value},
        new_values={key: setting.get_typed_value()}
    )
    db.flush()
    logger.info(f"Admin {admin.id} changed setting {key}")
    return setting


# Audit trail

def list_audit_logs(
    db: Session,
    page: int,
    limit: int,
    user_id: Optional[int] = None,
    event_type: Optional[str] = None,
    success: Optional[bool] = None
) -> Dict[str, Any]:
    query = db.query(AuditLog)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if event_type:
        query = query.filter(AuditLog.event_type == event_type)
    if success is not None:
        query = query.filter(AuditLog.success == success)
    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())

    logs, meta = paginate(query, page, limit)
    return {"logs": [log.to_dict() for log in logs], **meta}


def list_security_events(
    db: Session,
    page: int,
    limit: int,
    event_type: Optional[str] = None,
    risk_level: Optional[str] = None,
    blocked: Optional[bool] = None
) -> Dict[str, Any]:
    query = db.query(SecurityEvent)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    if risk_level:
        query = query.filter(SecurityEvent.risk_level == risk_level)
    if blocked is not None:
        query = query.filter(SecurityEvent.blocked == blocked)
    query = query.order_by(SecurityEvent.created_at.desc(), SecurityEvent.id.desc())

    events, meta = paginate(query, page, limit)
    return {"events": [event.to_dict() for event in events], **meta}
