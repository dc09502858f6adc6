"""
Teacher application review.

A pending teacher's TeacherProfile is the application. Admins approve
it (the user becomes a ``teacher``) or reject it with a reason (the user
becomes a ``rejected_teacher``).
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from fastapi import Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from learnity.core.errors import APIError, BadRequestError, NotFoundError
from learnity.models.admin import AuditEventType
from learnity.models.user import ApplicationStatus, TeacherProfile, User, UserRole
from learnity.services import audit
from learnity.utils.pagination import paginate


logger = logging.getLogger(__name__)

TEACHER_ROLES = (
    UserRole.TEACHER.value,
    UserRole.PENDING_TEACHER.value,
    UserRole.REJECTED_TEACHER.value,
)

# Application status filter -> user role
STATUS_ROLES = {
    ApplicationStatus.PENDING.value: UserRole.PENDING_TEACHER.value,
    ApplicationStatus.APPROVED.value: UserRole.TEACHER.value,
    ApplicationStatus.REJECTED.value: UserRole.REJECTED_TEACHER.value,
}


def get_application_status(user: User) -> Dict[str, Any]:
    profile = user.teacher_profile
    if profile is None:
        raise NotFoundError("Teacher application", code="APPLICATION_NOT_FOUND")

    return {
        "status": profile.application_status,
        "submitted_at": profile.submitted_at.isoformat() if profile.submitted_at else None,
        "reviewed_at": profile.reviewed_at.isoformat() if profile.reviewed_at else None,
        "rejection_reason": profile.rejection_reason,
        "profile_completion": profile.completion_percentage,
        "completion_items": profile.completion_items(),
    }


def _teacher_entry(user: User) -> Dict[str, Any]:
    entry = user.to_dict()
    profile = user.teacher_profile
    entry["application"] = profile.to_dict() if profile else None
    return entry


def list_teachers(
    db: Session,
    page: int,
    limit: int,
    status_filter: Optional[str] = None,
    search: Optional[str] = None
) -> Dict[str, Any]:
    query = db.query(User)
    if status_filter and status_filter != "all":
        if status_filter not in STATUS_ROLES:
            raise BadRequestError(f"Unknown status: {status_filter}", code="INVALID_STATUS")
        query = query.filter(User.role == STATUS_ROLES[status_filter])
    else:
        query = query.filter(User.role.in_(TEACHER_ROLES))

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

    teachers, meta = paginate(query, page, limit)
    return {
        "teachers": [_teacher_entry(teacher) for teacher in teachers],
        "stats": get_stats(db),
        **meta,
    }


def get_stats(db: Session) -> Dict[str, Any]:
    def count_role(role: UserRole) -> int:
        return db.query(func.count(User.id)).filter(User.role == role.value).scalar() or 0

    pending = count_role(UserRole.PENDING_TEACHER)
    approved = count_role(UserRole.TEACHER)
    rejected = count_role(UserRole.REJECTED_TEACHER)

    average_rating, total_sessions = db.query(
        func.avg(TeacherProfile.rating),
        func.sum(TeacherProfile.lessons_completed)
    ).join(User, TeacherProfile.user_id == User.id).filter(
        User.role == UserRole.TEACHER.value
    ).one()

    return {
        "total_teachers": pending + approved + rejected,
        "pending_applications": pending,
        "approved_teachers": approved,
        "rejected_applications": rejected,
        "average_rating": round(float(average_rating), 1) if average_rating else 0.0,
        "total_sessions": int(total_sessions or 0),
    }


def review_application(
    db: Session,
    user_id: int,
    decision: str,
    admin_id: int,
    rejection_reason: Optional[str] = None,
    request: Optional[Request] = None
) -> User:
    """
    Approve or reject a pending application.

    Raises:
        BadRequestError: unknown decision, missing rejection reason, or an
            application that was already reviewed
    """
    if decision not in (ApplicationStatus.APPROVED.value, ApplicationStatus.REJECTED.value):
        raise BadRequestError("Decision must be 'approved' or 'rejected'", code="INVALID_DECISION")
    if decision == ApplicationStatus.REJECTED.value and not (rejection_reason or "").strip():
        raise BadRequestError("A rejection reason is required", code="REJECTION_REASON_REQUIRED")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or user.teacher_profile is None:
        raise NotFoundError("Teacher application", code="APPLICATION_NOT_FOUND")

    profile = user.teacher_profile
    if profile.application_status != ApplicationStatus.PENDING.value:
        raise BadRequestError(
            f"Application has already been {profile.application_status}",
            code="ALREADY_REVIEWED"
        )

    old_role = user.role
    profile.application_status = decision
    profile.reviewed_at = datetime.utcnow()
    profile.approved_by = admin_id

    if decision == ApplicationStatus.APPROVED.value:
        user.role = UserRole.TEACHER.value
        profile.rejection_reason = None
        event_type = AuditEventType.TEACHER_APPLICATION_APPROVE.value
    else:
        user.role = UserRole.REJECTED_TEACHER.value
        profile.rejection_reason = rejection_reason.strip()
        event_type = AuditEventType.TEACHER_APPLICATION_REJECT.value

    audit.log_event(
        db,
        user_id=admin_id,
        event_type=event_type,
        action=f"Teacher application {decision}",
        request=request,
        entity_type="user",
        entity_id=user.id,
        old_values={"role": old_role},
        new_values={"role": user.role},
        details={"rejection_reason": profile.rejection_reason}
    )
    db.flush()

    logger.info(f"Admin {admin_id} {decision} teacher application of user {user.id}")
    return user


def batch_review(
    db: Session,
    items: List[Dict[str, Any]],
    admin_id: int,
    request: Optional[Request] = None
) -> Dict[str, Any]:
    """
    Review several applications; one failure does not stop the others.

    review_application validates before it changes anything, so a failed
    item leaves no partial state behind.
    """
    results = []
    for item in items:
        try:
            review_application(
                db,
                user_id=item["user_id"],
                decision=item["decision"],
                admin_id=admin_id,
                rejection_reason=item.get("rejection_reason"),
                request=request
            )
            results.append({"user_id": item["user_id"], "success": True})
        except APIError as e:
            results.append({
                "user_id": item["user_id"],
                "success": False,
                "error": {"code": e.code, "message": e.message},
            })

    successful = len([result for result in results if result["success"]])
    return {
        "results": results,
        "summary": {
            "total": len(results),
            "successful": successful,
            "failed": len(results) - successful,
        },
    }
