"""
Authentication router for Learnity.

Handles student and teacher registration, login, logout and password
changes, and provides the current-user and role dependencies used by
every other router.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Callable

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.core.errors import APIError, BadRequestError, ConflictError, ForbiddenError
from learnity.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    verify_token,
    check_password_strength
)
from learnity.models.admin import AuditEventType, AuditLog, RiskLevel, SecurityEventType
from learnity.models.user import StudentProfile, TeacherProfile, User, UserRole
from learnity.schemas.auth import PasswordChange, StudentRegister, TeacherRegister
from learnity.services import audit, gamification, platform_settings


logger = logging.getLogger(__name__)

router = APIRouter()

# OAuth2 scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False
)


# Dependencies
def _user_from_token(token: Optional[str], db: Session) -> Optional[User]:
    payload = verify_token(token) if token else None
    if payload is None or payload.get("type") == "room":
        return None

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        return None
    return db.query(User).filter(User.id == int(user_id)).first()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from JWT token.
    """
    user = _user_from_token(token, db)
    if user is None:
        raise APIError(
            status.HTTP_401_UNAUTHORIZED,
            "UNAUTHORIZED",
            "Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not user.is_active:
        raise ForbiddenError("Inactive user")

    return user


def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Current user when a valid token is sent, otherwise None.
    """
    user = _user_from_token(token, db)
    if user is None or not user.is_active:
        return None
    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """
    Build a dependency that only lets users with one of ``roles`` through.
    """
    allowed = {role.value for role in roles}

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise ForbiddenError()
        return current_user

    return role_checker


get_current_student = require_roles(UserRole.STUDENT)
get_current_teacher = require_roles(UserRole.TEACHER)


def _check_new_password(password: str) -> None:
    password_check = check_password_strength(password)
    if not password_check["valid"]:
        raise BadRequestError(
            "Password does not meet requirements",
            code="WEAK_PASSWORD",
            details={"issues": password_check["issues"]}
        )


def _check_email_available(db: Session, email: str) -> None:
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already registered")


def _failed_login_count(db: Session, user: Optional[User], ip_address: Optional[str]) -> int:
    window_start = datetime.utcnow() - timedelta(minutes=settings.LOGIN_ATTEMPT_WINDOW_MINUTES)
    query = db.query(AuditLog).filter(
        AuditLog.event_type == AuditEventType.AUTH_LOGIN.value,
        AuditLog.success == False,  # noqa: E712
        AuditLog.created_at >= window_start
    )
    if user is not None:
        query = query.filter(AuditLog.user_id == user.id)
    else:
        query = query.filter(AuditLog.user_id.is_(None), AuditLog.ip_address == ip_address)
    return query.count()


def _issue_token(user: User) -> str:
    return create_access_token(
        subject=str(user.id),
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        additional_claims={
            "email": user.email,
            "role": user.role,
        }
    )


# Endpoints
@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user_data: StudentRegister,
    request: Request,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Register a new student.
    """
    if not platform_settings.is_enabled(db, "enable_registration"):
        raise ForbiddenError("User registration is currently disabled", code="REGISTRATION_DISABLED")

    _check_email_available(db, user_data.email)
    _check_new_password(user_data.password)

    new_user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=UserRole.STUDENT.value,
        is_active=True
    )
    new_user.student_profile = StudentProfile(
        grade_level=user_data.grade_level,
        subjects=user_data.subjects
    )
    new_user.student_profile.update_completion()
    db.add(new_user)
    db.flush()

    audit.log_event(
        db,
        user_id=new_user.id,
        event_type=AuditEventType.AUTH_REGISTER.value,
        action="Student registered",
        request=request,
        entity_type="user",
        entity_id=new_user.id
    )
    db.commit()
    db.refresh(new_user)
    logger.info(f"Student registered: {new_user.email}")

    return {
        "user": new_user.to_dict(),
        "student_profile": new_user.student_profile.to_dict(),
    }


@router.post("/register/teacher", status_code=status.HTTP_201_CREATED)
async def register_teacher(
    user_data: TeacherRegister,
    request: Request,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Submit a teacher application; the account stays pending until reviewed.
    """
    if not platform_settings.is_enabled(db, "enable_teacher_applications"):
        raise ForbiddenError(
            "Teacher applications are currently closed",
            code="TEACHER_APPLICATIONS_DISABLED"
        )

    _check_email_available(db, user_data.email)
    _check_new_password(user_data.password)

    new_user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=UserRole.PENDING_TEACHER.value,
        is_active=True
    )
    new_user.teacher_profile = TeacherProfile(
        qualifications=user_data.qualifications,
        subjects=user_data.subjects,
        experience=user_data.experience,
        bio=user_data.bio,
        hourly_rate=user_data.hourly_rate,
        documents=user_data.documents,
        video_intro_url=user_data.video_intro_url,
        available_days=user_data.available_days
    )
    db.add(new_user)
    db.flush()

    audit.log_event(
        db,
        user_id=new_user.id,
        event_type=AuditEventType.TEACHER_APPLICATION_SUBMIT.value,
        action="Teacher application submitted",
        request=request,
        entity_type="user",
        entity_id=new_user.id
    )
    db.commit()
    db.refresh(new_user)
    logger.info(f"Teacher application submitted: {new_user.email}")

    return {
        "user": new_user.to_dict(),
        "application": new_user.teacher_profile.to_dict(),
    }


@router.post("/login")
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    OAuth2 compatible login endpoint; the username field carries the email.
    """
    user = db.query(User).filter(User.email == form_data.username).first()
    ip_address = audit.client_info(request)["ip_address"]

    # Too many recent failures
    if _failed_login_count(db, user, ip_address) >= settings.MAX_LOGIN_ATTEMPTS:
        audit.log_security_event(
            db,
            event_type=SecurityEventType.MULTIPLE_FAILED_ATTEMPTS.value,
            risk_level=RiskLevel.HIGH.value,
            user_id=user.id if user else None,
            request=request,
            blocked=True,
            reason="Too many failed login attempts",
            details={"email": form_data.username}
        )
        db.commit()
        raise APIError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "RATE_LIMITED",
            "Too many failed login attempts. Please try again later."
        )

    if user is None or not verify_password(form_data.password, user.hashed_password):
        audit.log_event(
            db,
            user_id=user.id if user else None,
            event_type=AuditEventType.AUTH_LOGIN.value,
            action="Login failed",
            request=request,
            details={"email": form_data.username},
            success=False,
            error_message="Invalid credentials"
        )
        db.commit()
        logger.warning(f"Failed login for {form_data.username}")

        raise APIError(
            status.HTTP_401_UNAUTHORIZED,
            "INVALID_CREDENTIALS",
            "Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"}
        )

    # Check if user is active
    if not user.is_active:
        raise ForbiddenError("User account is deactivated", code="ACCOUNT_DISABLED")

    access_token = _issue_token(user)

    # Update last login, streak and daily reward
    now = datetime.utcnow()
    user.last_login_at = now
    streak = gamification.update_streak(db, user.id, now)
    xp_awarded = gamification.award_daily_login(db, user.id, now)

    audit.log_event(
        db,
        user_id=user.id,
        event_type=AuditEventType.AUTH_LOGIN.value,
        action="Login succeeded",
        request=request
    )
    db.commit()
    db.refresh(user)

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user.to_dict(),
        "daily_xp_awarded": xp_awarded,
        "streak": streak,
    }


@router.post("/logout")
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    """
    Logout endpoint (mainly for logging purposes).
    """
    audit.log_event(
        db,
        user_id=current_user.id,
        event_type=AuditEventType.AUTH_LOGOUT.value,
        action="Logout",
        request=request
    )
    db.commit()

    return {"message": "Successfully logged out"}


@router.get("/me")
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
) -> Dict[str, Any]:
    """
    Get current user information.
    """
    data = current_user.to_dict(include_sensitive=True)
    if current_user.student_profile:
        data["student_profile"] = current_user.student_profile.to_dict()
    if current_user.teacher_profile:
        data["teacher_profile"] = current_user.teacher_profile.to_dict()
    return data


@router.post("/change-password")
async def change_password(
    password_data: PasswordChange,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    """
    Change password for authenticated user.
    """
    if not verify_password(password_data.current_password, current_user.hashed_password):
        raise BadRequestError("Current password is incorrect", code="INVALID_PASSWORD")

    _check_new_password(password_data.new_password)

    current_user.hashed_password = get_password_hash(password_data.new_password)
    audit.log_event(
        db,
        user_id=current_user.id,
        event_type=AuditEventType.AUTH_PASSWORD_CHANGE.value,
        action="Password changed",
        request=request
    )
    db.commit()

    return {"message": "Password changed successfully"}
