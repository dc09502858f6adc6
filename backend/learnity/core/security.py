"""
Security utilities for Learnity.

Handles password hashing, JWT token creation/verification, and the
signed room tokens handed out for tutoring and live sessions.
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings


# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=4 if settings.TESTING else 12,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        bool: True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The plain text password to hash

    Returns:
        str: The hashed password
    """
    return pwd_context.hash(password)


def create_access_token(
    subject: str | Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: The subject of the token (the user id as a string)
        expires_delta: Optional custom expiration time
        additional_claims: Optional additional claims to include in the token

    Returns:
        str: The encoded JWT token
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {"exp": expire}

    if isinstance(subject, str):
        to_encode["sub"] = subject
    elif isinstance(subject, dict):
        to_encode.update(subject)

    if additional_claims:
        to_encode.update(additional_claims)

    to_encode["iat"] = datetime.utcnow()

    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a JWT token.

    Args:
        token: The JWT token to verify

    Returns:
        Optional[Dict[str, Any]]: The decoded token payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def create_room_token(room_id: str, user_id: int, role: str) -> str:
    """
    Create a short-lived token granting access to a video room.

    Args:
        room_id: Identifier of the room being joined
        user_id: The joining user
        role: "host" or "guest"

    Returns:
        str: The encoded room token
    """
    return create_access_token(
        subject=str(user_id),
        expires_delta=timedelta(minutes=settings.ROOM_TOKEN_EXPIRE_MINUTES),
        additional_claims={"type": "room", "room_id": room_id, "room_role": role}
    )


def check_password_strength(password: str) -> Dict[str, Any]:
    """
    Check password strength and return feedback.

    Args:
        password: The password to check

    Returns:
        Dict[str, Any]: Strength assessment and suggestions
    """
    issues = []
    strength = "weak"

    if len(password) < 8:
        issues.append("Password should be at least 8 characters long")

    if not any(c.isupper() for c in password):
        issues.append("Password should contain at least one uppercase letter")

    if not any(c.islower() for c in password):
        issues.append("Password should contain at least one lowercase letter")

    if not any(c.isdigit() for c in password):
        issues.append("Password should contain at least one number")

    if not any(c in "!@#$%^&*()_+-=[]{}|;:,.<>?" for c in password):
        issues.append("Password should contain at least one special character")

    if len(issues) == 0:
        strength = "strong"
    elif len(issues) <= 2:
        strength = "medium"

    return {
        "strength": strength,
        "issues": issues,
        "valid": len(issues) == 0
    }
