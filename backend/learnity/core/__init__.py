"""
Core module for the Learnity backend.

This module contains core functionality including:
- Configuration management
- Database connections
- Security utilities (JWT, password hashing)
- The JSON error envelope
"""

from .config import settings
from .database import get_db, engine, SessionLocal
from .security import (
    create_access_token,
    verify_password,
    get_password_hash,
    verify_token
)
from .errors import APIError, NotFoundError, ForbiddenError, BadRequestError, ConflictError

__all__ = [
    "settings",
    "get_db",
    "engine",
    "SessionLocal",
    "create_access_token",
    "verify_password",
    "get_password_hash",
    "verify_token",
    "APIError",
    "NotFoundError",
    "ForbiddenError",
    "BadRequestError",
    "ConflictError"
]
