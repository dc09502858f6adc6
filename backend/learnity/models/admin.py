"""
Admin-specific models for Learnity.

Defines AuditLog, SecurityEvent and SystemSettings models for
auditing, login protection and runtime platform settings.
"""

import json
from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text,
    ForeignKey, Index, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from learnity.core.database import Base


class AuditEventType(str, Enum):
    """Types of audited events."""
    AUTH_LOGIN = "auth_login"
    AUTH_LOGOUT = "auth_logout"
    AUTH_REGISTER = "auth_register"
    AUTH_PASSWORD_CHANGE = "auth_password_change"
    PROFILE_UPDATE = "profile_update"
    ROLE_CHANGE = "role_change"
    TEACHER_APPLICATION_SUBMIT = "teacher_application_submit"
    TEACHER_APPLICATION_APPROVE = "teacher_application_approve"
    TEACHER_APPLICATION_REJECT = "teacher_application_reject"
    TRANSACTION_PROCESS = "transaction_process"
    ADMIN_ACTION = "admin_action"


class SecurityEventType(str, Enum):
    SUSPICIOUS_LOGIN = "suspicious_login"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    MULTIPLE_FAILED_ATTEMPTS = "multiple_failed_attempts"
    UNUSUAL_ACTIVITY = "unusual_activity"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditLog(Base):
    """
    Audit trail of authentication and administrative actions.
    """
    __tablename__ = "audit_logs"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # User who performed the action; unknown for failed logins of missing accounts
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Action details
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    old_values: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    new_values: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # Supports IPv6
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Results
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    user = relationship("User")

    __table_args__ = (
        Index("idx_audit_log_user_event", "user_id", "event_type"),
        Index("idx_audit_log_entity", "entity_type", "entity_id"),
        Index("idx_audit_log_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, event='{self.event_type}')>"

    @classmethod
    def log_action(
        cls,
        user_id: Optional[int],
        event_type: str,
        action: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        success: bool = True,
        error_message: Optional[str] = None
    ) -> "AuditLog":
        """Factory method to create audit log entries."""
        return cls(
            user_id=user_id,
            event_type=event_type,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent,
            success=success,
            error_message=error_message
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "details": self.details,
            "ip_address": self.ip_address,
            "success": self.success,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class SecurityEvent(Base):
    """
    Suspicious activity detected by the API.
    """
    __tablename__ = "security_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    risk_level: Mapped[str] = mapped_column(String(20), nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("idx_security_event_type_risk", "event_type", "risk_level"),
        Index("idx_security_event_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SecurityEvent(id={self.id}, type='{self.event_type}', risk='{self.risk_level}')>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "risk_level": self.risk_level,
            "ip_address": self.ip_address,
            "blocked": self.blocked,
            "reason": self.reason,
            "details": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class SystemSettings(Base):
    """
    Runtime platform settings editable by admins.
    """
    __tablename__ = "system_settings"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Setting identification
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    value_type: Mapped[str] = mapped_column(String(20), nullable=False)  # string, integer, float, boolean, json

    # Setting metadata
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_editable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    default_value: Mapped[str] = mapped_column(Text, nullable=False)

    # Audit
    last_modified_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("idx_system_settings_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<SystemSettings(key='{self.key}', category='{self.category}')>"

    def get_typed_value(self) -> Any:
        """Get the value converted to its proper type."""
        if self.value_type == "integer":
            return int(self.value)
        elif self.value_type == "float":
            return float(self.value)
        elif self.value_type == "boolean":
            return self.value.lower() in ("true", "1", "yes", "on")
        elif self.value_type == "json":
            return json.loads(self.value)
        return self.value

    def set_typed_value(self, value: Any) -> None:
        """
        Set the value with proper type conversion.

        Raises:
            ValueError: if ``value`` cannot be read as the setting's type
        """
        if self.value_type == "json":
            self.value = json.dumps(value)
        elif self.value_type == "boolean":
            if not isinstance(value, bool):
                raise ValueError(f"Setting '{self.key}' expects a boolean")
            self.value = "true" if value else "false"
        elif self.value_type == "integer":
            if isinstance(value, bool):
                raise ValueError(f"Setting '{self.key}' expects an integer")
            self.value = str(int(value))
        elif self.value_type == "float":
            self.value = str(float(value))
        else:
            self.value = str(value)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.get_typed_value(),
            "value_type": self.value_type,
            "category": self.category,
            "description": self.description,
            "is_public": self.is_public,
            "is_editable": self.is_editable,
        }

    @classmethod
    def get_default_settings(cls) -> List[Dict[str, Any]]:
        """Get default platform settings."""
        return [
            {
                "key": "platform_name",
                "value": "Learnity",
                "value_type": "string",
                "category": "general",
                "description": "Display name of the platform",
                "is_public": True,
                "is_editable": True,
                "default_value": "Learnity"
            },
            {
                "key": "enable_registration",
                "value": "true",
                "value_type": "boolean",
                "category": "features",
                "description": "Allow new student registrations",
                "is_public": True,
                "is_editable": True,
                "default_value": "true"
            },
            {
                "key": "enable_teacher_applications",
                "value": "true",
                "value_type": "boolean",
                "category": "features",
                "description": "Accept new teacher applications",
                "is_public": True,
                "is_editable": True,
                "default_value": "true"
            },
            {
                "key": "enable_certificates",
                "value": "true",
                "value_type": "boolean",
                "category": "features",
                "description": "Issue certificates on course completion",
                "is_public": True,
                "is_editable": True,
                "default_value": "true"
            },
            {
                "key": "min_withdrawal_amount",
                "value": "10.0",
                "value_type": "float",
                "category": "wallet",
                "description": "Smallest amount a withdrawal request may ask for",
                "is_public": True,
                "is_editable": True,
                "default_value": "10.0"
            },
            {
                "key": "schema_version",
                "value": "1",
                "value_type": "integer",
                "category": "system",
                "description": "Version of the seeded settings",
                "is_public": False,
                "is_editable": False,
                "default_value": "1"
            },
        ]
