"""
Tutoring, live session and messaging schemas.

Datetimes are stored as naive UTC; aware input is converted.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import naive_utc


class TutoringSessionCreate(BaseModel):
    teacher_id: int
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    scheduled_at: datetime
    duration: int = Field(60, ge=15, le=240)

    @field_validator("scheduled_at")
    @classmethod
    def normalize_scheduled_at(cls, v: datetime) -> datetime:
        return naive_utc(v)


class SessionReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class SessionCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class LiveSessionCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    scheduled_at: datetime
    duration: int = Field(60, ge=15, le=240)
    max_participants: int = Field(100, ge=1, le=1000)

    @field_validator("scheduled_at")
    @classmethod
    def normalize_scheduled_at(cls, v: datetime) -> datetime:
        return naive_utc(v)


class LiveSessionEnd(BaseModel):
    recording_url: Optional[str] = Field(None, max_length=500)


class MessageCreate(BaseModel):
    recipient_id: int
    body: str = Field(..., min_length=1, max_length=2000)

    @field_validator("body")
    @classmethod
    def validate_body(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message cannot be empty")
        return v
