"""
Registration, login and profile schemas.
"""

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class StudentRegister(UserRegister):
    grade_level: str = Field(..., min_length=1, max_length=50)
    subjects: List[str] = Field(default_factory=list, max_length=20)


class TeacherRegister(UserRegister):
    """Teacher sign up; the account waits as ``pending_teacher`` until reviewed."""
    qualifications: List[str] = Field(..., min_length=1, max_length=20)
    subjects: List[str] = Field(..., min_length=1, max_length=20)
    experience: int = Field(..., ge=0, le=70)
    bio: Optional[str] = Field(None, max_length=2000)
    hourly_rate: Optional[float] = Field(None, ge=0, le=1000)
    documents: List[str] = Field(default_factory=list, max_length=10)
    video_intro_url: Optional[str] = Field(None, max_length=500)
    available_days: List[str] = Field(default_factory=list, max_length=7)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)

    @model_validator(mode="after")
    def check_passwords_differ(self) -> "PasswordChange":
        if self.current_password == self.new_password:
            raise ValueError("New password must be different from the current password")
        return self


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    profile_picture: Optional[str] = Field(None, max_length=500)


class StudentProfileUpdate(BaseModel):
    grade_level: Optional[str] = Field(None, min_length=1, max_length=50)
    subjects: Optional[List[str]] = Field(None, max_length=20)
    learning_goals: Optional[List[str]] = Field(None, max_length=20)
    interests: Optional[List[str]] = Field(None, max_length=20)
    study_preferences: Optional[List[str]] = Field(None, max_length=20)


class TeacherProfileUpdate(BaseModel):
    qualifications: Optional[List[str]] = Field(None, max_length=20)
    subjects: Optional[List[str]] = Field(None, max_length=20)
    experience: Optional[int] = Field(None, ge=0, le=70)
    bio: Optional[str] = Field(None, max_length=2000)
    hourly_rate: Optional[float] = Field(None, ge=0, le=1000)
    documents: Optional[List[str]] = Field(None, max_length=10)
    video_intro_url: Optional[str] = Field(None, max_length=500)
    available_days: Optional[List[str]] = Field(None, max_length=7)
