"""
Admin request schemas.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field


class ApplicationReview(BaseModel):
    decision: Literal["approved", "rejected"]
    rejection_reason: Optional[str] = Field(None, max_length=1000)


class BatchReviewItem(ApplicationReview):
    user_id: int


class BatchReview(BaseModel):
    items: List[BatchReviewItem] = Field(..., min_length=1, max_length=50)


class UserStatusUpdate(BaseModel):
    is_active: bool


class SettingUpdate(BaseModel):
    value: Any
