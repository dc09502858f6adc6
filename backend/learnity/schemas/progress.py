"""
Lesson progress schemas.
"""

from typing import Optional

from pydantic import BaseModel


class LessonProgressUpdate(BaseModel):
    # Negative values are rejected by the progress service with INVALID_PROGRESS
    watched_seconds: int
    last_position: Optional[int] = None
