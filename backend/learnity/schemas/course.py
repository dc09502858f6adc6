"""
Catalog schemas: categories, courses, sections and lessons.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from learnity.models.course import Difficulty, LessonType


MAX_TAGS = 5
MAX_TAG_LENGTH = 50


def _check_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return tags
    tags = [tag.strip() for tag in tags]
    if len(tags) > MAX_TAGS:
        raise ValueError(f"At most {MAX_TAGS} tags are allowed")
    for tag in tags:
        if not tag or len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Tags must be 1-{MAX_TAG_LENGTH} characters")
    return tags


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=50)


class CourseBase(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    thumbnail_url: Optional[str] = Field(None, max_length=500)
    category_id: Optional[int] = None
    price: Optional[Decimal] = Field(None, ge=0, le=Decimal("9999.99"), decimal_places=2)
    whatsapp_group_link: Optional[str] = Field(None, max_length=500)
    contact_email: Optional[str] = Field(None, max_length=255)
    contact_whatsapp: Optional[str] = Field(None, max_length=20)

    @field_validator("tags", check_fields=False)
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_tags(v)


class CourseCreate(CourseBase):
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=2000)
    difficulty: Difficulty = Field(Difficulty.BEGINNER, validate_default=True)
    tags: List[str] = Field(default_factory=list)
    is_free: bool = True
    require_sequential_progress: bool = False

    @model_validator(mode="after")
    def check_price(self) -> "CourseCreate":
        if not self.is_free and not self.price:
            raise ValueError("Paid courses need a price above zero")
        return self


class CourseUpdate(CourseBase):
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    difficulty: Optional[Difficulty] = None
    tags: Optional[List[str]] = None
    is_free: Optional[bool] = None
    require_sequential_progress: Optional[bool] = None


class SectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)


class SectionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)


class LessonCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    type: LessonType = Field(LessonType.VIDEO, validate_default=True)
    youtube_url: Optional[str] = Field(None, max_length=500)
    duration: int = Field(0, ge=0)


class LessonUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    type: Optional[LessonType] = None
    youtube_url: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=0)


class ReorderRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)
