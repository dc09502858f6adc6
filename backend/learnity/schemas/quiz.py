"""
Quiz authoring and submission schemas.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class QuestionCreate(BaseModel):
    question: str = Field(..., min_length=5, max_length=500)
    options: List[str] = Field(..., min_length=2, max_length=4)
    correct_option_index: int = Field(..., ge=0)
    explanation: Optional[str] = Field(None, max_length=1000)

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: List[str]) -> List[str]:
        for option in v:
            if not option.strip() or len(option) > 200:
                raise ValueError("Options must be 1-200 characters")
        return v

    @model_validator(mode="after")
    def check_correct_index(self) -> "QuestionCreate":
        if self.correct_option_index >= len(self.options):
            raise ValueError("correct_option_index must point at one of the options")
        return self


class QuestionUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=5, max_length=500)
    options: Optional[List[str]] = Field(None, min_length=2, max_length=4)
    correct_option_index: Optional[int] = Field(None, ge=0)
    explanation: Optional[str] = Field(None, max_length=1000)


class QuizCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    passing_score: int = Field(70, ge=1, le=100)
    questions: List[QuestionCreate] = Field(..., min_length=1, max_length=50)


class QuizUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    passing_score: Optional[int] = Field(None, ge=1, le=100)


class AnswerItem(BaseModel):
    question_id: int
    selected_index: int = Field(..., ge=0, le=3)


class QuizSubmission(BaseModel):
    answers: List[AnswerItem]
    time_taken: int = Field(0, ge=0)
