"""
Quiz models for Learnity.

A lesson carries at most one Quiz made of multiple choice Questions.
Every submission is stored as a QuizAttempt.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text,
    ForeignKey, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from learnity.core.database import Base


class Quiz(Base):
    """
    Quiz attached to a lesson.
    """
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    lesson_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lessons.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    passing_score: Mapped[int] = mapped_column(Integer, default=70, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    lesson = relationship("Lesson", back_populates="quiz")
    questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.order"
    )
    attempts = relationship("QuizAttempt", back_populates="quiz", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("passing_score >= 1 AND passing_score <= 100", name="check_passing_score_range"),
    )

    def __repr__(self) -> str:
        return f"<Quiz(id={self.id}, lesson_id={self.lesson_id})>"

    @property
    def course(self):
        return self.lesson.section.course

    def to_dict(self, include_answers: bool = False) -> dict:
        return {
            "id": self.id,
            "lesson_id": self.lesson_id,
            "title": self.title,
            "description": self.description,
            "passing_score": self.passing_score,
            "question_count": len(self.questions),
            "questions": [q.to_dict(include_answer=include_answers) for q in self.questions],
        }


class Question(Base):
    """
    Multiple choice question with 2-4 options.
    """
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    quiz_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question: Mapped[str] = mapped_column(String(500), nullable=False)
    options: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    correct_option_index: Mapped[int] = mapped_column(Integer, nullable=False)
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")

    __table_args__ = (
        CheckConstraint("correct_option_index >= 0", name="check_correct_option_positive"),
    )

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, quiz_id={self.quiz_id}, order={self.order})>"

    def to_dict(self, include_answer: bool = False) -> dict:
        data = {
            "id": self.id,
            "question": self.question,
            "options": self.options,
            "order": self.order,
        }
        if include_answer:
            data["correct_option_index"] = self.correct_option_index
            data["explanation"] = self.explanation
        return data


class QuizAttempt(Base):
    """
    A scored quiz submission.
    """
    __tablename__ = "quiz_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    quiz_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    # [{"question_id", "selected_index", "is_correct"}]
    answers: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False)
    time_taken: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # seconds
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )

    quiz = relationship("Quiz", back_populates="attempts")
    student = relationship("User")

    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 100", name="check_attempt_score"),
        CheckConstraint("time_taken >= 0", name="check_time_taken_positive"),
        Index("idx_quiz_attempt_student", "student_id", "quiz_id", "passed"),
    )

    def __repr__(self) -> str:
        return f"<QuizAttempt(id={self.id}, quiz_id={self.quiz_id}, score={self.score})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "student_id": self.student_id,
            "score": self.score,
            "passed": self.passed,
            "answers": self.answers,
            "time_taken": self.time_taken,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
