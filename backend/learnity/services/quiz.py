"""
Quiz authoring and scoring.
"""

import logging
from typing import List, Dict, Any, Optional

from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.errors import BadRequestError, ConflictError, NotFoundError
from learnity.models.course import Lesson
from learnity.models.quiz import Quiz, Question, QuizAttempt
from learnity.models.gamification import XPReason
from learnity.services import enrollment as enrollment_service
from learnity.services import gamification
from learnity.services.progress import check_course_completion
from learnity.utils.learning_path import percentage


logger = logging.getLogger(__name__)


def get_quiz(db: Session, quiz_id: int) -> Quiz:
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
    if quiz is None:
        raise NotFoundError("Quiz", code="QUIZ_NOT_FOUND")
    return quiz


def get_question(db: Session, question_id: int) -> Question:
    question = db.query(Question).filter(Question.id == question_id).first()
    if question is None:
        raise NotFoundError("Question", code="QUESTION_NOT_FOUND")
    return question


def _check_correct_index(options: List[str], correct_option_index: int) -> None:
    if correct_option_index < 0 or correct_option_index >= len(options):
        raise BadRequestError(
            "Correct option index must point at one of the options",
            code="INVALID_CORRECT_INDEX"
        )


def create_quiz(db: Session, lesson: Lesson, data: Dict[str, Any]) -> Quiz:
    """Create the quiz of a lesson together with its questions."""
    if lesson.quiz is not None:
        raise ConflictError("This lesson already has a quiz", code="QUIZ_ALREADY_EXISTS")

    quiz = Quiz(
        lesson_id=lesson.id,
        title=data["title"],
        description=data.get("description"),
        passing_score=data.get("passing_score") or settings.DEFAULT_PASSING_SCORE
    )
    for index, item in enumerate(data.get("questions", [])):
        _check_correct_index(item["options"], item["correct_option_index"])
        quiz.questions.append(Question(
            question=item["question"],
            options=item["options"],
            correct_option_index=item["correct_option_index"],
            explanation=item.get("explanation"),
            order=index
        ))
    db.add(quiz)
    db.flush()
    return quiz


def update_quiz(db: Session, quiz: Quiz, changes: Dict[str, Any]) -> Quiz:
    for field in ("title", "description", "passing_score"):
        if field in changes:
            setattr(quiz, field, changes[field])
    db.flush()
    return quiz


def delete_quiz(db: Session, quiz: Quiz) -> None:
    logger.info(f"Quiz {quiz.id} deleted from lesson {quiz.lesson_id}")
    db.delete(quiz)
    db.flush()


def add_question(db: Session, quiz: Quiz, data: Dict[str, Any]) -> Question:
    _check_correct_index(data["options"], data["correct_option_index"])
    question = Question(
        quiz_id=quiz.id,
        question=data["question"],
        options=data["options"],
        correct_option_index=data["correct_option_index"],
        explanation=data.get("explanation"),
        order=len(quiz.questions)
    )
    db.add(question)
    db.flush()
    db.refresh(quiz)
    return question


def update_question(db: Session, question: Question, changes: Dict[str, Any]) -> Question:
    options = changes.get("options", question.options)
    correct_index = changes.get("correct_option_index", question.correct_option_index)
    _check_correct_index(options, correct_index)

    for field in ("question", "options", "correct_option_index", "explanation"):
        if field in changes:
            setattr(question, field, changes[field])
    db.flush()
    return question


def delete_question(db: Session, question: Question) -> None:
    quiz = question.quiz
    db.delete(question)
    db.flush()
    db.refresh(quiz)
    for index, remaining in enumerate(quiz.questions):
        remaining.order = index
    db.flush()


def reorder_questions(db: Session, quiz: Quiz, question_ids: List[int]) -> Quiz:
    current = {question.id: question for question in quiz.questions}
    if sorted(question_ids) != sorted(current.keys()):
        raise BadRequestError(
            "Question ids must match the questions of this quiz",
            code="QUESTION_NOT_FOUND"
        )
    for index, question_id in enumerate(question_ids):
        current[question_id].order = index
    db.flush()
    db.refresh(quiz)
    return quiz


def submit_attempt(
    db: Session,
    student_id: int,
    quiz_id: int,
    answers: List[Dict[str, int]],
    time_taken: int = 0
) -> Dict[str, Any]:
    """
    Score a submission.

    XP is awarded on the first passing attempt only.
    """
    quiz = get_quiz(db, quiz_id)
    course = quiz.course
    enrollment_service.get_active_enrollment(db, student_id, course.id)

    answered_ids = [answer["question_id"] for answer in answers]
    if len(set(answered_ids)) != len(answered_ids):
        raise BadRequestError("Duplicate answers detected", code="DUPLICATE_ANSWERS")

    questions = {question.id: question for question in quiz.questions}
    unknown = [question_id for question_id in answered_ids if question_id not in questions]
    if unknown:
        raise BadRequestError(
            f"Question {unknown[0]} not found in this quiz",
            code="QUESTION_NOT_FOUND"
        )

    missing = [question_id for question_id in questions if question_id not in set(answered_ids)]
    if missing:
        raise BadRequestError(
            f"Missing answers for {len(missing)} question(s)",
            code="MISSING_ANSWERS",
            details={"missing_question_ids": missing}
        )

    correct = 0
    stored_answers = []
    results = []
    for answer in answers:
        question = questions[answer["question_id"]]
        is_correct = answer["selected_index"] == question.correct_option_index
        if is_correct:
            correct += 1
        stored_answers.append({
            "question_id": question.id,
            "selected_index": answer["selected_index"],
            "is_correct": is_correct,
        })
        results.append({
            "question_id": question.id,
            "selected_index": answer["selected_index"],
            "correct_option_index": question.correct_option_index,
            "is_correct": is_correct,
            "explanation": question.explanation,
        })

    total = len(questions)
    score = percentage(correct, total)
    passed = score >= quiz.passing_score

    previously_passed = db.query(QuizAttempt).filter(
        QuizAttempt.quiz_id == quiz.id,
        QuizAttempt.student_id == student_id,
        QuizAttempt.passed == True  # noqa: E712
    ).first() is not None

    attempt = QuizAttempt(
        quiz_id=quiz.id,
        student_id=student_id,
        score=score,
        passed=passed,
        answers=stored_answers,
        time_taken=time_taken
    )
    db.add(attempt)
    db.flush()

    xp_awarded = 0
    badges: List[str] = []
    course_completed = False
    if passed:
        if not previously_passed:
            xp_awarded = gamification.award_reward(
                db, student_id, XPReason.QUIZ_PASS, source_id=quiz.id
            )["xp_awarded"]
        badges = gamification.check_and_award_badges(db, student_id)
        completion = check_course_completion(db, student_id, course.id)
        badges.extend(completion["badges_unlocked"])
        course_completed = completion["completed"]

    logger.info(f"User {student_id} scored {score} on quiz {quiz.id} (passed={passed})")

    best = get_best_attempt(db, student_id, quiz.id)
    return {
        "attempt": attempt.to_dict(),
        "score": score,
        "passed": passed,
        "passing_score": quiz.passing_score,
        "total_questions": total,
        "correct_answers": correct,
        "results": results,
        "xp_awarded": xp_awarded,
        "best_score": best.score if best else score,
        "badges_unlocked": badges,
        "course_completed": course_completed,
    }


def list_attempts(db: Session, student_id: int, quiz_id: int) -> List[QuizAttempt]:
    return db.query(QuizAttempt).filter(
        QuizAttempt.student_id == student_id,
        QuizAttempt.quiz_id == quiz_id
    ).order_by(QuizAttempt.created_at.desc(), QuizAttempt.id.desc()).all()


def get_best_attempt(db: Session, student_id: int, quiz_id: int) -> Optional[QuizAttempt]:
    return db.query(QuizAttempt).filter(
        QuizAttempt.student_id == student_id,
        QuizAttempt.quiz_id == quiz_id
    ).order_by(QuizAttempt.score.desc(), QuizAttempt.id).first()


def get_stats(db: Session, student_id: int, quiz_id: int) -> Dict[str, Any]:
    attempts = list_attempts(db, student_id, quiz_id)
    passed_attempts = sorted(
        [attempt for attempt in attempts if attempt.passed],
        key=lambda attempt: attempt.id
    )
    scores = [attempt.score for attempt in attempts]
    first_passed = passed_attempts[0] if passed_attempts else None

    return {
        "total_attempts": len(attempts),
        "best_score": max(scores) if scores else 0,
        "average_score": round(sum(scores) / len(scores), 1) if scores else 0,
        "passed": first_passed is not None,
        "first_passed_at": first_passed.created_at.isoformat() if first_passed else None,
    }
