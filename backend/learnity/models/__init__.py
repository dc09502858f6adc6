"""
Database models for Learnity.

This module contains all SQLAlchemy models for the application:
- User models for accounts, student profiles and teacher applications
- Course models for categories, courses, sections and lessons
- Progress models for enrollments, lesson progress and certificates
- Quiz, gamification, review and wallet models
- Communication models for tutoring, live sessions and direct messages
- Admin models for auditing and platform settings
"""

from learnity.core.database import Base

# Import all models to ensure they're registered with SQLAlchemy
from .user import User, StudentProfile, TeacherProfile
from .course import Category, Course, Section, Lesson
from .progress import Enrollment, LessonProgress, Certificate
from .quiz import Quiz, Question, QuizAttempt
from .gamification import UserProgress, XPActivity, Badge
from .review import Review
from .wallet import Wallet, Transaction
from .communication import TutoringSession, CourseRoom, LiveSession, DirectChannel, Message
from .admin import AuditLog, SecurityEvent, SystemSettings

# Export all models
__all__ = [
    "Base",
    "User",
    "StudentProfile",
    "TeacherProfile",
    "Category",
    "Course",
    "Section",
    "Lesson",
    "Enrollment",
    "LessonProgress",
    "Certificate",
    "Quiz",
    "Question",
    "QuizAttempt",
    "UserProgress",
    "XPActivity",
    "Badge",
    "Review",
    "Wallet",
    "Transaction",
    "TutoringSession",
    "CourseRoom",
    "LiveSession",
    "DirectChannel",
    "Message",
    "AuditLog",
    "SecurityEvent",
    "SystemSettings"
]
