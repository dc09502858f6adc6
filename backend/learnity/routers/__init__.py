"""
API routers for Learnity.

This module contains all API endpoint routers:
- auth: Registration, login, logout and password changes
- users / teachers: Profiles and teacher applications
- categories / courses / enrollments / lessons / quizzes: Learning
- teacher: Course authoring for approved teachers
- gamification / reviews / certificates / wallet: Student extras
- tutoring / live_sessions / messages: Communication
- admin: Administrative endpoints
"""

from fastapi import APIRouter

# Import individual routers
from .auth import router as auth_router
from .users import router as users_router
from .teachers import router as teachers_router
from .categories import router as categories_router
from .courses import router as courses_router
from .enrollments import router as enrollments_router
from .lessons import router as lessons_router
from .quizzes import router as quizzes_router
from .teacher import router as teacher_router
from .gamification import router as gamification_router
from .reviews import router as reviews_router
from .certificates import router as certificates_router
from .wallet import router as wallet_router
from .tutoring import router as tutoring_router
from .live_sessions import router as live_sessions_router
from .messages import router as messages_router

# Import admin sub-routers
from .admin import admin_router

# Create main API router
api_router = APIRouter()

# Include all routers with their prefixes
api_router.include_router(
    auth_router,
    prefix="/auth",
    tags=["authentication"]
)

api_router.include_router(
    users_router,
    prefix="/users",
    tags=["users"]
)

api_router.include_router(
    teachers_router,
    prefix="/teachers",
    tags=["teachers"]
)

api_router.include_router(
    categories_router,
    prefix="/categories",
    tags=["categories"]
)

api_router.include_router(
    courses_router,
    prefix="/courses",
    tags=["courses"]
)

api_router.include_router(
    enrollments_router,
    prefix="/enrollments",
    tags=["enrollments"]
)

api_router.include_router(
    lessons_router,
    prefix="/lessons",
    tags=["progress"]
)

api_router.include_router(
    quizzes_router,
    prefix="/quizzes",
    tags=["quizzes"]
)

api_router.include_router(
    teacher_router,
    prefix="/teacher",
    tags=["teacher"]
)

api_router.include_router(
    gamification_router,
    prefix="/gamification",
    tags=["gamification"]
)

api_router.include_router(
    reviews_router,
    prefix="/reviews",
    tags=["reviews"]
)

api_router.include_router(
    certificates_router,
    prefix="/certificates",
    tags=["certificates"]
)

api_router.include_router(
    wallet_router,
    prefix="/wallet",
    tags=["wallet"]
)

api_router.include_router(
    tutoring_router,
    prefix="/tutoring-sessions",
    tags=["tutoring"]
)

api_router.include_router(
    live_sessions_router,
    prefix="/live-sessions",
    tags=["live-sessions"]
)

api_router.include_router(
    messages_router,
    prefix="/messages",
    tags=["messages"]
)

api_router.include_router(
    admin_router,
    prefix="/admin",
    tags=["admin"]
)

# Export all routers
__all__ = [
    "api_router",
    "auth_router",
    "courses_router",
    "teacher_router",
    "admin_router"
]
