"""Test configuration and fixtures."""

import os

os.environ["TESTING"] = "True"

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from learnity.core.database import Base, SessionLocal, engine
from learnity.core.security import create_access_token, get_password_hash
from learnity.main import app
import learnity.models  # noqa: F401


PASSWORD = "Passw0rd!"


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema per test on the shared in-memory database."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    with TestClient(app) as test_client:
        yield test_client


def make_user(db_session, email, role="student", **kwargs):
    from learnity.models import User
    user = User(
        email=email,
        hashed_password=get_password_hash(PASSWORD),
        first_name=kwargs.pop("first_name", "Test"),
        last_name=kwargs.pop("last_name", role.title()),
        role=role,
        **kwargs
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id))}"}


@pytest.fixture
def platform_settings(db_session):
    """Seed the default platform settings rows."""
    from learnity.models import SystemSettings
    for default in SystemSettings.get_default_settings():
        db_session.add(SystemSettings(**default))
    db_session.commit()


@pytest.fixture
def student(db_session):
    from learnity.models import StudentProfile
    user = make_user(db_session, "student@school.edu", first_name="Sam", last_name="Student")
    db_session.add(StudentProfile(user_id=user.id, grade_level="Grade 10"))
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_student(db_session):
    from learnity.models import StudentProfile
    user = make_user(db_session, "other@school.edu", first_name="Olive", last_name="Other")
    db_session.add(StudentProfile(user_id=user.id, grade_level="Grade 11"))
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def teacher(db_session):
    from learnity.models import TeacherProfile
    user = make_user(db_session, "teacher@school.edu", role="teacher", first_name="Tara", last_name="Teacher")
    db_session.add(TeacherProfile(
        user_id=user.id,
        qualifications=["BSc Mathematics"],
        subjects=["Mathematics"],
        experience=5,
        application_status="approved",
        reviewed_at=datetime.utcnow()
    ))
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_teacher(db_session):
    from learnity.models import TeacherProfile
    user = make_user(db_session, "other.teacher@school.edu", role="teacher", first_name="Otto")
    db_session.add(TeacherProfile(
        user_id=user.id,
        qualifications=["MSc Physics"],
        subjects=["Physics"],
        experience=3,
        application_status="approved"
    ))
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def pending_teacher(db_session):
    from learnity.models import TeacherProfile
    user = make_user(db_session, "applicant@school.edu", role="pending_teacher", first_name="Pat")
    db_session.add(TeacherProfile(
        user_id=user.id,
        qualifications=["BA History"],
        subjects=["History"],
        experience=2,
        bio="History teacher with two years of classroom experience"
    ))
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin(db_session):
    return make_user(db_session, "admin@school.edu", role="admin", first_name="Ada")


@pytest.fixture
def course(db_session, teacher):
    """Published free course: two sections with three video lessons."""
    from learnity.models import Course, Section, Lesson
    course = Course(
        title="Algebra Basics",
        slug="algebra-basics",
        description="Linear equations and inequalities from scratch",
        teacher_id=teacher.id,
        status="published",
        published_at=datetime.utcnow(),
        whatsapp_group_link="https://chat.whatsapp.com/algebra",
        contact_email="tara@school.edu"
    )
    course.sections = [
        Section(title="Equations", order=1, lessons=[
            Lesson(title="What is a variable", type="video", order=1, duration=100,
                   youtube_url="https://youtu.be/dQw4w9WgXcQ", youtube_id="dQw4w9WgXcQ"),
            Lesson(title="Solving for x", type="video", order=2, duration=100,
                   youtube_url="https://youtu.be/dQw4w9WgXcQ", youtube_id="dQw4w9WgXcQ"),
        ]),
        Section(title="Inequalities", order=2, lessons=[
            Lesson(title="Number lines", type="video", order=1, duration=60,
                   youtube_url="https://youtu.be/dQw4w9WgXcQ", youtube_id="dQw4w9WgXcQ"),
        ]),
    ]
    course.lesson_count = 3
    course.total_duration = 260
    db_session.add(course)
    db_session.commit()
    db_session.refresh(course)
    return course


@pytest.fixture
def lessons(course):
    return course.ordered_lessons()


@pytest.fixture
def paid_course(db_session, teacher):
    from learnity.models import Course, Section, Lesson
    course = Course(
        title="Calculus Masterclass",
        slug="calculus-masterclass",
        description="Limits, derivatives and integrals in depth",
        teacher_id=teacher.id,
        status="published",
        is_free=False,
        price=Decimal("25.00"),
        published_at=datetime.utcnow()
    )
    course.sections = [
        Section(title="Limits", order=1, lessons=[
            Lesson(title="Intuition", type="video", order=1, duration=300,
                   youtube_url="https://youtu.be/dQw4w9WgXcQ", youtube_id="dQw4w9WgXcQ"),
        ]),
    ]
    course.lesson_count = 1
    db_session.add(course)
    db_session.commit()
    db_session.refresh(course)
    return course


@pytest.fixture
def enrollment(db_session, student, course):
    from learnity.models import Enrollment
    enrollment = Enrollment(student_id=student.id, course_id=course.id, status="active", progress=0)
    db_session.add(enrollment)
    course.enrollment_count = 1
    db_session.commit()
    db_session.refresh(enrollment)
    return enrollment


@pytest.fixture
def quiz(db_session, lessons):
    """Two-question quiz on the second lesson, passing at 70%."""
    from learnity.models import Quiz, Question
    quiz = Quiz(lesson_id=lessons[1].id, title="Solving check", passing_score=70)
    quiz.questions = [
        Question(question="2x = 4, x = ?", options=["1", "2", "3", "4"], correct_option_index=1, order=1),
        Question(question="x + 1 = 1, x = ?", options=["0", "1"], correct_option_index=0, order=2),
    ]
    db_session.add(quiz)
    db_session.commit()
    db_session.refresh(quiz)
    return quiz


@pytest.fixture
def wallet(db_session, student):
    from learnity.models import Wallet
    wallet = Wallet(user_id=student.id, balance=Decimal("50.00"))
    db_session.add(wallet)
    db_session.commit()
    db_session.refresh(wallet)
    return wallet
