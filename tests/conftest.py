import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from assessments.sessions import start_or_resume_session
from exams.models import Exam, Option, Question
from users.models import User


@pytest.fixture(autouse=True)
def _clear_cache():
    # PlatformSetting.load() caches the singleton row across tests otherwise
    cache.clear()
    yield
    cache.clear()


def make_user(email, role=User.Role.STUDENT, **extra):
    return User.objects.create_user(
        username=email.split("@")[0],
        email=email,
        password="pass1234",
        role=role,
        **extra,
    )


@pytest.fixture
def user_factory(db):
    return make_user


@pytest.fixture
def admin_user(db):
    return make_user("admin@school.test", role=User.Role.ADMIN, is_staff=True)


@pytest.fixture
def teacher(db):
    return make_user("teacher@school.test", role=User.Role.TEACHER)


@pytest.fixture
def student(db):
    return make_user("student@school.test")


@pytest.fixture
def other_student(db):
    return make_user("other@school.test")


@pytest.fixture
def exam(teacher):
    return Exam.objects.create(title="Science Mid-term", duration_minutes=30, is_published=True, created_by=teacher)


@pytest.fixture
def mcq(exam):
    question = Question.objects.create(
        exam=exam,
        question_text="Which planet is known as the red planet?",
        question_type=Question.QuestionType.MULTIPLE_CHOICE,
        points=2,
        order_number=1,
        allow_partial_credit=True,
    )
    Option.objects.create(question=question, option_text="Mars", is_correct=True, order_number=1)
    Option.objects.create(question=question, option_text="Jupiter", partial_credit_value=1, order_number=2)
    Option.objects.create(question=question, option_text="Venus", order_number=3)
    return question


@pytest.fixture
def short_text(exam):
    return Question.objects.create(
        exam=exam,
        question_text="What is the capital of France?",
        question_type=Question.QuestionType.TEXT,
        points=3,
        order_number=2,
        expected_answers=["paris"],
        allow_partial_credit=True,
    )


@pytest.fixture
def essay(exam):
    return Question.objects.create(
        exam=exam,
        question_text="How do plants make food?",
        question_type=Question.QuestionType.ESSAY,
        points=10,
        order_number=3,
        expected_answers=["photosynthesis", "chlorophyll"],
    )


@pytest.fixture
def session_factory():
    def factory(exam, student, started_ago=None):
        now = timezone.now() - started_ago if started_ago else None
        session, _ = start_or_resume_session(exam, student, now=now)
        return session

    return factory


@pytest.fixture
def api_client():
    return APIClient()
