from decimal import Decimal

import pytest

from assessments.answers import save_answer
from assessments.grading import complete_task
from assessments.merging import merge_exam_scores
from assessments.models import ExamResult, GradingTask, StudentAnswer
from assessments.sessions import submit_session
from exams.models import Question

pytestmark = pytest.mark.django_db


@pytest.fixture
def second_essay(exam):
    return Question.objects.create(
        exam=exam,
        question_text="Why are leaves green?",
        question_type=Question.QuestionType.ESSAY,
        points=5,
        order_number=4,
        expected_answers=["chlorophyll", "light"],
    )


@pytest.fixture
def two_pending(student, session_factory, mcq, essay, second_essay):
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(is_correct=True).pk)
    save_answer(session.pk, essay.pk, text_answer="No idea.")
    save_answer(session.pk, second_essay.pk, text_answer="Because of paint.")
    submit_session(session.pk)
    return session


def _task(session, question):
    return GradingTask.objects.get(session=session, question=question)


def test_result_stays_unfinalized_until_last_essay_graded(two_pending, essay, second_essay, teacher, student):
    exam = two_pending.exam
    provisional = ExamResult.objects.get(exam=exam, student=student)
    assert provisional.is_final is False
    assert provisional.score == Decimal("2.00")

    first = complete_task(_task(two_pending, essay).pk, 6, "", teacher)

    assert first.finalized is False
    unchanged = ExamResult.objects.get(exam=exam, student=student)
    assert unchanged.is_final is False
    assert unchanged.score == Decimal("2.00")
    assert unchanged.updated_at == provisional.updated_at

    second = complete_task(_task(two_pending, second_essay).pk, 3, "", teacher)

    assert second.finalized is True
    final = ExamResult.objects.get(exam=exam, student=student)
    assert final.is_final is True
    assert final.auto_scored is False
    assert final.score == Decimal("11.00")
    assert final.max_score == 17
    assert final.percentage == Decimal("64.71")


def test_merge_is_noop_when_answers_missing(student, session_factory, mcq, essay):
    session = session_factory(mcq.exam, student)
    StudentAnswer.objects.create(session=session, question=mcq, selected_option=mcq.options.get(is_correct=True),
                                 auto_scored=True, points_earned=2)

    assert merge_exam_scores(session.pk) is None
    assert not ExamResult.objects.exists()


def test_merge_creates_result_when_none_exists(student, admin_user, session_factory, mcq):
    session = session_factory(mcq.exam, student)
    StudentAnswer.objects.create(session=session, question=mcq, points_earned=1, manual_override=True)

    result = merge_exam_scores(session.pk)

    assert result.score == Decimal("1")
    assert result.recorded_by == admin_user
    assert result.is_final is True
