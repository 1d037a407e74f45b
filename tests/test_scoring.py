from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError as DjangoValidationError

from assessments.answers import save_answer
from assessments.exceptions import RecordingIdentityError, SessionNotFound
from assessments.models import ExamResult, GradingTask, StudentAnswer
from assessments.scoring import GradingPolicy, score_session
from assessments.sessions import close_session
from cores.models import PerformanceEvent, PlatformSetting
from exams.models import Exam, Option, Question
from users.models import User

pytestmark = pytest.mark.django_db


def _outcome(report, question):
    return next(o for o in report.breakdown if o.question_id == question.id)


def test_correct_option_gets_full_points(student, session_factory, mcq):
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(option_text="Mars").pk)

    report = score_session(session.pk)

    outcome = _outcome(report, mcq)
    assert outcome.is_correct is True
    assert outcome.points_earned == Decimal(2)
    assert report.score == Decimal(2)
    assert report.max_score == 2


def test_wrong_option_without_partial_credit_gets_zero(student, session_factory, mcq):
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(option_text="Venus").pk)

    outcome = _outcome(score_session(session.pk), mcq)

    assert outcome.is_correct is False
    assert outcome.points_earned == Decimal(0)


def test_partial_credit_option(student, session_factory, mcq):
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(option_text="Jupiter").pk)

    outcome = _outcome(score_session(session.pk), mcq)

    assert outcome.is_correct is False
    assert outcome.points_earned == Decimal(1)


def test_partial_credit_never_exceeds_question_points(student, session_factory, mcq):
    Option.objects.filter(question=mcq, option_text="Jupiter").update(partial_credit_value=50)
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(option_text="Jupiter").pk)

    outcome = _outcome(score_session(session.pk), mcq)

    assert outcome.points_earned == Decimal(mcq.points)


def test_partial_credit_ignored_when_disabled(student, session_factory, mcq):
    Question.objects.filter(pk=mcq.pk).update(allow_partial_credit=False)
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(option_text="Jupiter").pk)

    outcome = _outcome(score_session(session.pk), mcq)

    assert outcome.points_earned == Decimal(0)


def test_text_match_is_case_insensitive(student, session_factory, short_text):
    session = session_factory(short_text.exam, student)
    save_answer(session.pk, short_text.pk, text_answer="Paris")

    outcome = _outcome(score_session(session.pk), short_text)

    assert outcome.is_correct is True
    assert outcome.points_earned == Decimal(3)


def test_case_sensitive_text_falls_back_to_similarity(student, session_factory, short_text):
    Question.objects.filter(pk=short_text.pk).update(case_sensitive=True)
    session = session_factory(short_text.exam, student)
    save_answer(session.pk, short_text.pk, text_answer="Paris")

    outcome = _outcome(score_session(session.pk), short_text)

    # One substitution in five letters: similarity 0.8, so ceil(3 * 0.5) points
    assert outcome.is_correct is False
    assert outcome.points_earned == Decimal(2)


def test_question_rules_override_policy_for_near_matches(student, session_factory, short_text):
    Question.objects.filter(pk=short_text.pk).update(
        partial_credit_rules={"min_similarity": 0.9, "partial_percentage": 0.5}
    )
    session = session_factory(short_text.exam, student)
    save_answer(session.pk, short_text.pk, text_answer="parls")

    outcome = _outcome(score_session(session.pk), short_text)

    # 4/5 similarity is under the question's own threshold; the heuristic decides instead
    assert outcome.points_earned == Decimal(0)
    assert outcome.needs_review is True


def test_near_match_credit_uses_exact_arithmetic(student, session_factory, exam):
    question = Question.objects.create(
        exam=exam,
        question_text="Name the capital of France.",
        question_type=Question.QuestionType.TEXT,
        points=100,
        order_number=5,
        expected_answers=["paris"],
        allow_partial_credit=True,
        partial_credit_rules={"min_similarity": 0.8, "partial_percentage": 0.55},
    )
    session = session_factory(exam, student)
    save_answer(session.pk, question.pk, text_answer="parls")

    outcome = _outcome(score_session(session.pk), question)

    assert outcome.points_earned == Decimal(55)


@pytest.mark.parametrize("field, value", [
    ("expected_answers", "paris"),
    ("expected_answers", ["paris", 7]),
    ("partial_credit_rules", {"threshold": 0.5}),
    ("partial_credit_rules", {"partial_percentage": 2}),
])
def test_malformed_grading_data_is_rejected_on_save(exam, field, value):
    with pytest.raises(DjangoValidationError):
        Question.objects.create(exam=exam, question_text="Capital?", question_type=Question.QuestionType.TEXT,
                                **{field: value})

    assert not Question.objects.filter(question_text="Capital?").exists()


def test_expected_answers_are_normalized_on_save(exam):
    question = Question.objects.create(exam=exam, question_text="Capital?", question_type=Question.QuestionType.TEXT,
                                       expected_answers=[" Paris ", ""])

    question.refresh_from_db()
    assert question.expected_answers == ["Paris"]


def test_essay_example_is_auto_accepted(student, session_factory, essay):
    session = session_factory(essay.exam, student)
    save_answer(session.pk, essay.pk, text_answer="It is all about photosynthesis in the leaves.")

    report = score_session(session.pk)

    outcome = _outcome(report, essay)
    assert outcome.auto_scored is True
    assert outcome.confidence == 0.7
    assert outcome.points_earned == Decimal("5.00")
    assert report.pending_review_count == 0
    assert not GradingTask.objects.exists()


def test_unanswered_questions_get_zero_rows(student, session_factory, mcq, essay):
    session = session_factory(mcq.exam, student)

    report = score_session(session.pk)

    assert report.score == Decimal(0)
    assert report.max_score == 12
    answers = StudentAnswer.objects.filter(session=session)
    assert answers.count() == 2
    assert all(a.auto_scored for a in answers)
    assert report.is_final is True


def test_low_confidence_essay_creates_grading_task(student, teacher, session_factory, essay):
    session = session_factory(essay.exam, student)
    save_answer(session.pk, essay.pk, text_answer="Plants are green.")

    report = score_session(session.pk)

    answer = StudentAnswer.objects.get(session=session, question=essay)
    assert answer.auto_scored is False
    assert answer.points_earned == Decimal(0)
    assert report.pending_review_count == 1

    task = GradingTask.objects.get(answer=answer)
    assert task.status == GradingTask.Status.PENDING
    assert task.assigned_teacher == teacher

    result = ExamResult.objects.get(exam=essay.exam, student=student)
    assert result.auto_scored is False
    assert result.is_final is False


def test_auto_grading_disabled_sends_essays_to_review(student, session_factory, essay):
    Exam.objects.filter(pk=essay.exam_id).update(auto_grading_enabled=False)
    session = session_factory(essay.exam, student)
    save_answer(session.pk, essay.pk, text_answer="photosynthesis and chlorophyll")

    outcome = _outcome(score_session(session.pk), essay)

    assert outcome.needs_review is True
    assert outcome.suggested_points == Decimal("10.00")


def test_rescoring_is_deterministic(student, session_factory, mcq, short_text, essay):
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(option_text="Jupiter").pk)
    save_answer(session.pk, short_text.pk, text_answer="paris")
    save_answer(session.pk, essay.pk, text_answer="Plants are green.")

    first = score_session(session.pk)
    second = score_session(session.pk)

    assert first.score == second.score
    assert [(o.question_id, o.points_earned, o.needs_review) for o in first.breakdown] == \
        [(o.question_id, o.points_earned, o.needs_review) for o in second.breakdown]
    assert GradingTask.objects.count() == 1
    assert ExamResult.objects.filter(exam=mcq.exam, student=student).count() == 1


def test_result_is_recorded_by_admin(student, admin_user, session_factory, mcq):
    session = session_factory(mcq.exam, student)

    score_session(session.pk)

    assert ExamResult.objects.get(student=student).recorded_by == admin_user


def test_result_falls_back_to_student_without_admin(student, session_factory, mcq):
    session = session_factory(mcq.exam, student)

    score_session(session.pk)

    assert ExamResult.objects.get(student=student).recorded_by == student


def test_unresolvable_identity_aborts_without_writes(student, session_factory, mcq):
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(option_text="Mars").pk)
    User.objects.update(is_active=False)

    with pytest.raises(RecordingIdentityError):
        score_session(session.pk)

    answer = StudentAnswer.objects.get(session=session)
    assert answer.auto_scored is False
    assert answer.points_earned == Decimal(0)
    assert not ExamResult.objects.exists()
    assert not PerformanceEvent.objects.exists()


def test_scoring_records_timing_event(student, session_factory, mcq):
    session = session_factory(mcq.exam, student)

    score_session(session.pk)

    event = PerformanceEvent.objects.get()
    assert event.event_type == "auto_scoring"
    assert event.entity_id == str(session.pk)
    assert event.met_goal is True


def test_policy_comes_from_platform_settings(student, session_factory, essay):
    platform = PlatformSetting.load()
    platform.review_min_confidence = 0.9
    platform.save()
    session = session_factory(essay.exam, student)
    save_answer(session.pk, essay.pk, text_answer="photosynthesis")

    outcome = _outcome(score_session(session.pk), essay)

    assert GradingPolicy.from_platform_settings().min_confidence == 0.9
    assert outcome.needs_review is True


def test_completed_session_is_marked_graded(student, session_factory, mcq):
    session = session_factory(mcq.exam, student)
    close_session(session.pk)

    score_session(session.pk)

    session.refresh_from_db()
    assert session.status == session.Status.GRADED
    assert session.score == Decimal(0)


def test_missing_session():
    with pytest.raises(SessionNotFound):
        score_session(999)
