from decimal import Decimal

import pytest

from assessments.answers import save_answer
from assessments.exceptions import AnswerValidationError, Forbidden, TaskAlreadyCompleted, TaskNotFound
from assessments.grading import (
    approve_task,
    assign_task,
    complete_task,
    list_grading_tasks,
    resolve_grading_task,
)
from assessments.models import ExamResult, ExamSession, GradingTask, StudentAnswer
from assessments.scoring import score_session
from assessments.sessions import submit_session
from cores.models import AuditLog
from exams.models import Exam
from users.models import User

pytestmark = pytest.mark.django_db


@pytest.fixture
def submitted(student, session_factory, mcq, essay):
    session = session_factory(mcq.exam, student)
    save_answer(session.pk, mcq.pk, selected_option_id=mcq.options.get(is_correct=True).pk)
    save_answer(session.pk, essay.pk, text_answer="Plants are green.")
    submit_session(session.pk)
    return session


@pytest.fixture
def task(submitted):
    return GradingTask.objects.get(session=submitted)


def test_list_tasks_filters(task, teacher, admin_user):
    assert list(list_grading_tasks(teacher=teacher)) == [task]
    assert list(list_grading_tasks(teacher=admin_user)) == []
    assert list(list_grading_tasks(status=GradingTask.Status.PENDING)) == [task]
    assert list(list_grading_tasks(status=GradingTask.Status.COMPLETED)) == []


def test_list_tasks_rejects_unknown_status(task):
    with pytest.raises(AnswerValidationError):
        list_grading_tasks(status="archived")


def test_assign(task, admin_user):
    assigned = assign_task(task.pk, admin_user)

    assert assigned.assigned_teacher == admin_user
    assert assigned.status == GradingTask.Status.IN_PROGRESS
    assert assigned.assigned_at is not None


def test_assign_to_student_rejected(task, student):
    with pytest.raises(AnswerValidationError):
        assign_task(task.pk, student)


def test_complete_overrides_answer_and_finalizes(task, submitted, teacher, student):
    resolution = complete_task(task.pk, "7", "Mentions sunlight but not chlorophyll.", teacher)

    answer = StudentAnswer.objects.get(pk=task.answer_id)
    assert answer.manual_override is True
    assert answer.auto_scored is False
    assert answer.points_earned == Decimal("7.00")
    assert answer.feedback_text == "Mentions sunlight but not chlorophyll."

    task.refresh_from_db()
    assert task.status == GradingTask.Status.COMPLETED
    assert task.completed_by == teacher
    assert task.completed_at is not None

    result = ExamResult.objects.get(exam=submitted.exam, student=student)
    assert resolution.finalized is True
    assert result.score == Decimal("9.00")
    assert result.is_final is True
    assert result.auto_scored is False

    submitted.refresh_from_db()
    assert submitted.status == ExamSession.Status.GRADED
    assert AuditLog.objects.filter(action='GRADE', target_object_id=str(answer.pk)).exists()


def test_completing_twice_is_a_conflict(task, teacher):
    complete_task(task.pk, 5, "", teacher)

    with pytest.raises(TaskAlreadyCompleted):
        complete_task(task.pk, 6, "", teacher)


@pytest.mark.parametrize("points", [-1, 11, "lots"])
def test_out_of_range_points_rejected_without_changes(task, teacher, points):
    with pytest.raises(AnswerValidationError):
        complete_task(task.pk, points, "", teacher)

    task.refresh_from_db()
    assert task.status == GradingTask.Status.PENDING
    assert StudentAnswer.objects.get(pk=task.answer_id).manual_override is False


def test_students_cannot_grade(task, student):
    with pytest.raises(Forbidden):
        complete_task(task.pk, 5, "", student)


def test_other_teacher_cannot_grade_but_admin_can(task, admin_user, user_factory):
    other_teacher = user_factory("second.teacher@school.test", role=User.Role.TEACHER)

    with pytest.raises(Forbidden):
        complete_task(task.pk, 5, "", other_teacher)

    assert complete_task(task.pk, 5, "", admin_user).task.completed_by == admin_user


def test_unknown_task(user_factory):
    reviewer = user_factory("reviewer@school.test", role=User.Role.TEACHER)
    with pytest.raises(TaskNotFound):
        complete_task(123456, 1, "", reviewer)


def test_approve_accepts_suggested_points(student, teacher, session_factory, essay):
    Exam.objects.filter(pk=essay.exam_id).update(auto_grading_enabled=False)
    session = session_factory(essay.exam, student)
    save_answer(session.pk, essay.pk, text_answer="Photosynthesis needs chlorophyll.")
    submit_session(session.pk)
    task = GradingTask.objects.get(session=session)
    assert task.suggested_points == Decimal("10.00")

    resolution = approve_task(task.pk, teacher)

    answer = resolution.answer
    answer.refresh_from_db()
    assert answer.auto_scored is True
    assert answer.points_earned == Decimal("10.00")
    assert resolution.finalized is True
    assert ExamResult.objects.get(student=student).score == Decimal("10.00")


def test_resolve_dispatches(task, teacher):
    with pytest.raises(AnswerValidationError):
        resolve_grading_task(task.pk, teacher)

    resolution = resolve_grading_task(task.pk, teacher, override_score=Decimal("4.5"), feedback="Partly right")

    assert resolution.answer.points_earned == Decimal("4.50")
    assert resolution.task.status == GradingTask.Status.COMPLETED


def test_rescoring_keeps_teacher_grade(task, submitted, teacher):
    complete_task(task.pk, 8, "Good", teacher)

    report = score_session(submitted.pk)

    answer = StudentAnswer.objects.get(pk=task.answer_id)
    assert answer.points_earned == Decimal("8.00")
    assert answer.manual_override is True
    assert report.score == Decimal("10.00")
    assert report.pending_review_count == 0
    assert GradingTask.objects.filter(pk=task.pk, status=GradingTask.Status.COMPLETED).exists()
    assert ExamResult.objects.get(pk=report.result_id).auto_scored is False
