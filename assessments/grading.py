"""
The queue of free-text answers waiting for a teacher.

Tasks are created by the scoring pass. A teacher either approves the
heuristic's suggested score or overrides it; both paths update the answer,
close the task and try to finalize the exam result in one transaction.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.db import transaction
from django.utils import timezone

from cores.models import AuditLog

from .exceptions import AnswerValidationError, Forbidden, TaskAlreadyCompleted, TaskNotFound
from .merging import merge_exam_scores
from .models import ExamResult, GradingTask, StudentAnswer

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    answer: StudentAnswer
    task: GradingTask
    # Set once the merge produced a final result
    result: Optional[ExamResult] = None

    @property
    def finalized(self):
        return self.result is not None


def list_grading_tasks(teacher=None, status=None):
    tasks = GradingTask.objects.select_related('question', 'answer', 'session__student', 'session__exam')
    if teacher is not None:
        tasks = tasks.filter(assigned_teacher=teacher)
    if status:
        if status not in GradingTask.Status.values:
            raise AnswerValidationError({'status': f'Unknown status "{status}".'})
        tasks = tasks.filter(status=status)
    return tasks


def _locked_task(task_id) -> GradingTask:
    task = (
        GradingTask.objects.select_for_update()
        .select_related('answer', 'question', 'session')
        .filter(pk=task_id)
        .first()
    )
    if task is None:
        raise TaskNotFound()
    return task


def _check_reviewer(task: GradingTask, reviewer):
    if not reviewer.is_exam_staff:
        raise Forbidden('Only teachers and admins can grade answers.')
    if task.assigned_teacher_id and task.assigned_teacher_id != reviewer.pk and not reviewer.is_admin:
        raise Forbidden('This grading task is assigned to another teacher.')


def assign_task(task_id, teacher) -> GradingTask:
    if not teacher.is_exam_staff:
        raise AnswerValidationError({'teacher': 'Grading tasks can only be assigned to teachers or admins.'})

    with transaction.atomic():
        task = _locked_task(task_id)
        if task.status == GradingTask.Status.COMPLETED:
            raise TaskAlreadyCompleted()
        task.assigned_teacher = teacher
        task.status = GradingTask.Status.IN_PROGRESS
        task.assigned_at = timezone.now()
        task.save(update_fields=['assigned_teacher', 'status', 'assigned_at'])

    logger.info("Grading task %s assigned to %s", task.pk, teacher.pk)
    return task


def _parse_points(value, max_points) -> Decimal:
    try:
        points = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise AnswerValidationError({'override_score': 'A number is required.'})
    if not points.is_finite() or points < 0 or points > max_points:
        raise AnswerValidationError({'override_score': f'Must be between 0 and {max_points}.'})
    return points.quantize(Decimal("0.01"))


def _close(task: GradingTask, answer: StudentAnswer, reviewer, details) -> Optional[ExamResult]:
    now = timezone.now()
    task.status = GradingTask.Status.COMPLETED
    task.completed_at = now
    task.completed_by = reviewer
    if task.assigned_teacher_id is None:
        task.assigned_teacher = reviewer
        task.assigned_at = now
    task.save(update_fields=['status', 'completed_at', 'completed_by', 'assigned_teacher', 'assigned_at'])

    AuditLog.objects.create(
        actor=reviewer,
        action='GRADE',
        target_model='StudentAnswer',
        target_object_id=str(answer.pk),
        details=details,
    )
    return merge_exam_scores(task.session_id)


def complete_task(task_id, points, feedback, reviewer) -> Resolution:
    """Record the teacher's own score for the answer."""
    with transaction.atomic():
        task = _locked_task(task_id)
        _check_reviewer(task, reviewer)
        if task.status == GradingTask.Status.COMPLETED:
            raise TaskAlreadyCompleted()

        max_points = task.question.points
        points = _parse_points(points, max_points)

        answer = task.answer
        answer.points_earned = points
        answer.is_correct = points >= Decimal(max_points) / 2
        answer.manual_override = True
        answer.auto_scored = False
        answer.feedback_text = feedback or ''
        answer.save(update_fields=['points_earned', 'is_correct', 'manual_override', 'auto_scored', 'feedback_text'])

        result = _close(task, answer, reviewer, f'Override: {points}/{max_points} (task {task.pk})')

    logger.info("Task %s graded by %s: %s/%s", task.pk, reviewer.pk, points, max_points)
    return Resolution(answer=answer, task=task, result=result)


def approve_task(task_id, reviewer, feedback=None) -> Resolution:
    """Accept the heuristic's suggested score as it stands."""
    with transaction.atomic():
        task = _locked_task(task_id)
        _check_reviewer(task, reviewer)
        if task.status == GradingTask.Status.COMPLETED:
            raise TaskAlreadyCompleted()

        max_points = task.question.points
        answer = task.answer
        answer.points_earned = task.suggested_points
        answer.is_correct = task.suggested_points >= Decimal(max_points) / 2
        answer.auto_scored = True
        if feedback:
            answer.feedback_text = feedback
        answer.save(update_fields=['points_earned', 'is_correct', 'auto_scored', 'feedback_text'])

        result = _close(task, answer, reviewer, f'Approved: {task.suggested_points}/{max_points} (task {task.pk})')

    logger.info("Task %s approved by %s at %s/%s", task.pk, reviewer.pk, task.suggested_points, max_points)
    return Resolution(answer=answer, task=task, result=result)


def resolve_grading_task(task_id, reviewer, approve=False, override_score=None, feedback='') -> Resolution:
    if approve:
        return approve_task(task_id, reviewer, feedback=feedback)
    if override_score is None:
        raise AnswerValidationError('Either approve the suggestion or send an override_score.')
    return complete_task(task_id, override_score, feedback, reviewer)
