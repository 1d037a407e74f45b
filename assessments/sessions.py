"""Creating, resuming, updating and submitting exam sessions."""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from exams.models import Exam

from rest_framework.exceptions import ValidationError

from .exceptions import Forbidden, SessionAlreadySubmitted, SessionNotFound
from .models import ExamSession
from .scoring import score_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionProgress:
    """Client-reported progress kept in ExamSession.metadata."""
    current_question_index: Optional[int] = None

    @classmethod
    def from_metadata(cls, raw: Any) -> "SessionProgress":
        raw = raw if isinstance(raw, dict) else {}
        return cls(current_question_index=raw.get('current_question_index'))

    def merged_into(self, metadata: Any) -> dict:
        data = dict(metadata) if isinstance(metadata, dict) else {}
        if self.current_question_index is not None:
            data['current_question_index'] = self.current_question_index
        return data


def _non_negative_int(value, name):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError({name: "Must be a non-negative integer."})
    return value


def session_deadline(exam: Exam, started_at):
    deadline = started_at + timedelta(minutes=exam.duration_minutes)
    if exam.timer_mode == Exam.TimerMode.GLOBAL and exam.end_time:
        deadline = min(deadline, exam.end_time)
    return deadline


def get_session_for(user, session_id) -> ExamSession:
    """The session, if ``user`` owns it or is exam staff."""
    session = ExamSession.objects.select_related('exam').filter(pk=session_id).first()
    if session is None:
        raise SessionNotFound()
    if session.student_id != user.pk and not user.is_exam_staff:
        raise Forbidden('You do not have access to this exam session.')
    return session


def start_or_resume_session(exam: Exam, student, now=None):
    """Return ``(session, created)`` for the student's active attempt.

    The insert is a no-op when an active session already exists (the partial
    unique constraint on exam/student/is_completed=False), so two requests
    racing here end up reading the same row.
    """
    if not exam.is_published:
        raise Forbidden('Exam is not published yet.')

    now = now or timezone.now()
    if exam.timer_mode == Exam.TimerMode.GLOBAL and exam.end_time and exam.end_time <= now:
        raise Forbidden('The exam window has closed.')

    expires_at = session_deadline(exam, now)
    max_score = exam.questions.aggregate(total=Sum('points'))['total'] or 0

    for _ in range(2):
        candidate = ExamSession(
            exam=exam,
            student=student,
            started_at=now,
            expires_at=expires_at,
            time_remaining=max(0, int((expires_at - now).total_seconds())),
            max_score=max_score,
        )
        ExamSession.objects.bulk_create([candidate], ignore_conflicts=True)

        session = ExamSession.objects.filter(exam=exam, student=student, is_completed=False).first()
        if session is not None:
            created = session.attempt_token == candidate.attempt_token
            if created:
                logger.info("Started session %s for student %s on exam %s", session.pk, student.pk, exam.pk)
            return session, created
        # The active row was submitted between our insert and read; try once more

    raise SessionAlreadySubmitted('Exam session was submitted while starting; retry.')


def update_progress(session_id, time_remaining=None, current_question_index=None) -> ExamSession:
    """Last write wins; the owning student is the only writer."""
    time_remaining = _non_negative_int(time_remaining, 'time_remaining')
    progress = SessionProgress(_non_negative_int(current_question_index, 'current_question_index'))

    session = ExamSession.objects.filter(pk=session_id).first()
    if session is None:
        raise SessionNotFound()

    update_fields = []
    if time_remaining is not None:
        session.time_remaining = time_remaining
        update_fields.append('time_remaining')
    if progress.current_question_index is not None:
        session.metadata = progress.merged_into(session.metadata)
        update_fields.append('metadata')
    if update_fields:
        session.save(update_fields=update_fields)
    return session


def close_session(session_id, now=None) -> bool:
    """Mark the session submitted. False if it was already completed."""
    now = now or timezone.now()
    updated = ExamSession.objects.filter(pk=session_id, is_completed=False).update(
        is_completed=True,
        submitted_at=now,
        status=ExamSession.Status.SUBMITTED,
    )
    return bool(updated)


def submit_session(session_id, policy=None):
    """Close the session and score it. Re-submitting is a conflict."""
    with transaction.atomic():
        if not close_session(session_id):
            if ExamSession.objects.filter(pk=session_id).exists():
                raise SessionAlreadySubmitted()
            raise SessionNotFound()
        return score_session(session_id, policy=policy)
