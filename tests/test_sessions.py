from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from assessments.exceptions import Forbidden, SessionAlreadySubmitted, SessionNotFound
from assessments.models import ExamSession, StudentAnswer
from assessments.sessions import (
    SessionProgress,
    close_session,
    get_session_for,
    session_deadline,
    start_or_resume_session,
    submit_session,
    update_progress,
)
from exams.models import Exam

pytestmark = pytest.mark.django_db


def test_start_creates_one_session(exam, student, mcq, essay):
    session, created = start_or_resume_session(exam, student)

    assert created is True
    assert session.status == ExamSession.Status.IN_PROGRESS
    assert session.max_score == 12
    assert session.expires_at == session.started_at + timedelta(minutes=exam.duration_minutes)


def test_start_twice_resumes_the_same_session(exam, student):
    first, created_first = start_or_resume_session(exam, student)
    second, created_second = start_or_resume_session(exam, student)

    assert created_first is True
    assert created_second is False
    assert first.pk == second.pk
    assert ExamSession.objects.filter(exam=exam, student=student, is_completed=False).count() == 1


def test_start_racing_another_insert_resumes_the_winner(exam, student, monkeypatch):
    manager = ExamSession.objects
    real_bulk_create = manager.bulk_create
    rival = {}

    def bulk_create_after_rival(objs, **kwargs):
        # A concurrent request commits its row just before ours is inserted
        mine = objs[0]
        rival["session"] = ExamSession.objects.create(
            exam=mine.exam, student=mine.student, started_at=mine.started_at, expires_at=mine.expires_at,
        )
        return real_bulk_create(objs, **kwargs)

    monkeypatch.setattr(manager, "bulk_create", bulk_create_after_rival)

    session, created = start_or_resume_session(exam, student)

    assert created is False
    assert session.pk == rival["session"].pk
    assert ExamSession.objects.filter(exam=exam, student=student, is_completed=False).count() == 1


def test_new_attempt_after_submission(exam, student):
    first, _ = start_or_resume_session(exam, student)
    close_session(first.pk)

    second, created = start_or_resume_session(exam, student)

    assert created is True
    assert second.pk != first.pk


def test_students_get_separate_sessions(exam, student, other_student):
    mine, _ = start_or_resume_session(exam, student)
    theirs, _ = start_or_resume_session(exam, other_student)

    assert mine.pk != theirs.pk


def test_unpublished_exam_cannot_be_started(exam, student):
    Exam.objects.filter(pk=exam.pk).update(is_published=False)
    exam.refresh_from_db()

    with pytest.raises(Forbidden):
        start_or_resume_session(exam, student)


def test_global_exam_deadline_is_clipped_to_window(teacher, student):
    now = timezone.now()
    exam = Exam.objects.create(
        title="Finals", duration_minutes=90, timer_mode=Exam.TimerMode.GLOBAL, is_published=True,
        start_time=now - timedelta(minutes=10), end_time=now + timedelta(minutes=20), created_by=teacher,
    )

    session, _ = start_or_resume_session(exam, student, now=now)

    assert session.expires_at == exam.end_time
    assert session_deadline(exam, now) == exam.end_time


def test_closed_global_window_cannot_be_started(teacher, student):
    now = timezone.now()
    exam = Exam.objects.create(
        title="Finals", timer_mode=Exam.TimerMode.GLOBAL, is_published=True,
        start_time=now - timedelta(hours=2), end_time=now - timedelta(hours=1), created_by=teacher,
    )

    with pytest.raises(Forbidden):
        start_or_resume_session(exam, student, now=now)


def test_update_progress(exam, student):
    session, _ = start_or_resume_session(exam, student)

    update_progress(session.pk, time_remaining=600, current_question_index=3)
    update_progress(session.pk, time_remaining=540)

    session.refresh_from_db()
    assert session.time_remaining == 540
    assert SessionProgress.from_metadata(session.metadata).current_question_index == 3


@pytest.mark.parametrize("kwargs", [{"time_remaining": -1}, {"current_question_index": "3"}])
def test_update_progress_rejects_bad_types(exam, student, kwargs):
    session, _ = start_or_resume_session(exam, student)

    with pytest.raises(ValidationError):
        update_progress(session.pk, **kwargs)


def test_update_progress_unknown_session():
    with pytest.raises(SessionNotFound):
        update_progress(12345, time_remaining=10)


def test_submit_scores_the_session(exam, student, mcq):
    session, _ = start_or_resume_session(exam, student)
    StudentAnswer.objects.create(session=session, question=mcq, selected_option=mcq.options.get(is_correct=True))

    report = submit_session(session.pk)

    session.refresh_from_db()
    assert session.is_completed is True
    assert session.submitted_at is not None
    assert session.status == ExamSession.Status.GRADED
    assert report.score == Decimal(2)
    assert report.max_score == 2


def test_submitting_twice_is_a_conflict(exam, student, mcq):
    session, _ = start_or_resume_session(exam, student)
    submit_session(session.pk)

    with pytest.raises(SessionAlreadySubmitted):
        submit_session(session.pk)


def test_submitting_unknown_session_is_not_found():
    with pytest.raises(SessionNotFound):
        submit_session(4242)


def test_close_session_only_once(exam, student):
    session, _ = start_or_resume_session(exam, student)

    assert close_session(session.pk) is True
    assert close_session(session.pk) is False


def test_session_access(exam, student, other_student, teacher):
    session, _ = start_or_resume_session(exam, student)

    assert get_session_for(student, session.pk).pk == session.pk
    assert get_session_for(teacher, session.pk).pk == session.pk
    with pytest.raises(Forbidden):
        get_session_for(other_student, session.pk)
