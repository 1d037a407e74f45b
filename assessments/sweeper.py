"""Periodic jobs: force-submitting expired sessions and publishing scheduled exams."""
import logging
from typing import List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from cores.models import AuditLog
from exams.models import Exam

from .models import ExamSession
from .scoring import ScoringReport, score_session
from .sessions import close_session

logger = logging.getLogger(__name__)

# Metadata key set on submitted sessions whose scoring pass raised
SCORING_FAILED_KEY = 'scoring_failed_at'


def sweep_expired_sessions(now=None, batch_size=None) -> List[int]:
    """Submit and score open sessions whose deadline has passed.

    The forced submission commits on its own before scoring starts. If
    scoring then fails the session stays submitted and is flagged for
    ``rescore_failed_sessions``. Returns the ids that were submitted.
    """
    now = now or timezone.now()
    batch_size = batch_size or settings.EXAM_SWEEP_BATCH_SIZE

    expired = list(
        ExamSession.objects.filter(is_completed=False, expires_at__lte=now)
        .order_by('expires_at', 'id')
        .values_list('id', flat=True)[:batch_size]
    )
    if not expired:
        return []

    logger.info("Found %s expired session(s) to submit", len(expired))
    submitted = []
    for session_id in expired:
        try:
            with transaction.atomic():
                if not close_session(session_id, now=now):
                    # Submitted by the student since the scan
                    continue
                AuditLog.objects.create(
                    actor=None,
                    action='SUBMIT',
                    target_model='ExamSession',
                    target_object_id=str(session_id),
                    details='Auto-submitted after the time limit expired',
                )
        except Exception:
            logger.exception("Failed to auto-submit session %s", session_id)
            continue
        submitted.append(session_id)

        report = _score_or_flag(session_id)
        if report is not None:
            logger.info("Auto-submitted session %s (score %s/%s)", session_id, report.score, report.max_score)
    return submitted


def rescore_failed_sessions(batch_size=None) -> List[int]:
    """Retry scoring for submitted sessions flagged by a failed pass.

    Sessions that failed longest ago go first; one that fails again moves to
    the back. Returns the ids scored successfully.
    """
    batch_size = batch_size or settings.EXAM_SWEEP_BATCH_SIZE
    flagged = ExamSession.objects.filter(is_completed=True, metadata__has_key=SCORING_FAILED_KEY)
    candidates = sorted(flagged.values_list('id', 'metadata'), key=lambda row: (row[1][SCORING_FAILED_KEY], row[0]))

    rescored = []
    for session_id, _ in candidates[:batch_size]:
        if _score_or_flag(session_id) is not None:
            _clear_flag(session_id)
            rescored.append(session_id)
    if rescored:
        logger.info("Re-scored %s session(s) after earlier failures: %s", len(rescored), rescored)
    return rescored


def _score_or_flag(session_id) -> Optional[ScoringReport]:
    try:
        return score_session(session_id)
    except Exception:
        logger.exception("Failed to score submitted session %s", session_id)
    session = ExamSession.objects.filter(pk=session_id).first()
    if session is not None:
        session.metadata = {**(session.metadata or {}), SCORING_FAILED_KEY: timezone.now().isoformat()}
        session.save(update_fields=['metadata'])
    return None


def _clear_flag(session_id):
    session = ExamSession.objects.get(pk=session_id)
    session.metadata.pop(SCORING_FAILED_KEY, None)
    session.save(update_fields=['metadata'])


def run_sweep(batch_size=None) -> List[int]:
    """One sweeper tick: submit expired sessions, then retry failed scorings."""
    submitted = sweep_expired_sessions(batch_size=batch_size)
    rescore_failed_sessions(batch_size=batch_size)
    return submitted


def publish_scheduled_exams(now=None) -> List[int]:
    """Publish global-timer exams whose start time has arrived."""
    now = now or timezone.now()
    due = Exam.objects.filter(
        timer_mode=Exam.TimerMode.GLOBAL,
        is_published=False,
        start_time__isnull=False,
        start_time__lte=now,
    )
    ids = list(due.values_list('id', flat=True))
    if ids:
        Exam.objects.filter(pk__in=ids, is_published=False).update(is_published=True)
        logger.info("Auto-published %s exam(s): %s", len(ids), ids)
    return ids
