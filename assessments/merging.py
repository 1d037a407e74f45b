"""Folding teacher grades back into the exam result."""
import logging
from decimal import Decimal
from typing import Optional

from django.db import transaction

from users.identity import RecordingIdentityResolver

from .exceptions import SessionNotFound
from .models import ExamResult, ExamSession
from .scoring import percentage_of

logger = logging.getLogger(__name__)


def merge_exam_scores(session_id, resolver: Optional[RecordingIdentityResolver] = None) -> Optional[ExamResult]:
    """Materialize the final result once nothing in the session awaits a teacher.

    Returns None, leaving any existing result untouched, while at least one
    question lacks a graded answer.
    """
    with transaction.atomic():
        session = ExamSession.objects.select_related('exam', 'student').filter(pk=session_id).first()
        if session is None:
            raise SessionNotFound()

        questions = list(session.exam.questions.only('id', 'points'))
        answers = {a.question_id: a for a in session.answers.all()}

        ungraded = [q.pk for q in questions if q.pk not in answers or not answers[q.pk].is_graded]
        if ungraded:
            logger.info("Session %s still has %s answer(s) awaiting review", session.pk, len(ungraded))
            return None

        total = sum((a.points_earned for a in answers.values()), Decimal("0"))
        max_score = sum(q.points for q in questions)
        values = {
            'score': total,
            'max_score': max_score,
            'percentage': percentage_of(total, max_score),
            'auto_scored': False,
            'is_final': True,
        }

        result = ExamResult.objects.select_for_update().filter(exam=session.exam, student=session.student).first()
        if result is None:
            recorder = (resolver or RecordingIdentityResolver()).resolve(session.student)
            result = ExamResult.objects.create(
                exam=session.exam, student=session.student, recorded_by=recorder, **values
            )
        else:
            for name, value in values.items():
                setattr(result, name, value)
            result.save()

        session.score = total
        session.max_score = max_score
        session.status = ExamSession.Status.GRADED
        session.save(update_fields=['score', 'max_score', 'status'])

    logger.info("Finalized result for session %s: %s/%s", session.pk, total, max_score)
    return result
