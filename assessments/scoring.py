"""
Automated scoring of exam sessions.

Objective questions (multiple choice, true/false) are scored against the
option flagged correct, with optional partial credit per option. Short text
and fill-in-the-blank answers are matched against the question's expected
answers, with edit-distance partial credit. Essays, and short text answers
that match nothing, go through a keyword/word-overlap heuristic whose
confidence decides between accepting the score and queueing the answer for a
teacher.

A scoring pass runs in a single transaction: if the recording identity
cannot be resolved nothing is written.
"""
import logging
import math
import time
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from cores.models import PerformanceEvent, PlatformSetting
from exams.models import Question
from users.identity import RecordingIdentityResolver

from .exceptions import SessionNotFound
from .models import ExamResult, ExamSession, GradingTask, StudentAnswer

logger = logging.getLogger(__name__)

KEYWORD_WEIGHT = 0.6
SEMANTIC_WEIGHT = 0.4
CONTENT_WORD_MIN_LENGTH = 4
TWO_PLACES = Decimal("0.01")

NO_ANSWER_FEEDBACK = "No answer provided."
REVIEW_FEEDBACK = "This answer has been flagged for teacher review."


@dataclass(frozen=True)
class GradingPolicy:
    """Thresholds of the heuristic grader. Defaults match the platform's."""
    min_confidence: float = 0.7
    min_hybrid_score: float = 0.3
    min_similarity: float = 0.8
    partial_percentage: float = 0.5
    # Keyword-score tiers that set the essay heuristic's confidence
    strong_keyword_score: float = 0.8
    fair_keyword_score: float = 0.5
    fair_keyword_inclusive: bool = True

    @classmethod
    def from_platform_settings(cls):
        platform = PlatformSetting.load()
        return cls(
            min_confidence=platform.review_min_confidence,
            min_hybrid_score=platform.review_min_hybrid_score,
            min_similarity=platform.text_min_similarity,
            partial_percentage=platform.text_partial_percentage,
        )


@dataclass
class QuestionOutcome:
    question_id: int
    question_type: str
    max_points: int
    points_earned: Decimal = Decimal("0")
    is_correct: Optional[bool] = None
    auto_scored: bool = True
    needs_review: bool = False
    confidence: Optional[float] = None
    feedback: str = ""
    # Heuristic score withheld while the answer waits for review
    suggested_points: Decimal = Decimal("0")


@dataclass
class ScoringReport:
    session_id: int
    score: Decimal
    max_score: int
    breakdown: List[QuestionOutcome] = field(default_factory=list)
    auto_scored_count: int = 0
    pending_review_count: int = 0
    duration_ms: int = 0
    result_id: Optional[int] = None

    @property
    def is_final(self):
        return self.pending_review_count == 0


# --- Text helpers ---

def edit_distance(a: str, b: str) -> int:
    """Classic Levenshtein distance (insert, delete, substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1.0 for identical strings, falling towards 0.0 as edits accumulate."""
    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - edit_distance(longer, shorter)) / len(longer)


def _content_words(text: str) -> List[str]:
    return [w for w in text.lower().split() if len(w) >= CONTENT_WORD_MIN_LENGTH]


def _plural(n) -> str:
    return "" if n == 1 else "s"


def _to_points(value: float) -> Decimal:
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# --- Per-question scoring ---

@dataclass
class EssayEvaluation:
    keyword_score: float
    semantic_score: float
    hybrid_score: float
    confidence: float
    candidate_points: Decimal
    auto_scored: bool
    feedback: str

    @property
    def points(self) -> Decimal:
        return self.candidate_points if self.auto_scored else Decimal("0")


def evaluate_essay(response: Optional[str], expected_answers: Sequence[str], sample_answer: Optional[str],
                   points: int, policy: GradingPolicy) -> EssayEvaluation:
    if not response or not response.strip():
        return EssayEvaluation(0.0, 0.0, 0.0, 1.0, Decimal("0"), True, NO_ANSWER_FEEDBACK)

    student_text = response.lower().strip()

    matched, missed = [], []
    for keyword in expected_answers:
        (matched if keyword.lower().strip() in student_text else missed).append(keyword)
    keyword_score = len(matched) / len(expected_answers) if expected_answers else 0.0

    if sample_answer and sample_answer.strip():
        sample_words = _content_words(sample_answer)
        student_words = set(_content_words(student_text))
        shared = [w for w in sample_words if w in student_words]
        semantic_score = len(shared) / len(sample_words) if sample_words else 0.0
    else:
        semantic_score = keyword_score

    hybrid_score = KEYWORD_WEIGHT * keyword_score + SEMANTIC_WEIGHT * semantic_score
    candidate_points = _to_points(hybrid_score * points)

    if keyword_score > policy.strong_keyword_score:
        confidence = 0.9
    elif keyword_score > policy.fair_keyword_score or (
            policy.fair_keyword_inclusive and keyword_score == policy.fair_keyword_score):
        confidence = 0.7
    else:
        confidence = 0.5
    confidence = min(confidence, 1.0)

    if hybrid_score >= 0.8:
        feedback = f"Excellent answer! Key points identified: {', '.join(matched)}. "
    elif hybrid_score >= 0.5:
        feedback = f"Good effort. You covered: {', '.join(matched)}. "
        if missed:
            feedback += f"Consider including: {', '.join(missed[:3])}. "
    else:
        feedback = "Needs improvement. "
        if missed:
            feedback += f"Missing key points: {', '.join(missed[:3])}. "

    auto_scored = confidence >= policy.min_confidence and hybrid_score >= policy.min_hybrid_score
    if not auto_scored:
        feedback += REVIEW_FEEDBACK

    return EssayEvaluation(
        keyword_score=keyword_score,
        semantic_score=semantic_score,
        hybrid_score=hybrid_score,
        confidence=confidence,
        candidate_points=candidate_points,
        auto_scored=auto_scored,
        feedback=feedback.strip(),
    )


def score_choice(question: Question, selected_option, correct_option_id: Optional[int]) -> QuestionOutcome:
    outcome = QuestionOutcome(question.id, question.question_type, question.points)
    if selected_option is None:
        outcome.is_correct = False
        outcome.feedback = NO_ANSWER_FEEDBACK
        return outcome

    if correct_option_id is not None and selected_option.id == correct_option_id:
        outcome.is_correct = True
        outcome.points_earned = Decimal(question.points)
        outcome.feedback = f"Correct! You earned {question.points} point{_plural(question.points)}."
        return outcome

    outcome.is_correct = False
    if question.allow_partial_credit and selected_option.partial_credit_value:
        awarded = min(question.points, selected_option.partial_credit_value)
        outcome.points_earned = Decimal(awarded)
        outcome.feedback = f"Partially correct. You earned {awarded} of {question.points} point{_plural(question.points)}."
    else:
        outcome.feedback = f"Incorrect. This question was worth {question.points} point{_plural(question.points)}."
    return outcome


def score_short_text(question: Question, response: str, policy: GradingPolicy) -> Optional[QuestionOutcome]:
    """Exact or near match against the expected answers; None when nothing matches."""
    expected = question.answer_keys
    if not expected:
        return None

    def normalize(value):
        value = value.strip()
        return value if question.case_sensitive else value.lower()

    answer = normalize(response)
    outcome = QuestionOutcome(question.id, question.question_type, question.points)

    if any(answer == normalize(e) for e in expected):
        outcome.is_correct = True
        outcome.points_earned = Decimal(question.points)
        outcome.feedback = f"Correct! You earned {question.points} point{_plural(question.points)}."
        return outcome

    if question.allow_partial_credit:
        rules = question.credit_rules
        min_similarity = policy.min_similarity if rules.min_similarity is None else rules.min_similarity
        percentage = policy.partial_percentage if rules.partial_percentage is None else rules.partial_percentage
        for e in expected:
            if similarity(answer, normalize(e)) >= min_similarity:
                # In Decimal, so 100 * 0.55 is exactly 55
                awarded = min(question.points, math.ceil(Decimal(question.points) * Decimal(str(percentage))))
                outcome.is_correct = False
                outcome.points_earned = Decimal(awarded)
                outcome.feedback = f"Close answer. You earned {awarded} of {question.points} point{_plural(question.points)}."
                return outcome
    return None


def score_free_text(question: Question, response: Optional[str], policy: GradingPolicy,
                    allow_auto_accept: bool = True) -> QuestionOutcome:
    """Text, fill-in-the-blank and essay answers."""
    outcome = QuestionOutcome(question.id, question.question_type, question.points)

    if not response or not response.strip():
        outcome.is_correct = False
        outcome.confidence = 1.0
        outcome.feedback = NO_ANSWER_FEEDBACK
        return outcome

    if question.question_type in (Question.QuestionType.TEXT, Question.QuestionType.FILL_BLANK):
        matched = score_short_text(question, response, policy)
        if matched is not None:
            return matched
        if question.question_type == Question.QuestionType.FILL_BLANK and allow_auto_accept:
            outcome.is_correct = False
            outcome.feedback = f"Incorrect. This question was worth {question.points} point{_plural(question.points)}."
            return outcome

    evaluation = evaluate_essay(response, question.answer_keys, question.sample_answer, question.points, policy)
    outcome.confidence = evaluation.confidence
    outcome.suggested_points = evaluation.candidate_points

    if evaluation.auto_scored and allow_auto_accept:
        outcome.points_earned = evaluation.points
        outcome.is_correct = evaluation.points >= Decimal(question.points) / 2
        outcome.feedback = evaluation.feedback
    else:
        outcome.auto_scored = False
        outcome.needs_review = True
        outcome.feedback = evaluation.feedback if evaluation.feedback.endswith(REVIEW_FEEDBACK) \
            else f"{evaluation.feedback} {REVIEW_FEEDBACK}"
    return outcome


def _settled_outcome(question: Question, answer: StudentAnswer) -> QuestionOutcome:
    """A teacher already decided this answer; report it unchanged."""
    return QuestionOutcome(
        question_id=question.id,
        question_type=question.question_type,
        max_points=question.points,
        points_earned=answer.points_earned,
        is_correct=answer.is_correct,
        auto_scored=answer.auto_scored,
        confidence=answer.confidence,
        feedback=answer.feedback_text,
    )


def _is_settled(answer: Optional[StudentAnswer]) -> bool:
    if answer is None:
        return False
    if answer.manual_override:
        return True
    task = getattr(answer, 'grading_task', None)
    return task is not None and task.status == GradingTask.Status.COMPLETED


# --- Session scoring ---

def score_session(session_id, policy: Optional[GradingPolicy] = None,
                  resolver: Optional[RecordingIdentityResolver] = None) -> ScoringReport:
    """Score every question of the session's exam and upsert the exam result.

    Answers already settled by a teacher keep their score, so re-running the
    pass without new manual input reproduces the same result.
    """
    started = time.monotonic()
    policy = policy or GradingPolicy.from_platform_settings()
    resolver = resolver or RecordingIdentityResolver()

    with transaction.atomic():
        session = (
            ExamSession.objects.select_related('exam', 'exam__created_by', 'student')
            .filter(pk=session_id)
            .first()
        )
        if session is None:
            raise SessionNotFound()
        exam = session.exam

        recorder = resolver.resolve(session.student)

        questions = list(exam.questions.prefetch_related('options'))
        answers: Dict[int, StudentAnswer] = {
            a.question_id: a
            for a in session.answers.select_related('selected_option', 'grading_task')
        }
        query_ms = int((time.monotonic() - started) * 1000)

        breakdown: List[QuestionOutcome] = []
        to_update, to_create, flagged = [], [], []
        reviewed = 0

        for question in questions:
            answer = answers.get(question.id)
            if _is_settled(answer):
                breakdown.append(_settled_outcome(question, answer))
                reviewed += 1
                continue

            if question.is_choice:
                correct = next((o.id for o in question.options.all() if o.is_correct), None)
                outcome = score_choice(question, answer.selected_option if answer else None, correct)
            else:
                allow_auto = question.auto_gradable and exam.auto_grading_enabled
                outcome = score_free_text(question, answer.text_answer if answer else None, policy, allow_auto)
            breakdown.append(outcome)

            if answer is None:
                answer = StudentAnswer(session=session, question=question)
                to_create.append(answer)
            else:
                to_update.append(answer)
            answer.points_earned = outcome.points_earned
            answer.is_correct = outcome.is_correct
            answer.auto_scored = outcome.auto_scored
            answer.confidence = outcome.confidence
            answer.feedback_text = outcome.feedback
            if outcome.needs_review:
                flagged.append((answer, outcome))

        if to_update:
            StudentAnswer.objects.bulk_update(
                to_update, ['points_earned', 'is_correct', 'auto_scored', 'confidence', 'feedback_text']
            )
        if to_create:
            # Unanswered questions get a zero row so every question has a graded answer
            StudentAnswer.objects.bulk_create(to_create)

        _sync_grading_tasks(session, flagged, to_update)

        total = sum((o.points_earned for o in breakdown), Decimal("0"))
        max_score = sum(q.points for q in questions)
        pending = sum(1 for o in breakdown if o.needs_review)
        auto_count = sum(1 for o in breakdown if o.auto_scored)

        result, _ = ExamResult.objects.update_or_create(
            exam=exam,
            student=session.student,
            defaults={
                'score': total,
                'max_score': max_score,
                'percentage': percentage_of(total, max_score),
                # A teacher's decision makes the result no longer purely automatic
                'auto_scored': pending == 0 and not reviewed,
                'is_final': pending == 0,
                'recorded_by': recorder,
            },
        )

        session.score = total
        session.max_score = max_score
        update_fields = ['score', 'max_score']
        if session.is_completed:
            session.status = ExamSession.Status.GRADED if pending == 0 else ExamSession.Status.SUBMITTED
            update_fields.append('status')
        session.save(update_fields=update_fields)

        duration_ms = int((time.monotonic() - started) * 1000)
        goal_ms = settings.SCORING_TIME_GOAL_MS
        PerformanceEvent.objects.create(
            event_type='auto_scoring',
            entity_type='exam_session',
            entity_id=str(session.pk),
            duration_ms=duration_ms,
            met_goal=duration_ms <= goal_ms,
            metadata={
                'database_query_ms': query_ms,
                'exam_id': exam.pk,
                'student_id': session.student_id,
                'pending_review': pending,
            },
        )

    if duration_ms > goal_ms:
        logger.warning("Scoring session %s took %sms (goal %sms)", session.pk, duration_ms, goal_ms)
    logger.info(
        "Scored session %s: %s/%s, %s auto-scored, %s pending review",
        session.pk, total, max_score, auto_count, pending,
    )

    return ScoringReport(
        session_id=session.pk,
        score=total,
        max_score=max_score,
        breakdown=breakdown,
        auto_scored_count=auto_count,
        pending_review_count=pending,
        duration_ms=duration_ms,
        result_id=result.pk,
    )


def percentage_of(score: Decimal, max_score: int) -> Decimal:
    if not max_score:
        return Decimal("0")
    return (score * 100 / max_score).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _sync_grading_tasks(session: ExamSession, flagged, cleared: Sequence[StudentAnswer]):
    """One open task per flagged answer; drop open tasks the heuristic no longer needs."""
    assignee = session.exam.created_by
    for answer, outcome in flagged:
        task = getattr(answer, 'grading_task', None)
        if task is None:
            GradingTask.objects.create(
                session=session,
                question_id=outcome.question_id,
                answer=answer,
                assigned_teacher=assignee,
                suggested_points=outcome.suggested_points,
                suggested_confidence=outcome.confidence,
                suggestion_reason=outcome.feedback,
            )
        else:
            task.suggested_points = outcome.suggested_points
            task.suggested_confidence = outcome.confidence
            task.suggestion_reason = outcome.feedback
            task.save(update_fields=['suggested_points', 'suggested_confidence', 'suggestion_reason'])

    stale = [a.pk for a in cleared if a.auto_scored]
    if stale:
        GradingTask.objects.filter(answer_id__in=stale).exclude(status=GradingTask.Status.COMPLETED).delete()
