"""Capturing a student's answers while the session is open."""
import logging

from exams.models import Option, Question

from .exceptions import AnswerValidationError, Forbidden, OptionNotFound, QuestionNotFound, SessionAlreadySubmitted, \
    SessionNotFound
from .models import ExamSession, StudentAnswer

logger = logging.getLogger(__name__)


def _validated_payload(question: Question, selected_option_id, text_answer):
    if selected_option_id is not None and text_answer is not None:
        raise AnswerValidationError('Send either selected_option or text_answer, not both.')

    if question.is_choice:
        if text_answer is not None:
            raise AnswerValidationError(
                f'Question {question.pk} is {question.question_type}; a selected_option is required.'
            )
        if selected_option_id is None:
            raise AnswerValidationError('selected_option is required.')
        option = Option.objects.filter(pk=selected_option_id).first()
        if option is None:
            raise OptionNotFound()
        if option.question_id != question.pk:
            raise AnswerValidationError('The selected option does not belong to this question.')
        return option, None

    if selected_option_id is not None:
        raise AnswerValidationError(
            f'Question {question.pk} is {question.question_type}; options can only be chosen for '
            'multiple choice and true/false questions.'
        )
    if text_answer is None:
        raise AnswerValidationError('text_answer is required.')
    return None, text_answer


def save_answer(session_id, question_id, selected_option_id=None, text_answer=None, student=None) -> StudentAnswer:
    """Insert or overwrite the answer to one question of an open session.

    When ``student`` is given the session must belong to them. Earlier values
    for the same question are replaced; no history is kept.
    """
    session = ExamSession.objects.filter(pk=session_id).first()
    if session is None:
        raise SessionNotFound()
    if student is not None and session.student_id != student.pk:
        raise Forbidden('You can only answer your own exam session.')
    if session.is_completed:
        raise SessionAlreadySubmitted('Answers cannot be changed after the exam is submitted.')

    question = Question.objects.filter(pk=question_id).first()
    if question is None:
        raise QuestionNotFound()
    if question.exam_id != session.exam_id:
        raise AnswerValidationError('This question is not part of the exam being taken.')

    option, text = _validated_payload(question, selected_option_id, text_answer)

    answer, created = StudentAnswer.objects.update_or_create(
        session=session,
        question=question,
        defaults={'selected_option': option, 'text_answer': text},
    )
    logger.debug("%s answer to question %s in session %s", "Saved" if created else "Updated",
                 question.pk, session.pk)
    return answer
