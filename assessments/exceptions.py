"""
Errors raised by the exam services.

They are DRF exceptions so views can let them propagate and the framework
renders the matching status code.
"""
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied, ValidationError

from users.identity import RecordingIdentityError


class SessionNotFound(NotFound):
    default_detail = 'Exam session not found.'
    default_code = 'session_not_found'


class QuestionNotFound(NotFound):
    default_detail = 'Question not found.'
    default_code = 'question_not_found'


class OptionNotFound(NotFound):
    default_detail = 'Option not found.'
    default_code = 'option_not_found'


class TaskNotFound(NotFound):
    default_detail = 'Grading task not found.'
    default_code = 'task_not_found'


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state of the resource.'
    default_code = 'conflict'


class SessionAlreadySubmitted(Conflict):
    default_detail = 'Exam already submitted.'
    default_code = 'session_already_submitted'


class TaskAlreadyCompleted(Conflict):
    default_detail = 'Grading task has already been completed.'
    default_code = 'task_already_completed'


class Forbidden(PermissionDenied):
    default_code = 'forbidden'


class AnswerValidationError(ValidationError):
    default_code = 'invalid_answer'


__all__ = [
    'AnswerValidationError',
    'Conflict',
    'Forbidden',
    'OptionNotFound',
    'QuestionNotFound',
    'RecordingIdentityError',
    'SessionAlreadySubmitted',
    'SessionNotFound',
    'TaskAlreadyCompleted',
    'TaskNotFound',
]
