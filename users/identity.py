"""
Resolves the user recorded as the author of machine-generated exam results.

ExamResult.recorded_by must always reference an existing user. The lookup
order is: the first active admin, then the student who sat the exam, then any
active user. When none of these exist the caller must abort instead of
recording a placeholder.
"""
import logging

from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import status
from rest_framework.exceptions import APIException

logger = logging.getLogger(__name__)


class RecordingIdentityError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'No valid user could be resolved to record this exam result.'
    default_code = 'recording_identity_unresolved'


class RecordingIdentityResolver:
    """Picks a real user id for ``recorded_by`` on auto-scored results."""

    def __init__(self, user_model=None):
        self.user_model = user_model or get_user_model()

    def resolve(self, student=None):
        users = self.user_model.objects.filter(is_active=True).order_by('id')

        admin = users.filter(Q(role=self.user_model.Role.ADMIN) | Q(is_superuser=True)).first()
        if admin:
            return admin

        if student is not None and users.filter(pk=student.pk).exists():
            return student

        fallback = users.first()
        if fallback:
            logger.warning("No admin account found; recording results as user %s", fallback.pk)
            return fallback

        raise RecordingIdentityError()
