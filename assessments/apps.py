import logging
import os
import sys

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class AssessmentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'assessments'
    scheduler = None

    def ready(self):
        if not settings.EXAM_SCHEDULER_AUTOSTART:
            return
        # The dev server imports the project twice; only the reloaded child serves
        if 'runserver' in sys.argv and os.environ.get('RUN_MAIN') != 'true':
            return
        # Management commands other than the servers should not spawn sweepers
        if 'manage.py' in sys.argv[0] and 'runserver' not in sys.argv:
            return

        from .scheduler import ExamScheduler

        self.scheduler = ExamScheduler()
        self.scheduler.start()
        logger.info("Exam scheduler started with the application")
