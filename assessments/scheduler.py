"""
In-process scheduler for the exam background jobs.

ExamScheduler owns the sweeper and the publisher. Each runs in a daemon
thread started and stopped explicitly, so nothing is scheduled merely by
importing this module.

Not safe across several processes sharing one database: each process would
run its own sweeps. Double submission is still prevented by the conditional
update in close_session.
"""
import logging
import random
import threading
from typing import Callable, List, Optional

from django.conf import settings
from django.db import close_old_connections

from .sweeper import publish_scheduled_exams, run_sweep

logger = logging.getLogger(__name__)


class PeriodicJob:
    """Calls ``func`` every ``interval`` seconds after a random initial delay."""

    def __init__(self, name: str, func: Callable, interval: float, jitter: float = 0):
        self.name = name
        self.func = func
        self.interval = interval
        self.jitter = jitter
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        with self._lock:
            if self.is_running:
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
            self._thread.start()
        logger.info("Started %s (every %ss)", self.name, self.interval)

    def stop(self, timeout: Optional[float] = None):
        with self._lock:
            thread = self._thread
            self._stop.set()
        if thread is not None:
            thread.join(timeout)
        with self._lock:
            if self._thread is thread and not (thread and thread.is_alive()):
                self._thread = None
        logger.info("Stopped %s", self.name)

    def run_once(self):
        close_old_connections()
        try:
            return self.func()
        except Exception:
            logger.exception("%s failed", self.name)
        finally:
            close_old_connections()

    def _loop(self):
        delay = random.uniform(0, self.jitter) if self.jitter else 0
        while not self._stop.wait(delay):
            self.run_once()
            delay = self.interval


class ExamScheduler:
    def __init__(self, sweep_interval=None, sweep_jitter=None, publish_interval=None, batch_size=None):
        batch_size = batch_size or settings.EXAM_SWEEP_BATCH_SIZE
        self.sweeper = PeriodicJob(
            'exam-session-sweeper',
            lambda: run_sweep(batch_size=batch_size),
            interval=sweep_interval or settings.EXAM_SWEEP_INTERVAL_SECONDS,
            jitter=settings.EXAM_SWEEP_JITTER_SECONDS if sweep_jitter is None else sweep_jitter,
        )
        self.publisher = PeriodicJob(
            'exam-publisher',
            publish_scheduled_exams,
            interval=publish_interval or settings.EXAM_PUBLISH_INTERVAL_SECONDS,
        )

    @property
    def jobs(self) -> List[PeriodicJob]:
        return [self.sweeper, self.publisher]

    def start(self):
        for job in self.jobs:
            job.start()

    def stop(self, timeout: Optional[float] = None):
        for job in self.jobs:
            job.stop(timeout)

    def run_once(self):
        """One sweep and one publish, in the calling thread."""
        return {
            'submitted': self.sweeper.run_once() or [],
            'published': self.publisher.run_once() or [],
        }
