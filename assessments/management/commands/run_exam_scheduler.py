import signal
import threading

from django.core.management.base import BaseCommand

from assessments.scheduler import ExamScheduler


class Command(BaseCommand):
    help = "Run the expired-session sweeper and the exam auto-publisher"

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="Run one sweep and one publish, then exit")
        parser.add_argument("--batch-size", type=int, default=None)

    def handle(self, *args, **options):
        scheduler = ExamScheduler(batch_size=options.get("batch_size"))

        if options.get("once"):
            outcome = scheduler.run_once()
            self.stdout.write(
                f"Submitted {len(outcome['submitted'])} session(s), published {len(outcome['published'])} exam(s)"
            )
            return

        stopped = threading.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, lambda *_: stopped.set())

        scheduler.start()
        self.stdout.write("Exam scheduler running; press Ctrl+C to stop")
        try:
            while not stopped.wait(1):
                pass
        finally:
            scheduler.stop(timeout=10)
