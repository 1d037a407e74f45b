# assessments/models.py
import uuid

from django.db import models
from django.db.models import Q
from django.conf import settings
from exams.models import Exam, Question, Option

class ExamSession(models.Model):
    """Tracks a student's timed attempt at an exam."""
    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In Progress"
        SUBMITTED = "submitted", "Submitted"
        GRADED = "graded", "Graded"

    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_sessions')
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='sessions')
    # Set by the request that inserted the row; lets a racing request tell
    # whether it created the session or found someone else's
    attempt_token = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    started_at = models.DateTimeField()
    expires_at = models.DateTimeField()
    submitted_at = models.DateTimeField(null=True, blank=True)
    time_remaining = models.PositiveIntegerField(null=True, blank=True)  # Seconds, reported by the client

    is_completed = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)
    score = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    max_score = models.PositiveIntegerField(default=0)

    # Free-form progress, e.g. {"current_question_index": 3}
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'student'],
                condition=Q(is_completed=False),
                name='unique_active_session_per_student',
            ),
        ]
        indexes = [
            models.Index(fields=['is_completed', 'expires_at'], name='session_open_expiry_idx'),
            models.Index(fields=['student', 'is_completed'], name='session_student_open_idx'),
        ]

    def __str__(self):
        return f"{self.student} - {self.exam.title}"

class StudentAnswer(models.Model):
    session = models.ForeignKey(ExamSession, related_name='answers', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, on_delete=models.CASCADE)

    # For multiple choice / true-false
    selected_option = models.ForeignKey(Option, null=True, blank=True, on_delete=models.SET_NULL)

    # For text, fill-in-the-blank and essays
    text_answer = models.TextField(null=True, blank=True)
    answered_at = models.DateTimeField(auto_now=True)

    # Grading
    is_correct = models.BooleanField(null=True)
    points_earned = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    confidence = models.FloatField(null=True, blank=True)
    auto_scored = models.BooleanField(default=False)
    manual_override = models.BooleanField(default=False)
    feedback_text = models.TextField(blank=True)

    class Meta:
        unique_together = ('session', 'question')

    @property
    def is_graded(self):
        """Scored by the engine with confidence, or settled by a teacher."""
        return self.auto_scored or self.manual_override

    def __str__(self):
        return f"Answer to Q{self.question_id} in session {self.session_id}"

class ExamResult(models.Model):
    """The per-exam score read by report cards; one row per student and exam."""
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='results')
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_results')
    score = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    max_score = models.PositiveIntegerField(default=0)
    percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)

    # True only while nothing is waiting for a teacher
    auto_scored = models.BooleanField(default=False)
    # The final score has been materialized (no pending manual items)
    is_final = models.BooleanField(default=False)
    recorded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='+')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('exam', 'student')

    def __str__(self):
        return f"{self.student} - {self.exam}: {self.score}/{self.max_score}"

class GradingTask(models.Model):
    """One free-text answer waiting for a teacher."""
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"

    session = models.ForeignKey(ExamSession, related_name='grading_tasks', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, on_delete=models.CASCADE)
    answer = models.OneToOneField(StudentAnswer, related_name='grading_task', on_delete=models.CASCADE)
    assigned_teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='grading_tasks'
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    priority = models.IntegerField(default=0)

    # What the heuristic would have awarded; "approve" accepts it as-is
    suggested_points = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    suggested_confidence = models.FloatField(null=True, blank=True)
    suggestion_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )

    class Meta:
        ordering = ['-priority', 'created_at']
        indexes = [
            models.Index(fields=['assigned_teacher', 'status'], name='task_teacher_status_idx'),
            models.Index(fields=['status'], name='task_status_idx'),
        ]

    def __str__(self):
        return f"Task {self.pk} ({self.status}) for answer {self.answer_id}"
