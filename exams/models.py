# schoolportal/exams/models.py
from django.conf import settings
from django.db import models

from .values import PartialCreditRules, parse_expected_answers


class Exam(models.Model):
    class TimerMode(models.TextChoices):
        INDIVIDUAL = "individual", "Individual"  # Clock starts when the student starts
        GLOBAL = "global", "Global"  # Everyone sits the same window

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    duration_minutes = models.PositiveIntegerField(default=60)
    timer_mode = models.CharField(max_length=20, choices=TimerMode.choices, default=TimerMode.INDIVIDUAL)
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)

    is_published = models.BooleanField(default=False)
    auto_grading_enabled = models.BooleanField(default=True)
    passing_score = models.PositiveIntegerField(null=True, blank=True)

    # Teacher in charge; receives the grading tasks for this exam
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='exams_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['timer_mode', 'is_published', 'start_time'], name='exam_timer_publish_idx'),
        ]

    def __str__(self):
        return self.title


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = "multiple_choice", "Multiple Choice"
        TRUE_FALSE = "true_false", "True / False"
        TEXT = "text", "Short Text"
        FILL_BLANK = "fill_blank", "Fill in the Blank"
        ESSAY = "essay", "Essay"

    CHOICE_TYPES = (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)

    exam = models.ForeignKey(Exam, related_name='questions', on_delete=models.CASCADE)

    question_text = models.TextField()
    question_type = models.CharField(max_length=20, choices=QuestionType.choices, default=QuestionType.MULTIPLE_CHOICE)
    points = models.PositiveIntegerField(default=1)
    order_number = models.PositiveIntegerField(default=0)

    # Grading
    auto_gradable = models.BooleanField(default=True)
    expected_answers = models.JSONField(default=list, blank=True)
    sample_answer = models.TextField(blank=True)  # Model answer used for word overlap
    case_sensitive = models.BooleanField(default=False)
    allow_partial_credit = models.BooleanField(default=False)
    partial_credit_rules = models.JSONField(null=True, blank=True)
    explanation_text = models.TextField(blank=True)

    class Meta:
        ordering = ['exam', 'order_number', 'id']
        indexes = [
            models.Index(fields=['exam', 'order_number'], name='question_exam_order_idx'),
        ]

    def clean(self):
        self.expected_answers = parse_expected_answers(self.expected_answers)
        self.partial_credit_rules = PartialCreditRules.from_raw(self.partial_credit_rules).to_raw() or None

    def save(self, *args, **kwargs):
        # ORM writes skip full_clean(); the JSON columns are checked here too
        self.clean()
        super().save(*args, **kwargs)

    @property
    def is_choice(self):
        return self.question_type in self.CHOICE_TYPES

    @property
    def answer_keys(self):
        return parse_expected_answers(self.expected_answers)

    @property
    def credit_rules(self):
        return PartialCreditRules.from_raw(self.partial_credit_rules)

    def __str__(self):
        return f"{self.question_text[:50]}..."


class Option(models.Model):
    question = models.ForeignKey(Question, related_name='options', on_delete=models.CASCADE)
    option_text = models.CharField(max_length=255)
    is_correct = models.BooleanField(default=False)
    partial_credit_value = models.PositiveIntegerField(default=0)
    order_number = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['question', 'order_number', 'id']

    def __str__(self):
        return self.option_text
