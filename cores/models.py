from django.db import models
from django.core.cache import cache
from django.conf import settings

class PlatformSetting(models.Model):
    # --- General ---
    site_name = models.CharField(max_length=100, default="School Portal")

    # --- Heuristic grading policy ---
    # An essay score is accepted without review only when both thresholds hold
    review_min_confidence = models.FloatField(default=0.7)
    review_min_hybrid_score = models.FloatField(default=0.3)
    # Partial credit for short text answers, unless a question overrides it
    text_min_similarity = models.FloatField(default=0.8)
    text_partial_percentage = models.FloatField(default=0.5)

    def save(self, *args, **kwargs):
        self.pk = 1  # Singleton pattern
        super().save(*args, **kwargs)
        cache.set('platform_settings', self)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        obj = cache.get('platform_settings')
        if obj is None:
            obj, created = cls.objects.get_or_create(pk=1)
            cache.set('platform_settings', obj)
        return obj

    def __str__(self):
        return "Platform Settings"


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('SUBMIT', 'Exam Submitted'),
        ('GRADE', 'Grade Submitted'),
        ('SETTINGS', 'Settings Changed'),
    ]

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    target_model = models.CharField(max_length=50, help_text="e.g., ExamSession, StudentAnswer")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of changes")
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"


class PerformanceEvent(models.Model):
    """Timing of server-side work that has a latency goal (e.g. auto-scoring)."""
    event_type = models.CharField(max_length=50)
    entity_type = models.CharField(max_length=50, blank=True)
    entity_id = models.CharField(max_length=36, blank=True)
    duration_ms = models.PositiveIntegerField()
    met_goal = models.BooleanField()
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['event_type', 'created_at'], name='perf_event_type_created_idx'),
        ]

    def __str__(self):
        return f"{self.event_type} {self.entity_id} {self.duration_ms}ms"
