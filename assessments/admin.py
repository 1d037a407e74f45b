from django.contrib import admin

from .models import ExamResult, ExamSession, GradingTask, StudentAnswer


class StudentAnswerInline(admin.TabularInline):
    model = StudentAnswer
    extra = 0
    fields = ('question', 'selected_option', 'text_answer', 'points_earned', 'auto_scored', 'manual_override')
    readonly_fields = ('question', 'selected_option', 'text_answer')


@admin.register(ExamSession)
class ExamSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'student', 'exam', 'status', 'started_at', 'expires_at', 'score', 'max_score')
    list_filter = ('status', 'is_completed')
    search_fields = ('student__email', 'exam__title')
    inlines = [StudentAnswerInline]


@admin.register(ExamResult)
class ExamResultAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student', 'score', 'max_score', 'percentage', 'auto_scored', 'is_final')
    list_filter = ('is_final', 'auto_scored')


@admin.register(GradingTask)
class GradingTaskAdmin(admin.ModelAdmin):
    list_display = ('id', 'question', 'assigned_teacher', 'status', 'priority', 'suggested_points', 'created_at')
    list_filter = ('status',)
