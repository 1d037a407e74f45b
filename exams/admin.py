from django.contrib import admin

from .models import Exam, Question, Option


class OptionInline(admin.TabularInline):
    model = Option
    extra = 0


class QuestionInline(admin.StackedInline):
    model = Question
    extra = 0
    show_change_link = True


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'timer_mode', 'start_time', 'duration_minutes', 'is_published')
    list_filter = ('timer_mode', 'is_published')
    inlines = [QuestionInline]


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('__str__', 'exam', 'question_type', 'points')
    list_filter = ('question_type',)
    inlines = [OptionInline]
