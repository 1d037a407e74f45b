# schoolportal/exams/serializers.py
from rest_framework import serializers
from .models import Exam, Question, Option

# --- Candidate-facing serializers ---
# Correct flags, expected answers and model answers never leave the server
# while a session is open.

class OptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Option
        fields = ['id', 'option_text', 'order_number']

class QuestionSerializer(serializers.ModelSerializer):
    options = OptionSerializer(many=True, read_only=True)

    class Meta:
        model = Question
        fields = ['id', 'question_text', 'question_type', 'points', 'order_number', 'options']

class ExamListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Exam
        fields = ['id', 'title', 'duration_minutes', 'timer_mode', 'start_time', 'end_time']

class ExamDetailSerializer(ExamListSerializer):
    """Exam with its questions, returned when a session starts or resumes."""
    questions = QuestionSerializer(many=True, read_only=True)
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta(ExamListSerializer.Meta):
        fields = ExamListSerializer.Meta.fields + ['description', 'total_questions', 'questions']
