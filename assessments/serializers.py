from rest_framework import serializers
from .models import ExamSession, StudentAnswer, GradingTask
from exams.serializers import ExamListSerializer, ExamDetailSerializer

class StudentAnswerSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentAnswer
        fields = ['id', 'question', 'selected_option', 'text_answer', 'answered_at',
                  'points_earned', 'is_correct', 'auto_scored', 'manual_override', 'feedback_text']
        read_only_fields = fields

class SaveAnswerSerializer(serializers.Serializer):
    """Input of a single answer save; shape checks against the question happen in the service."""
    question_id = serializers.IntegerField()
    selected_option_id = serializers.IntegerField(required=False, allow_null=True)
    text_answer = serializers.CharField(required=False, allow_null=True, allow_blank=True, trim_whitespace=False)

class ProgressSerializer(serializers.Serializer):
    time_remaining = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    current_question_index = serializers.IntegerField(required=False, allow_null=True, min_value=0)

class ExamSessionSerializer(serializers.ModelSerializer):
    """Lightweight serializer for lists / dashboard history."""
    exam = ExamListSerializer(read_only=True)
    current_question_index = serializers.SerializerMethodField()

    class Meta:
        model = ExamSession
        fields = ['id', 'exam', 'student', 'started_at', 'expires_at', 'submitted_at', 'time_remaining',
                  'is_completed', 'status', 'score', 'max_score', 'current_question_index']
        read_only_fields = fields

    def get_current_question_index(self, obj):
        return (obj.metadata or {}).get('current_question_index')

class ActiveExamSessionSerializer(ExamSessionSerializer):
    """Heavy serializer for taking the exam. Includes QUESTIONS and saved answers."""
    exam = ExamDetailSerializer(read_only=True)
    answers = serializers.SerializerMethodField()

    class Meta(ExamSessionSerializer.Meta):
        fields = ExamSessionSerializer.Meta.fields + ['answers']
        read_only_fields = fields

    def get_answers(self, obj):
        answers = obj.answers.all()
        if not obj.is_completed:
            # Only what the student typed or picked until the exam is over
            return [
                {'question': a.question_id, 'selected_option': a.selected_option_id, 'text_answer': a.text_answer}
                for a in answers
            ]
        return StudentAnswerSerializer(answers, many=True).data

class QuestionOutcomeSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    question_type = serializers.CharField()
    max_points = serializers.IntegerField()
    points_earned = serializers.DecimalField(max_digits=7, decimal_places=2)
    is_correct = serializers.BooleanField(allow_null=True)
    auto_scored = serializers.BooleanField()
    needs_review = serializers.BooleanField()
    confidence = serializers.FloatField(allow_null=True)
    feedback = serializers.CharField()

class ScoringReportSerializer(serializers.Serializer):
    session_id = serializers.IntegerField()
    score = serializers.DecimalField(max_digits=7, decimal_places=2)
    max_score = serializers.IntegerField()
    auto_scored_count = serializers.IntegerField()
    pending_review_count = serializers.IntegerField()
    is_final = serializers.BooleanField()
    breakdown = QuestionOutcomeSerializer(many=True)

class GradingTaskSerializer(serializers.ModelSerializer):
    exam = serializers.IntegerField(source='session.exam_id', read_only=True)
    student = serializers.IntegerField(source='session.student_id', read_only=True)
    question_text = serializers.CharField(source='question.question_text', read_only=True)
    max_points = serializers.IntegerField(source='question.points', read_only=True)
    text_answer = serializers.CharField(source='answer.text_answer', read_only=True)
    points_earned = serializers.DecimalField(source='answer.points_earned', max_digits=7, decimal_places=2,
                                             read_only=True)

    class Meta:
        model = GradingTask
        fields = ['id', 'session', 'exam', 'student', 'question', 'question_text', 'max_points', 'answer',
                  'text_answer', 'points_earned', 'assigned_teacher', 'status', 'priority',
                  'suggested_points', 'suggested_confidence', 'suggestion_reason',
                  'created_at', 'assigned_at', 'completed_at', 'completed_by']
        read_only_fields = fields

class AssignTaskSerializer(serializers.Serializer):
    """Omitting teacher_id assigns the task to the caller."""
    teacher_id = serializers.IntegerField(required=False)

class ResolveTaskSerializer(serializers.Serializer):
    approve = serializers.BooleanField(required=False, default=False)
    override_score = serializers.DecimalField(max_digits=7, decimal_places=2, required=False, allow_null=True,
                                              min_value=0)
    feedback = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs.get('approve') and attrs.get('override_score') is not None:
            raise serializers.ValidationError("Send either approve or override_score, not both.")
        if not attrs.get('approve') and attrs.get('override_score') is None:
            raise serializers.ValidationError("Either approve the suggestion or send an override_score.")
        return attrs

class GradingTaskFilterSerializer(serializers.Serializer):
    """Query parameters of the grading task list."""
    teacher = serializers.IntegerField(required=False, min_value=1)
    status = serializers.ChoiceField(choices=GradingTask.Status.choices, required=False)
