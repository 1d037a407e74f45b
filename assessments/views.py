from rest_framework import generics, permissions, status, views
from rest_framework.response import Response
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404

from exams.models import Exam
from exams.serializers import ExamDetailSerializer
from .answers import save_answer
from .exceptions import Forbidden, SessionNotFound
from .grading import assign_task, list_grading_tasks, resolve_grading_task
from .models import ExamSession
from .permissions import IsExamStaff
from .serializers import (
    ActiveExamSessionSerializer, AssignTaskSerializer, ExamSessionSerializer, GradingTaskFilterSerializer,
    GradingTaskSerializer, ProgressSerializer, ResolveTaskSerializer, SaveAnswerSerializer, ScoringReportSerializer,
    StudentAnswerSerializer,
)
from .sessions import get_session_for, start_or_resume_session, submit_session, update_progress

User = get_user_model()


def _owned_session(request, session_id):
    """Sessions are written only by the student who sits the exam."""
    session = get_session_for(request.user, session_id)
    if session.student_id != request.user.pk:
        raise Forbidden('Only the student taking this exam can change it.')
    return session


# --- STUDENT VIEWS ---

class StartExamView(views.APIView):
    """
    Student starts an exam, or resumes the attempt already in progress.
    Returns the session with the exam details WITH questions.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, exam_id):
        exam = get_object_or_404(Exam, id=exam_id)
        session, created = start_or_resume_session(exam, request.user)

        data = ExamSessionSerializer(session).data
        # Inject questions manually since SessionSerializer does not have them
        data['exam'] = ExamDetailSerializer(exam).data
        data['created'] = created
        return Response(data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class SessionProgressView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, session_id):
        _owned_session(request, session_id)
        serializer = ProgressSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = update_progress(session_id, **serializer.validated_data)
        return Response(ExamSessionSerializer(session).data)


class SessionAnswersView(views.APIView):
    """GET lists the saved answers; POST saves (or overwrites) one answer."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, session_id):
        session = get_session_for(request.user, session_id)
        return Response(ActiveExamSessionSerializer().get_answers(session))

    def post(self, request, session_id):
        session = _owned_session(request, session_id)
        serializer = SaveAnswerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        answer = save_answer(session.pk, student=request.user, **serializer.validated_data)
        return Response(StudentAnswerSerializer(answer).data, status=status.HTTP_200_OK)


class SubmitExamView(views.APIView):
    """
    Student submits the exam.
    Scores everything that can be scored and queues the rest for a teacher.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, session_id):
        _owned_session(request, session_id)
        report = submit_session(session_id)
        return Response(ScoringReportSerializer(report).data)


class StudentExamAttemptsView(generics.ListAPIView):
    """List all exam sessions for the logged-in student (Lightweight)."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ExamSessionSerializer

    def get_queryset(self):
        return ExamSession.objects.filter(student=self.request.user).select_related('exam').order_by('-started_at')


class ActiveExamSessionView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        session = ExamSession.objects.filter(student=request.user, is_completed=False).order_by('-started_at').first()
        if session is None:
            raise SessionNotFound('No exam in progress.')
        return Response(ActiveExamSessionSerializer(session).data)


class ExamSessionDetailView(views.APIView):
    """Session details (Heavy - Includes Questions) for its student or for staff."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        session = get_session_for(request.user, pk)
        return Response(ActiveExamSessionSerializer(session).data)


# --- GRADING VIEWS ---

class GradingTaskListView(generics.ListAPIView):
    """Tasks waiting for review; filter with ?status= and ?teacher=."""
    permission_classes = [IsExamStaff]
    serializer_class = GradingTaskSerializer

    def get_queryset(self):
        filters = GradingTaskFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        teacher_id = filters.validated_data.get('teacher')
        teacher = get_object_or_404(User, pk=teacher_id) if teacher_id else None
        return list_grading_tasks(teacher=teacher, status=filters.validated_data.get('status'))


class AssignGradingTaskView(views.APIView):
    permission_classes = [IsExamStaff]

    def post(self, request, task_id):
        serializer = AssignTaskSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        teacher_id = serializer.validated_data.get('teacher_id')
        teacher = get_object_or_404(User, pk=teacher_id) if teacher_id else request.user
        task = assign_task(task_id, teacher)
        return Response(GradingTaskSerializer(task).data)


class ResolveGradingTaskView(views.APIView):
    """Teacher approves the suggested score or overrides it."""
    permission_classes = [IsExamStaff]

    def post(self, request, task_id):
        serializer = ResolveTaskSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        resolution = resolve_grading_task(task_id, request.user, **serializer.validated_data)
        return Response({
            "answer": StudentAnswerSerializer(resolution.answer).data,
            "task": GradingTaskSerializer(resolution.task).data,
            "finalized": resolution.finalized,
            "final_score": str(resolution.result.score) if resolution.finalized else None,
        })
