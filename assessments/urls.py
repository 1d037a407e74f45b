from django.urls import path
from .views import (
    ActiveExamSessionView, AssignGradingTaskView, ExamSessionDetailView, GradingTaskListView,
    ResolveGradingTaskView, SessionAnswersView, SessionProgressView, StartExamView, StudentExamAttemptsView,
    SubmitExamView,
)

urlpatterns = [
    # Student Exam Flow
    path('exams/<int:exam_id>/start/', StartExamView.as_view(), name='start_exam'),
    path('exam-sessions/attempts/', StudentExamAttemptsView.as_view(), name='student-attempts'),
    path('exam-sessions/active/', ActiveExamSessionView.as_view(), name='active-session'),
    path('exam-sessions/<int:pk>/', ExamSessionDetailView.as_view(), name='session_detail'),
    path('exam-sessions/<int:session_id>/progress/', SessionProgressView.as_view(), name='session-progress'),
    path('exam-sessions/<int:session_id>/answers/', SessionAnswersView.as_view(), name='session-answers'),
    path('exam-sessions/<int:session_id>/submit/', SubmitExamView.as_view(), name='submit_exam'),

    # --- Grading Module (Teachers / Admins) ---
    path('grading/tasks/', GradingTaskListView.as_view(), name='grading-tasks'),
    path('grading/tasks/<int:task_id>/assign/', AssignGradingTaskView.as_view(), name='grading-assign'),
    path('grading/tasks/<int:task_id>/resolve/', ResolveGradingTaskView.as_view(), name='grading-resolve'),
]
