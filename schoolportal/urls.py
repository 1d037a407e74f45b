from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication & profile ---
    path('api/', include('users.urls')),

    # --- Exam taking & grading ---
    path('api/', include('assessments.urls')),

    # --- Platform settings (grading policy) ---
    path('api/', include('cores.urls')),
]
