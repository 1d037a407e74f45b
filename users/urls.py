from django.urls import path
from .views import CustomLoginView, UserProfileView

urlpatterns = [
    path('auth/login/', CustomLoginView.as_view(), name='login'),
    path('profile/', UserProfileView.as_view(), name='user-profile'),
]
