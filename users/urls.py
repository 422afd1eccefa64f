from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ChangePasswordView, CustomLoginView, StudentViewSet, UserProfileView

router = DefaultRouter()
router.register(r'students', StudentViewSet, basename='students')

urlpatterns = [
    # --- Authentication ---
    path('auth/login/', CustomLoginView.as_view(), name='login'),
    path('auth/change-password/', ChangePasswordView.as_view(), name='change-password'),
    path('auth/profile/', UserProfileView.as_view(), name='user-profile'),

    # --- Student Management (CRUD) ---
    path('', include(router.urls)),
]
