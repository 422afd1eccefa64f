from rest_framework import permissions

from .models import User

class IsCoordinator(permissions.BasePermission):
    """
    Allows access to coordinators and staff.
    Strictly blocks Students.
    """
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.is_staff or getattr(request.user, 'role', '') == User.Role.COORDINATOR


class IsStudent(permissions.BasePermission):
    """Only accounts linked to a Student profile may take exams."""
    message = "Only students can take exams."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return getattr(request.user, 'role', '') == User.Role.STUDENT and hasattr(request.user, 'student_profile')
