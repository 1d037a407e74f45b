from rest_framework import permissions

class IsExamStaff(permissions.BasePermission):
    """
    Allows access to Admins and Teachers.
    Strictly blocks Students.
    """
    def has_permission(self, request, view):
        # 1. User must be logged in
        if not request.user or not request.user.is_authenticated:
            return False

        # 2. Check Role
        return getattr(request.user, 'is_exam_staff', False)
