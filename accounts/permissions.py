from rest_framework.permissions import BasePermission


class IsResident(BasePermission):
    """
    Allows access only to users with role = 'resident'.
    """
    message = "Access restricted to resident accounts only."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and request.user.role == "resident"
        )


class IsWorker(BasePermission):
    """
    Allows access only to users with role = 'worker'.
    """
    message = "Access restricted to worker accounts only."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and request.user.role == "worker"
        )


class IsAdmin(BasePermission):
    """
    Allows access only to admins (role = 'admin' or Django superusers).
    """
    message = "Access restricted to admin accounts only."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and request.user.is_admin
        )


class IsAdminOrWorker(BasePermission):
    """
    Allows access to admins or field workers
    """

    def has_permission(self, request, view):
        user = request.user

        if not user or not user.is_authenticated:
            return False

        return user.is_admin or user.role == "worker"


class IsAdminOrResident(BasePermission):
    """
    Allows access to admins or residents
    """

    def has_permission(self, request, view):
        user = request.user

        if not user or not user.is_authenticated:
            return False

        return user.is_admin or user.role == "resident"
