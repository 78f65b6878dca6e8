from rest_framework import permissions


def _authenticated(request):
    return bool(request.user and request.user.is_authenticated)


class IsAuthenticated(permissions.BasePermission):
    """
    Любой вошедший пользователь (JWT)
    """
    def has_permission(self, request, view):
        return _authenticated(request)


class IsAdminUser(permissions.BasePermission):
    """
    Только пользователи с ролью admin. is_staff здесь не учитывается.
    """
    message = 'Admin role required'

    def has_permission(self, request, view):
        return _authenticated(request) and request.user.is_admin
