"""
Custom permissions for sites app.
"""
from rest_framework import permissions


class IsElevatedUser(permissions.BasePermission):
    """
    Capability check for elevated-only UI features.
    Core site operations never consult the role.
    """
    message = 'This feature is only available to elevated accounts.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_elevated', False))
