"""
Users — DRF Permission Classes

Status, admin-level and hierarchy-scope checks for ViewSets.

@file users/permissions.py
"""

from rest_framework.permissions import SAFE_METHODS, BasePermission

from visibility.filters import can_manage

from .models import User


class IsActiveUser(BasePermission):
    """Requires user to be authenticated and have ACTIVE status."""

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and (request.user.is_superuser or request.user.status == User.StatusChoices.ACTIVE)
        )


class HasAdminLevel(BasePermission):
    """
    Checks that the user's admin level ranks at least
    ``view.required_admin_level``.

    Usage::

        class MyView(APIView):
            permission_classes = [IsActiveUser, HasAdminLevel]
            required_admin_level = 'REGION'
    """

    message = 'Insufficient administrative level.'

    def has_permission(self, request, view):
        required = getattr(view, 'required_admin_level', None)
        if not required:
            return True
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.admin_rank >= User.ADMIN_LEVEL_RANK[required]


class IsContentAdmin(BasePermission):
    """Safe methods for everyone authenticated; writes for any admin level above USER."""

    message = 'Only administrators can publish content.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        return user.admin_rank > User.ADMIN_LEVEL_RANK[User.AdminLevel.USER]


class CanManageObject(BasePermission):
    """Object-level writes only inside the user's management scope."""

    message = 'This item is outside your management scope.'

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        return can_manage(request.user, obj)
