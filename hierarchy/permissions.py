"""
Hierarchy — Permissions

Hierarchy nodes are reference data: any authenticated member may read
them, only the platform administration may change them.

@file hierarchy/permissions.py
"""

from rest_framework.permissions import SAFE_METHODS, BasePermission

from users.models import User


class CanModifyHierarchy(BasePermission):
    """Writes restricted to ADMIN, GENERAL_SECRETARIAT and superusers."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        user = request.user
        return bool(user and user.is_authenticated) and (
            user.is_superuser or user.admin_level in User.BYPASS_ADMIN_LEVELS
        )
