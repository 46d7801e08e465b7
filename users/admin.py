"""
Users — Django Admin Configuration

Member admin with status and admin-level badges and the three
hierarchy positions grouped by branch.

@file users/admin.py
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import UserCreationForm
from django.utils.translation import gettext_lazy as _

from core.admin import colored_badge
from hierarchy.branches import ALL_USER_FIELDS, BRANCH_LEVELS, Branch

from .models import User

STATUS_COLORS = {
    'PENDING': '#eab308',
    'ACTIVE': '#22c55e',
    'SUSPENDED': '#f97316',
    'REJECTED': '#ef4444',
}


def _branch_fields(branch):
    return tuple(level.user_field for level in reversed(BRANCH_LEVELS[branch]))


class MemberCreationForm(UserCreationForm):

    class Meta(UserCreationForm.Meta):
        model = User
        fields = ('phone', 'first_name', 'last_name', 'admin_level')
        field_classes = {}


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    add_form = MemberCreationForm

    list_display = (
        'phone', 'get_full_name', 'email',
        'status_badge', 'admin_level_badge', 'active_hierarchy', 'is_staff',
        'date_joined',
    )
    list_filter = ('status', 'admin_level', 'active_hierarchy', 'is_staff', 'is_superuser')
    search_fields = ('phone', 'email', 'first_name', 'last_name')
    readonly_fields = (
        'id', 'created_at', 'updated_at', 'created_by', 'updated_by',
        'date_joined', 'last_login',
    )
    raw_id_fields = ALL_USER_FIELDS
    date_hierarchy = 'created_at'
    show_full_result_count = False
    list_per_page = 30
    ordering = ('-created_at',)

    fieldsets = (
        (None, {
            'fields': ('id', 'phone', 'password'),
        }),
        (_('Personal Info'), {
            'fields': ('first_name', 'last_name', 'email'),
        }),
        (_('Status & Administration'), {
            'fields': ('status', 'admin_level', 'active_hierarchy'),
        }),
        (_('Original hierarchy'), {
            'fields': _branch_fields(Branch.ORIGINAL),
        }),
        (_('Expatriate hierarchy'), {
            'fields': _branch_fields(Branch.EXPATRIATE),
        }),
        (_('Sector hierarchy'), {
            'fields': _branch_fields(Branch.SECTOR),
            'classes': ('collapse',),
        }),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        (_('Audit'), {
            'fields': ('date_joined', 'last_login', 'created_at', 'updated_at', 'created_by', 'updated_by'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('phone', 'password1', 'password2', 'first_name', 'last_name', 'admin_level'),
        }),
    )

    def save_model(self, request, obj, form, change):
        obj._current_user = request.user
        super().save_model(request, obj, form, change)

    @admin.display(description=_('Status'))
    def status_badge(self, obj):
        return colored_badge(STATUS_COLORS.get(obj.status, '#6b7280'), obj.get_status_display())

    @admin.display(description=_('Admin level'))
    def admin_level_badge(self, obj):
        color = '#6b7280' if obj.admin_level == User.AdminLevel.USER else '#2563eb'
        return colored_badge(color, obj.get_admin_level_display())

    @admin.display(description=_('Full Name'))
    def get_full_name(self, obj):
        return obj.get_full_name()
