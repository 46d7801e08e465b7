"""
Content — Django Admin Configuration

Targeted content admins share one form that rejects targets spanning
more than one hierarchy branch, mirroring the API write path.

@file content/admin.py
"""

from django import forms
from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from core.admin import colored_badge
from hierarchy.branches import ALL_TARGET_FIELDS
from visibility.targeting import HierarchyKind, classify

from .models import ArchiveDocument, Bulletin, Report, Survey, SurveyResponse, Vote, VotingItem

HIERARCHY_COLORS = {
    HierarchyKind.ORIGINAL: '#2563eb',
    HierarchyKind.EXPATRIATE: '#0891b2',
    HierarchyKind.SECTOR: '#7c3aed',
    HierarchyKind.GLOBAL: '#6b7280',
}

REPORT_STATUS_COLORS = {
    'PENDING': '#eab308',
    'RESOLVED': '#22c55e',
    'REJECTED': '#ef4444',
}


class TargetedContentForm(forms.ModelForm):

    def clean(self):
        cleaned = super().clean()
        targets = {field: cleaned.get(field) for field in ALL_TARGET_FIELDS}
        if classify(targets) == HierarchyKind.MIXED:
            raise forms.ValidationError(
                _('Invalid targeting: cannot mix ORIGINAL, EXPATRIATE, and SECTOR targets. Choose one hierarchy.'),
            )
        return cleaned


class TargetedContentAdmin(admin.ModelAdmin):
    form = TargetedContentForm
    raw_id_fields = ALL_TARGET_FIELDS
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    list_per_page = 50

    targeting_fieldset = (_('Targeting'), {
        'fields': ALL_TARGET_FIELDS,
        'description': _('Leave every field empty for content visible to all members.'),
    })
    audit_fieldset = (_('Audit'), {
        'fields': ('id', 'created_at', 'updated_at', 'created_by', 'updated_by'),
        'classes': ('collapse',),
    })

    def save_model(self, request, obj, form, change):
        if change:
            obj.updated_by = request.user
        else:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)

    @admin.display(description=_('Hierarchy'))
    def hierarchy_badge(self, obj):
        kind = classify(obj)
        return colored_badge(HIERARCHY_COLORS.get(kind, '#6b7280'), kind.label)


@admin.register(Bulletin)
class BulletinAdmin(TargetedContentAdmin):
    list_display = ('title', 'date', 'hierarchy_badge', 'published', 'created_at')
    list_filter = ('published', 'date')
    search_fields = ('title', 'content')
    date_hierarchy = 'date'

    def get_fieldsets(self, request, obj=None):
        return (
            (None, {'fields': ('title', 'content', 'date', 'image', 'published')}),
            self.targeting_fieldset,
            self.audit_fieldset,
        )


class SurveyResponseInline(admin.TabularInline):
    model = SurveyResponse
    extra = 0
    fields = ('user', 'answers', 'created_at')
    readonly_fields = ('user', 'answers', 'created_at')
    can_delete = False


@admin.register(Survey)
class SurveyAdmin(TargetedContentAdmin):
    list_display = ('title', 'due_date', 'audience', 'hierarchy_badge', 'published')
    list_filter = ('published', 'audience')
    search_fields = ('title', 'description')
    inlines = [SurveyResponseInline]

    def get_fieldsets(self, request, obj=None):
        return (
            (None, {'fields': ('title', 'description', 'due_date', 'questions', 'audience', 'published')}),
            self.targeting_fieldset,
            self.audit_fieldset,
        )


@admin.register(VotingItem)
class VotingItemAdmin(TargetedContentAdmin):
    list_display = ('title', 'vote_type', 'start_date', 'end_date', 'status_display', 'hierarchy_badge', 'published')
    list_filter = ('published', 'vote_type')
    search_fields = ('title', 'description')

    def get_fieldsets(self, request, obj=None):
        return (
            (None, {'fields': (
                'title', 'description', 'start_date', 'end_date', 'options',
                'target_level', 'vote_type', 'published',
            )}),
            self.targeting_fieldset,
            self.audit_fieldset,
        )

    @admin.display(description=_('Status'))
    def status_display(self, obj):
        return obj.get_status()


@admin.register(Vote)
class VoteAdmin(admin.ModelAdmin):
    list_display = ('voting', 'user', 'option_id', 'created_at')
    list_filter = ('voting',)
    raw_id_fields = ('voting', 'user')
    readonly_fields = ('id', 'created_at')

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Report)
class ReportAdmin(TargetedContentAdmin):
    list_display = ('title', 'report_type', 'status_badge', 'submitted_by', 'hierarchy_badge', 'created_at')
    list_filter = ('status', 'report_type')
    search_fields = ('title', 'description', 'submitted_by__phone')
    list_select_related = ('submitted_by',)
    raw_id_fields = ALL_TARGET_FIELDS + ('submitted_by',)

    def get_fieldsets(self, request, obj=None):
        return (
            (None, {'fields': (
                'title', 'report_type', 'description', 'date', 'status',
                'attachment_name', 'submitted_by',
            )}),
            self.targeting_fieldset,
            self.audit_fieldset,
        )

    @admin.display(description=_('Status'))
    def status_badge(self, obj):
        return colored_badge(REPORT_STATUS_COLORS.get(obj.status, '#6b7280'), obj.get_status_display())


@admin.register(ArchiveDocument)
class ArchiveDocumentAdmin(admin.ModelAdmin):
    list_display = ('title', 'doc_type', 'category', 'date', 'published')
    list_filter = ('published', 'doc_type', 'category')
    search_fields = ('title', 'category')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
