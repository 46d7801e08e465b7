"""
Visibility — QuerySets

QuerySet methods that apply the filter builders to any targeted
content model.

@file visibility/querysets.py
"""

from django.db import models

from .filters import build_content_filter, build_management_filter, build_report_filter
from .resolver import ResolvedHierarchy, UserHierarchyResolver


def _resolved(viewer) -> ResolvedHierarchy:
    if isinstance(viewer, ResolvedHierarchy):
        return viewer
    return UserHierarchyResolver.resolve_user(viewer)


class TargetedQuerySet(models.QuerySet):
    """For models carrying the eleven target fields and a ``published`` flag."""

    def published(self):
        return self.filter(published=True)

    def visible_to(self, viewer):
        """Published content ``viewer`` (a user or a ResolvedHierarchy) may read."""
        return self.published().filter(build_content_filter(_resolved(viewer)))

    def manageable_by(self, user):
        return self.filter(build_management_filter(user))


class ReportQuerySet(models.QuerySet):
    """Reports have no publication step; visibility is scope plus authorship."""

    def visible_to(self, user):
        return self.filter(build_report_filter(user))

    def manageable_by(self, user):
        return self.filter(build_management_filter(user))
