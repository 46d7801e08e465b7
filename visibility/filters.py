"""
Visibility — Filter Builders

Pure functions producing ``Q`` predicates over content (and users):

  build_content_filter     what a member may read: content pinned to
                           their node or any ancestor, plus GLOBAL content
  build_management_filter  what an admin may manage: their node and every
                           node below it
  build_report_filter      reports: management scope or own submissions
  build_user_management_filter
                           the members an admin may manage

An empty ``Q()`` means "no restriction"; ``NOTHING`` matches no row.

@file visibility/filters.py
"""

import operator
from collections.abc import Callable
from functools import reduce

from django.db.models import Q

from hierarchy.branches import (
    ADMIN_UNIT,
    ALL_TARGET_FIELDS,
    BRANCH_LEVELS,
    DISTRICT,
    EXPATRIATE_REGION,
    LOCALITY,
    NATIONAL_LEVEL,
    REGION,
    Branch,
    HierarchyLevel,
    get_level,
)
from hierarchy.services import HierarchyService
from users.models import User

from .resolver import ResolvedHierarchy, UserHierarchyResolver

NOTHING = Q(pk__in=[])

# Node each scoped admin level administers.
ADMIN_LEVEL_NODES: dict[str, HierarchyLevel] = {
    User.AdminLevel.NATIONAL_LEVEL: NATIONAL_LEVEL,
    User.AdminLevel.REGION: REGION,
    User.AdminLevel.LOCALITY: LOCALITY,
    User.AdminLevel.ADMIN_UNIT: ADMIN_UNIT,
    User.AdminLevel.DISTRICT: DISTRICT,
    User.AdminLevel.EXPATRIATE_REGION: EXPATRIATE_REGION,
}


def global_clause() -> Q:
    """Content with no target at all."""
    return reduce(operator.and_, (Q(**{f'{field}__isnull': True}) for field in ALL_TARGET_FIELDS))


def exact_level_clause(level: HierarchyLevel, node_id) -> Q:
    """Content pinned to ``node_id`` itself, not to anything below it."""
    clause = Q(**{f'{level.target_field}_id': node_id})
    for more_specific in level.descendants:
        clause &= Q(**{f'{more_specific.target_field}__isnull': True})
    return clause


def build_content_filter(resolved: ResolvedHierarchy) -> Q:
    """
    Cascading read filter for ``resolved``.

    Matches content pinned exactly to any populated level of the active
    branch, plus GLOBAL content. The caller adds ``published=True``.
    """
    if resolved.bypass:
        return Q()

    clauses = [
        exact_level_clause(level, node_id)
        for level, node_id in resolved.branch_positions(resolved.active_hierarchy)
    ]
    clauses.append(global_clause())
    return reduce(operator.or_, clauses)


def _authenticated(user) -> bool:
    return user is not None and user.is_authenticated


def management_scope(
    user,
    field_of: Callable[[HierarchyLevel], str] = operator.attrgetter('target_field'),
) -> Q | None:
    """
    Downward scope of a scoped admin: their own node and every
    descendant, as a predicate on the fields named by ``field_of``.
    None when the admin has no node to anchor the scope on.
    """
    if user.admin_level == User.AdminLevel.EXPATRIATE_GENERAL:
        levels = BRANCH_LEVELS[Branch.EXPATRIATE] + BRANCH_LEVELS[Branch.SECTOR]
        return reduce(operator.or_, (Q(**{f'{field_of(level)}__isnull': False}) for level in levels))

    level = ADMIN_LEVEL_NODES.get(user.admin_level)
    if level is None:
        return None

    node_id = UserHierarchyResolver.resolve_user(user).get(level)
    if not node_id:
        return None

    scope = Q(**{f'{field_of(level)}_id': node_id})
    for key, ids in HierarchyService.get_descendant_ids(level, node_id).items():
        if ids:
            scope |= Q(**{f'{field_of(get_level(key))}_id__in': ids})
    return scope


def build_management_filter(user) -> Q:
    """Content ``user`` may manage. Members fall back to what they can read."""
    if not _authenticated(user):
        return NOTHING
    if user.bypasses_hierarchy:
        return Q()
    if user.admin_level == User.AdminLevel.USER:
        return build_content_filter(UserHierarchyResolver.resolve_user(user))

    scope = management_scope(user)
    return scope if scope is not None else NOTHING


def build_report_filter(user) -> Q:
    """Reports ``user`` may see: their management scope and their own submissions."""
    if not _authenticated(user):
        return NOTHING
    if user.bypasses_hierarchy:
        return Q()

    own = Q(submitted_by=user)
    if user.admin_level == User.AdminLevel.USER:
        return own

    scope = management_scope(user)
    return own if scope is None else scope | own


def build_user_management_filter(admin) -> Q:
    """Members ``admin`` may manage; everyone may see themselves."""
    if not _authenticated(admin):
        return NOTHING
    if admin.bypasses_hierarchy:
        return Q()

    own = Q(pk=admin.pk)
    if admin.admin_level == User.AdminLevel.USER:
        return own

    scope = management_scope(admin, field_of=operator.attrgetter('user_field'))
    return own if scope is None else scope | own


def can_manage(user, obj) -> bool:
    """
    Whether ``obj`` falls inside ``user``'s management scope. Members
    only manage what they created.
    """
    if not _authenticated(user):
        return False
    if user.bypasses_hierarchy:
        return True
    if isinstance(obj, User):
        return User.objects.filter(build_user_management_filter(user), pk=obj.pk).exists()
    if user.admin_level == User.AdminLevel.USER:
        return obj.created_by_id == user.pk
    return type(obj)._default_manager.filter(build_management_filter(user), pk=obj.pk).exists()
