"""
Visibility — User Hierarchy Resolver

Turns a user's stored hierarchy fields into a ``ResolvedHierarchy``:
every ancestor that can be derived from the most specific stored node
is filled in and the active branch is always set.

Resolution never raises. A missing user resolves to an empty position
(GLOBAL content only); a broken parent chain keeps whatever the user
row stores and is logged.

@file visibility/resolver.py
"""

import logging
from dataclasses import dataclass, fields
from typing import Any

from django.core.exceptions import ValidationError

from hierarchy.branches import ALL_USER_FIELDS, BRANCH_LEVELS, Branch, HierarchyLevel
from hierarchy.services import HierarchyService
from users.models import User

logger = logging.getLogger('memberhub')


@dataclass(frozen=True)
class ResolvedHierarchy:
    user_id: Any = None
    admin_level: str = User.AdminLevel.USER
    active_hierarchy: str = Branch.ORIGINAL
    bypass: bool = False

    national_level: Any = None
    region: Any = None
    locality: Any = None
    admin_unit: Any = None
    district: Any = None
    expatriate_region: Any = None
    sector_national_level: Any = None
    sector_region: Any = None
    sector_locality: Any = None
    sector_admin_unit: Any = None
    sector_district: Any = None

    @classmethod
    def anonymous(cls) -> 'ResolvedHierarchy':
        return cls()

    def get(self, level: HierarchyLevel):
        return getattr(self, level.user_field)

    def positions(self) -> dict[str, Any]:
        return {field: getattr(self, field) for field in ALL_USER_FIELDS}

    def branch_positions(self, branch: str) -> list[tuple[HierarchyLevel, Any]]:
        """Populated (level, id) pairs of ``branch``, most specific first."""
        return [(level, self.get(level)) for level in BRANCH_LEVELS[branch] if self.get(level)]

    def most_specific(self, branch: str | None = None) -> tuple[HierarchyLevel, Any] | None:
        populated = self.branch_positions(branch or self.active_hierarchy)
        return populated[0] if populated else None

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def detect_active_hierarchy(positions: dict[str, Any]) -> str:
    """ORIGINAL, then SECTOR, then EXPATRIATE, by populated fields; ORIGINAL when nothing is set."""
    for branch in (Branch.ORIGINAL, Branch.SECTOR, Branch.EXPATRIATE):
        if any(positions.get(level.key) for level in BRANCH_LEVELS[branch]):
            return branch
    return Branch.ORIGINAL


class UserHierarchyResolver:
    """Builds ResolvedHierarchy values for the filter builders."""

    DERIVED_BRANCHES = (Branch.ORIGINAL, Branch.SECTOR)

    @classmethod
    def resolve(cls, user_id) -> ResolvedHierarchy:
        if user_id is None:
            return ResolvedHierarchy.anonymous()
        try:
            user = User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValidationError, ValueError):
            logger.info('Hierarchy resolution for unknown user %s; global content only', user_id)
            return ResolvedHierarchy.anonymous()
        return cls.resolve_user(user)

    @classmethod
    def resolve_user(cls, user) -> ResolvedHierarchy:
        if user is None or not user.is_authenticated:
            return ResolvedHierarchy.anonymous()

        positions = {field: getattr(user, f'{field}_id') for field in ALL_USER_FIELDS}
        active = user.active_hierarchy or detect_active_hierarchy(positions)

        if user.bypasses_hierarchy:
            return ResolvedHierarchy(
                user_id=user.pk,
                admin_level=user.admin_level,
                active_hierarchy=active,
                bypass=True,
                **positions,
            )

        for branch in cls.DERIVED_BRANCHES:
            cls._derive_ancestors(branch, positions, user_id=user.pk)

        return ResolvedHierarchy(
            user_id=user.pk,
            admin_level=user.admin_level,
            active_hierarchy=active,
            **positions,
        )

    @staticmethod
    def _derive_ancestors(branch: str, positions: dict[str, Any], *, user_id=None) -> None:
        """
        Fill null ancestors of the most specific stored node of ``branch``
        in place. Stored values are never overwritten.
        """
        levels = BRANCH_LEVELS[branch]
        anchor = next((level for level in levels if positions.get(level.key)), None)
        if anchor is None:
            return
        if all(positions.get(level.key) for level in anchor.ancestors):
            return

        chain = HierarchyService.get_ancestor_ids(anchor, positions[anchor.key])
        if chain is None:
            logger.warning(
                'User %s references missing %s %s; keeping stored hierarchy values',
                user_id, anchor.key, positions[anchor.key],
            )
            return

        for key, value in chain.items():
            if positions.get(key) is None and value is not None:
                positions[key] = value

