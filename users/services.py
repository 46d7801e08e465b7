"""
Users — Service Layer

All user-related business logic. No HTTP context: services receive
plain Python arguments and raise typed exceptions.

Hierarchy positions are stored with their ancestors filled in and are
checked for consistency against the node parent chain.

@file users/services.py
"""

import logging
from typing import Any

from django.db import transaction

from core.constants import AUDIT_ACTION_LOGIN, AUDIT_ACTION_STATUS_CHANGE
from core.exceptions import (
    BusinessRuleViolation,
    DuplicateResourceError,
    InvalidStateTransition,
    ResourceNotFoundError,
)
from core.services import AuditService
from hierarchy.branches import BRANCH_LEVELS, Branch
from hierarchy.services import HierarchyService
from visibility.filters import build_user_management_filter
from visibility.resolver import UserHierarchyResolver

from .models import User

logger = logging.getLogger('memberhub')


def _position_id(value):
    return getattr(value, 'pk', value)


# ---------------------------------------------------------------------------
# User service
# ---------------------------------------------------------------------------

class UserService:
    """CRUD, lifecycle and hierarchy membership for User accounts."""

    VALID_STATUS_TRANSITIONS = {
        'PENDING': {'ACTIVE', 'REJECTED'},
        'ACTIVE': {'SUSPENDED'},
        'SUSPENDED': {'ACTIVE'},
        'REJECTED': set(),
    }

    @staticmethod
    def complete_positions(positions: dict[str, Any]) -> dict[str, Any]:
        """
        Fill the ancestors of the most specific node given in each branch
        and reject ancestors that contradict the parent chain.

        ``positions`` maps user position fields to node ids (or nodes);
        the returned dict maps ``<field>_id`` to ids.
        """
        result = {f'{key}_id': _position_id(value) for key, value in positions.items()}

        for branch in (Branch.ORIGINAL, Branch.SECTOR):
            levels = BRANCH_LEVELS[branch]
            anchor = next((level for level in levels if result.get(f'{level.key}_id')), None)
            if anchor is None:
                continue
            chain = HierarchyService.get_ancestor_ids(anchor, result[f'{anchor.key}_id'])
            if chain is None:
                raise ResourceNotFoundError(
                    detail=f'{anchor.model._meta.verbose_name.capitalize()} not found.',
                )
            for key, ancestor_id in chain.items():
                given = result.get(f'{key}_id')
                if given and ancestor_id and str(given) != str(ancestor_id):
                    raise BusinessRuleViolation(
                        detail=f'{anchor.model._meta.verbose_name.capitalize()} does not belong to the selected {key.replace("_", " ")}.',
                    )
                if ancestor_id and not given:
                    result[f'{key}_id'] = ancestor_id
        return result

    @classmethod
    def _split_positions(cls, fields: dict[str, Any]) -> dict[str, Any]:
        positions = {key: fields.pop(key) for key in User.POSITION_FIELDS if key in fields}
        return cls.complete_positions(positions) if positions else {}

    @classmethod
    @transaction.atomic
    def create_user(
        cls,
        *,
        phone: str,
        password: str | None = None,
        actor=None,
        **extra_fields,
    ) -> User:
        if User.objects.filter(phone=phone).exists():
            raise DuplicateResourceError(detail=f'Phone {phone} already registered.')

        email = extra_fields.get('email')
        if email and User.objects.filter(email=email).exists():
            raise DuplicateResourceError(detail=f'Email {email} already registered.')

        extra_fields.update(cls._split_positions(extra_fields))
        user = User.objects.create_user(phone=phone, password=password, created_by=actor, **extra_fields)
        logger.info('Created user %s (%s)', user.pk, user.admin_level)
        return user

    @classmethod
    @transaction.atomic
    def update_user(cls, *, user_id, actor=None, **fields) -> User:
        try:
            user = User.objects.select_for_update().get(pk=user_id)
        except User.DoesNotExist:
            raise ResourceNotFoundError()

        positions = {key: fields.pop(key) for key in User.POSITION_FIELDS if key in fields}
        if positions:
            # a new position replaces the whole branch it belongs to
            for branch_levels in BRANCH_LEVELS.values():
                if any(level.key in positions for level in branch_levels):
                    for level in branch_levels:
                        positions.setdefault(level.key, None)
            fields.update(cls.complete_positions(positions))

        for field, value in fields.items():
            if field not in ('id', 'pk', 'password'):
                setattr(user, field, value)

        user.updated_by = actor
        user._current_user = actor
        user.save()
        return user

    @classmethod
    @transaction.atomic
    def change_status(cls, *, user_id, new_status: str, actor=None, reason: str = '') -> User:
        try:
            user = User.objects.select_for_update().get(pk=user_id)
        except User.DoesNotExist:
            raise ResourceNotFoundError()

        allowed = cls.VALID_STATUS_TRANSITIONS.get(user.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                detail=f'Cannot transition from {user.status} to {new_status}.',
            )

        old_status = user.status
        user.status = new_status
        user.updated_by = actor
        user._current_user = actor
        user.save(update_fields=['status', 'updated_by', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='User',
            object_id=str(user.pk),
            old_values={'status': old_status},
            new_values={'status': new_status, 'reason': reason},
        )
        return user

    # ----- hierarchy membership -----

    @staticmethod
    def get_memberships(user: User) -> list[dict]:
        """
        One entry per branch the user belongs to, with the path from the
        branch root down to the user's most specific node.
        """
        resolved = UserHierarchyResolver.resolve_user(user)
        memberships = []
        for branch in Branch:
            pinned = resolved.most_specific(branch)
            if pinned is None:
                continue
            level, node_id = pinned
            memberships.append({
                'hierarchy': branch.value,
                'level': level.key,
                'node_id': str(node_id),
                'path': HierarchyService.get_ancestor_chain(level, node_id),
                'active': branch == resolved.active_hierarchy,
            })
        return memberships

    @staticmethod
    @transaction.atomic
    def set_active_hierarchy(user: User, branch: str) -> User:
        if not any(getattr(user, f'{level.key}_id') for level in BRANCH_LEVELS[branch]):
            raise BusinessRuleViolation(detail=f'You have no membership in the {branch} hierarchy.')
        user.active_hierarchy = branch
        user._current_user = user
        user.save(update_fields=['active_hierarchy', 'updated_at'])
        logger.info('User %s switched active hierarchy to %s', user.pk, branch)
        return user

    @staticmethod
    def get_manageable_users(admin):
        return User.objects.with_positions().filter(build_user_management_filter(admin))


# ---------------------------------------------------------------------------
# Auth service
# ---------------------------------------------------------------------------

class AuthService:

    @staticmethod
    def log_auth_event(*, action: str = AUDIT_ACTION_LOGIN, user=None, ip_address=None, user_agent=''):
        AuditService.log(
            actor=user,
            action=action,
            model_name='User',
            object_id=str(user.pk) if user else '',
            ip_address=ip_address,
            user_agent=user_agent,
        )
