"""
Visibility — Targeting Classifier

Decides which hierarchy branch a content item is aimed at, from its
eleven target fields, and rejects targeting that mixes branches.

Targets may be given as a mapping (``{'target_region': <id>}`` or
``{'target_region_id': <id>}``, model instances or raw ids) or as any
object exposing the target attributes, typically a content model
instance. Empty values (None, '', 0) count as "not set".

@file visibility/targeting.py
"""

from collections.abc import Mapping

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.exceptions import HierarchyTargetingError, ResourceNotFoundError
from hierarchy.branches import ALL_LEVELS, BRANCH_LEVELS, Branch, HierarchyLevel


class HierarchyKind(models.TextChoices):
    ORIGINAL = 'ORIGINAL', _('Original')
    EXPATRIATE = 'EXPATRIATE', _('Expatriate')
    SECTOR = 'SECTOR', _('Sector')
    MIXED = 'MIXED', _('Mixed')
    GLOBAL = 'GLOBAL', _('Global')


def target_value(targets, level: HierarchyLevel):
    """Raw value of one target field, or None."""
    field = level.target_field
    if isinstance(targets, Mapping):
        value = targets.get(field)
        if not value:
            value = targets.get(f'{field}_id')
    else:
        value = getattr(targets, f'{field}_id', None)
    return value or None


def target_id(targets, level: HierarchyLevel):
    value = target_value(targets, level)
    return getattr(value, 'pk', value)


def branch_is_targeted(targets, branch: str) -> bool:
    return any(target_value(targets, level) for level in BRANCH_LEVELS[branch])


def classify(targets) -> HierarchyKind:
    has_original = branch_is_targeted(targets, Branch.ORIGINAL)
    has_expatriate = branch_is_targeted(targets, Branch.EXPATRIATE)
    has_sector = branch_is_targeted(targets, Branch.SECTOR)

    if has_original + has_expatriate + has_sector > 1:
        return HierarchyKind.MIXED
    if has_expatriate:
        return HierarchyKind.EXPATRIATE
    if has_sector:
        return HierarchyKind.SECTOR
    if has_original:
        return HierarchyKind.ORIGINAL
    return HierarchyKind.GLOBAL


def validate_exclusive(targets) -> HierarchyKind:
    """Classify ``targets``, raising HierarchyTargetingError for MIXED."""
    kind = classify(targets)
    if kind == HierarchyKind.MIXED:
        raise HierarchyTargetingError()
    return kind


def validate_targets_exist(targets) -> None:
    """Every set target must reference an existing node of its level."""
    for level in ALL_LEVELS:
        value = target_value(targets, level)
        if value is None or isinstance(value, level.model):
            continue
        try:
            exists = level.model.objects.filter(pk=value).exists()
        except (ValidationError, ValueError):
            exists = False
        if not exists:
            raise ResourceNotFoundError(
                detail=f'{level.model._meta.verbose_name.capitalize()} {value} not found.',
            )


def most_specific_target(targets) -> tuple[HierarchyLevel, object] | None:
    """
    The single (level, id) a content item is pinned to, or None for
    GLOBAL content. Only meaningful once MIXED has been ruled out.
    """
    for level in ALL_LEVELS:
        value = target_id(targets, level)
        if value:
            return level, value
    return None
