"""
Hierarchy — Service Layer

Traversal helpers (ancestor chain, children, descendants) and the write
paths for hierarchy nodes. Expatriate region creation fans out one
sector national level per sector type; sector node creation derives the
expatriate region from the parent and rejects conflicting input.

@file hierarchy/services.py
"""

import logging
from typing import Any

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, RestrictedError

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_DELETE, AUDIT_ACTION_UPDATE
from core.exceptions import BusinessRuleViolation, DuplicateResourceError, ResourceNotFoundError
from core.services import AuditService

from .branches import (
    EXPATRIATE_REGION,
    SECTOR_NATIONAL_LEVEL,
    Branch,
    BRANCH_LEVELS,
    HierarchyLevel,
    get_level,
)
from .models import ExpatriateRegion, SectorNationalLevel, SectorType
from .validators import code_validator, normalize_code, normalize_name

logger = logging.getLogger('memberhub')


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

class HierarchyService:
    """Read-oriented traversal of the three hierarchy branches."""

    @staticmethod
    def get_node(level: HierarchyLevel, node_id):
        try:
            return level.model.objects.get(pk=node_id)
        except (level.model.DoesNotExist, ValidationError, ValueError):
            raise ResourceNotFoundError(detail=f'{level.model._meta.verbose_name.capitalize()} {node_id} not found.')

    @staticmethod
    def load_with_ancestors(level: HierarchyLevel, node_id):
        """
        Fetch a node together with its whole parent chain in one query.
        Returns None when the node does not exist.
        """
        qs = level.model.objects.all()
        if level.chain_path:
            qs = qs.select_related(level.chain_path)
        try:
            return qs.get(pk=node_id)
        except (level.model.DoesNotExist, ValidationError, ValueError):
            return None

    @classmethod
    def get_ancestor_ids(cls, level: HierarchyLevel, node_id) -> dict[str, Any] | None:
        """
        Map each ancestor level key to the id stored on the parent chain,
        e.g. {'admin_unit': ..., 'locality': ..., 'region': ..., 'national_level': ...}.
        A broken link leaves that key and every key above it as None.
        """
        node = cls.load_with_ancestors(level, node_id)
        if node is None:
            return None

        result = {}
        current = node
        for ancestor in level.ancestors:
            current = getattr(current, ancestor.key) if current is not None else None
            result[ancestor.key] = current.pk if current is not None else None
        return result

    @classmethod
    def get_ancestor_chain(cls, level: HierarchyLevel, node_id) -> list[dict]:
        """Return the full parent chain from branch root to the given node."""
        node = cls.load_with_ancestors(level, node_id)
        if node is None:
            return []

        chain = []
        current, current_level = node, level
        while current is not None:
            chain.insert(0, {
                'id': str(current.pk),
                'name': current.name,
                'code': current.code,
                'level': current_level.key,
            })
            current_level = current_level.parent
            current = current.parent
        return chain

    @staticmethod
    def child_level(level: HierarchyLevel) -> HierarchyLevel | None:
        if level == EXPATRIATE_REGION:
            return SECTOR_NATIONAL_LEVEL
        return level.descendants[0] if level.descendants else None

    @classmethod
    def get_children(cls, level: HierarchyLevel, node_id):
        child = cls.child_level(level)
        if child is None:
            return level.model.objects.none()
        if level == EXPATRIATE_REGION:
            return SectorNationalLevel.objects.filter(expatriate_region_id=node_id).order_by('sector_type')
        return child.model.objects.filter(**{f'{level.key}_id': node_id}).order_by('name')

    @classmethod
    def get_descendant_ids(cls, level: HierarchyLevel, node_id) -> dict[str, list]:
        """
        Every node below ``node_id``, grouped by level key.

        Walks the branch one level at a time until a level comes back
        empty. For an expatriate region the descendants are the sector
        nodes scoped to it.
        """
        if level == EXPATRIATE_REGION:
            return {
                sector_level.key: list(
                    sector_level.model.objects
                    .filter(expatriate_region_id=node_id)
                    .values_list('pk', flat=True)
                )
                for sector_level in BRANCH_LEVELS[Branch.SECTOR]
            }
        return cls._descend(level, [node_id], {})

    @classmethod
    def _descend(cls, level: HierarchyLevel, frontier: list, found: dict[str, list]) -> dict[str, list]:
        if not level.descendants:
            return found
        child = level.descendants[0]
        ids = []
        if frontier:
            ids = list(
                child.model.objects
                .filter(**{f'{level.key}_id__in': frontier})
                .values_list('pk', flat=True)
            )
        found[child.key] = ids
        return cls._descend(child, ids, found)


# ---------------------------------------------------------------------------
# Write side
# ---------------------------------------------------------------------------

def _clean_common_fields(fields: dict[str, Any]) -> dict[str, Any]:
    if 'name' in fields:
        fields['name'] = normalize_name(fields['name'])
        if not fields['name']:
            raise BusinessRuleViolation(detail='Name is required.')
    if 'code' in fields:
        fields['code'] = normalize_code(fields['code'])
        if fields['code'] is not None:
            try:
                code_validator(fields['code'])
            except ValidationError as exc:
                raise BusinessRuleViolation(detail=exc.messages[0])
    return fields


def _save_node(instance, *, actor, action: str, old_values=None):
    instance.updated_by = actor
    try:
        with transaction.atomic():
            instance.save()
    except IntegrityError:
        raise DuplicateResourceError(detail=f'Code {instance.code} is already in use.')
    AuditService.record(instance, action=action, actor=actor, old_values=old_values)
    return instance


class HierarchyNodeService:
    """Create / update / delete for any hierarchy level."""

    @staticmethod
    def _resolve_parent(level: HierarchyLevel, fields: dict[str, Any]):
        parent_level = level.parent
        if parent_level is None:
            return None
        parent = fields.get(parent_level.key)
        if parent is None:
            raise BusinessRuleViolation(
                detail=f'{level.model._meta.verbose_name.capitalize()} requires a {parent_level.model._meta.verbose_name}.',
            )
        if not isinstance(parent, parent_level.model):
            parent = HierarchyService.get_node(parent_level, parent)
        fields[parent_level.key] = parent
        return parent

    @classmethod
    @transaction.atomic
    def create_node(cls, level: HierarchyLevel, *, actor=None, **fields):
        if 'name' not in fields:
            raise BusinessRuleViolation(detail='Name is required.')
        fields = _clean_common_fields(fields)

        if level == EXPATRIATE_REGION:
            return ExpatriateRegionService.create(actor=actor, **fields)
        if level.branch == Branch.SECTOR:
            return SectorHierarchyService.create_node(level, actor=actor, **fields)

        cls._resolve_parent(level, fields)
        instance = level.model(created_by=actor, **fields)
        _save_node(instance, actor=actor, action=AUDIT_ACTION_CREATE)
        logger.info('Created %s %s (%s)', level.key, instance.pk, instance.name)
        return instance

    @classmethod
    @transaction.atomic
    def update_node(cls, level: HierarchyLevel, node_id, *, actor=None, **fields):
        try:
            instance = level.model.objects.select_for_update().get(pk=node_id)
        except level.model.DoesNotExist:
            raise ResourceNotFoundError()

        old_snapshot = AuditService.snapshot(instance)
        fields = _clean_common_fields(fields)

        parent_level = level.parent
        if parent_level is not None and parent_level.key in fields:
            cls._resolve_parent(level, fields)

        reparented = False
        if level.branch == Branch.SECTOR:
            # the expatriate region of a sector node is never changed directly
            parent = fields.get(parent_level.key) if parent_level else None
            anchor = parent if parent is not None else instance
            SectorHierarchyService.check_expatriate_region(anchor, fields.pop('expatriate_region', None))
            if parent_level is None:
                # sector roots carry the sector type of their subtree
                reparented = fields.get('sector_type', instance.sector_type) != instance.sector_type
            else:
                SectorHierarchyService.check_sector_type(anchor, fields.get('sector_type'))
            if parent is not None:
                fields['expatriate_region_id'] = parent.expatriate_region_id
                fields['sector_type'] = parent.sector_type
                reparented = True

        for field, value in fields.items():
            setattr(instance, field, value)
        instance = _save_node(instance, actor=actor, action=AUDIT_ACTION_UPDATE, old_values=old_snapshot)
        if reparented:
            SectorHierarchyService.sync_descendants(level, instance)
        return instance

    @staticmethod
    @transaction.atomic
    def delete_node(level: HierarchyLevel, node_id, *, actor=None) -> None:
        instance = HierarchyService.get_node(level, node_id)
        snapshot = AuditService.snapshot(instance)
        try:
            instance.delete()
        except (ProtectedError, RestrictedError):
            raise BusinessRuleViolation(
                detail='This node still has child nodes or is targeted by existing content and cannot be deleted.',
            )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name=level.model.__name__,
            object_id=str(node_id),
            old_values=snapshot,
        )


class ExpatriateRegionService:
    """Expatriate regions and the sector roots created alongside them."""

    @staticmethod
    @transaction.atomic
    def create(*, actor=None, **fields) -> ExpatriateRegion:
        fields = _clean_common_fields(fields)
        if not fields.get('name'):
            raise BusinessRuleViolation(detail='Name is required.')

        region = ExpatriateRegion(created_by=actor, **fields)
        _save_node(region, actor=actor, action=AUDIT_ACTION_CREATE)
        logger.info('Created expatriate region %s (%s)', region.pk, region.name)

        ExpatriateRegionService.create_sectors(region, actor=actor)
        return region

    @staticmethod
    def create_sectors(region: ExpatriateRegion, *, actor=None) -> list[SectorNationalLevel]:
        """
        Create one SectorNationalLevel per sector type under ``region``.
        A failure here is logged and leaves the region in place.
        """
        created = []
        try:
            with transaction.atomic():
                for sector_type in SectorType:
                    sector = SectorNationalLevel.objects.create(
                        name=f'{region.name} - {sector_type.label}',
                        sector_type=sector_type,
                        expatriate_region=region,
                        created_by=actor,
                    )
                    created.append(sector)
        except (IntegrityError, ValidationError):
            logger.exception('Sector creation failed for expatriate region %s', region.pk)
            return []

        logger.info('Created %d sectors for expatriate region %s', len(created), region.name)
        return created


class SectorHierarchyService:
    """Sector-branch writes with expatriate region inheritance."""

    @staticmethod
    def check_expatriate_region(parent, expatriate_region) -> None:
        if expatriate_region is None:
            return
        supplied_id = getattr(expatriate_region, 'pk', expatriate_region)
        if str(supplied_id) != str(parent.expatriate_region_id):
            raise BusinessRuleViolation(
                detail=f'Expatriate region conflicts with parent {parent._meta.verbose_name}.',
            )

    @staticmethod
    def check_sector_type(parent, sector_type) -> None:
        if sector_type and sector_type != parent.sector_type:
            raise BusinessRuleViolation(
                detail=f'Sector type conflicts with parent {parent._meta.verbose_name}.',
            )

    @staticmethod
    def sync_descendants(level: HierarchyLevel, node) -> int:
        """
        Push ``node``'s expatriate region and sector type down to every
        node below it. Returns the number of rows updated.
        """
        updated = 0
        for key, ids in HierarchyService.get_descendant_ids(level, node.pk).items():
            if not ids:
                continue
            updated += get_level(key).model.objects.filter(pk__in=ids).update(
                expatriate_region_id=node.expatriate_region_id,
                sector_type=node.sector_type,
            )
        if updated:
            logger.info(
                'Moved %d nodes below %s %s to expatriate region %s',
                updated, level.key, node.pk, node.expatriate_region_id,
            )
        return updated

    @classmethod
    @transaction.atomic
    def create_node(cls, level: HierarchyLevel, *, actor=None, **fields):
        expatriate_region = fields.pop('expatriate_region', None)
        if expatriate_region is not None and not isinstance(expatriate_region, ExpatriateRegion):
            expatriate_region = HierarchyService.get_node(EXPATRIATE_REGION, expatriate_region)

        if level == SECTOR_NATIONAL_LEVEL:
            if expatriate_region is None:
                raise BusinessRuleViolation(detail='Sector national level requires an expatriate region.')
            if not fields.get('sector_type'):
                raise BusinessRuleViolation(detail='Sector national level requires a sector type.')
        else:
            parent = HierarchyNodeService._resolve_parent(level, fields)
            cls.check_expatriate_region(parent, expatriate_region)
            cls.check_sector_type(parent, fields.get('sector_type'))
            expatriate_region = parent.expatriate_region
            fields['sector_type'] = parent.sector_type

        instance = level.model(expatriate_region=expatriate_region, created_by=actor, **fields)
        _save_node(instance, actor=actor, action=AUDIT_ACTION_CREATE)
        logger.info('Created %s %s under expatriate region %s', level.key, instance.pk, expatriate_region.pk)
        return instance
