"""
Hierarchy — Models

The three branches of the organisational hierarchy:

  ORIGINAL    NationalLevel → Region → Locality → AdminUnit → District
  EXPATRIATE  ExpatriateRegion (flat)
  SECTOR      SectorNationalLevel → SectorRegion → SectorLocality
              → SectorAdminUnit → SectorDistrict

Every level is its own table with a typed parent foreign key, so a node
can only ever point at a node of the level directly above it. Sector
nodes additionally carry the expatriate region they belong to and one
of four sector types.

@file hierarchy/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel

from .validators import code_validator, normalize_code, normalize_name


class SectorType(models.TextChoices):
    SOCIAL = 'SOCIAL', _('Social')
    ECONOMIC = 'ECONOMIC', _('Economic')
    ORGANIZATIONAL = 'ORGANIZATIONAL', _('Organizational')
    POLITICAL = 'POLITICAL', _('Political')


# ---------------------------------------------------------------------------
# Abstract bases
# ---------------------------------------------------------------------------

class HierarchyNode(BaseModel):
    """
    Common fields of every hierarchy node.

    ``parent_field`` names the foreign key to the level above, or None for
    the root of a branch.
    """

    parent_field: str | None = None

    name = models.CharField(_('name'), max_length=150)
    code = models.CharField(
        _('code'), max_length=30,
        unique=True, null=True, blank=True,
        validators=[code_validator],
    )
    description = models.TextField(_('description'), blank=True, default='')
    active = models.BooleanField(_('active'), default=True, db_index=True)

    class Meta:
        abstract = True
        ordering = ['name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.name = normalize_name(self.name)
        self.code = normalize_code(self.code)
        super().save(*args, **kwargs)

    @property
    def parent(self):
        if self.parent_field is None:
            return None
        return getattr(self, self.parent_field)

    @property
    def full_path(self) -> str:
        """Names from the branch root down to this node, e.g. 'National > North > Town'."""
        parts = [self.name]
        current = self.parent
        while current is not None:
            parts.insert(0, current.name)
            current = current.parent
        return ' > '.join(parts)


class SectorNode(HierarchyNode):
    """
    Sector-branch node, scoped to one expatriate region.

    Children inherit both ``expatriate_region`` and ``sector_type`` from
    their parent when they are not given explicitly.
    """

    sector_type = models.CharField(
        _('sector type'), max_length=16,
        choices=SectorType.choices, db_index=True,
    )
    expatriate_region = models.ForeignKey(
        'hierarchy.ExpatriateRegion',
        on_delete=models.CASCADE,
        verbose_name=_('expatriate region'),
    )

    class Meta(HierarchyNode.Meta):
        abstract = True

    def save(self, *args, **kwargs):
        parent = self.parent
        if parent is not None:
            if not self.expatriate_region_id:
                self.expatriate_region_id = parent.expatriate_region_id
            if not self.sector_type:
                self.sector_type = parent.sector_type
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# ORIGINAL branch
# ---------------------------------------------------------------------------

class NationalLevel(HierarchyNode):

    class Meta(HierarchyNode.Meta):
        verbose_name = _('national level')
        verbose_name_plural = _('national levels')


class Region(HierarchyNode):
    parent_field = 'national_level'

    national_level = models.ForeignKey(
        NationalLevel,
        null=True, blank=True,
        on_delete=models.RESTRICT,
        related_name='regions',
        verbose_name=_('national level'),
    )

    class Meta(HierarchyNode.Meta):
        verbose_name = _('region')
        verbose_name_plural = _('regions')


class Locality(HierarchyNode):
    parent_field = 'region'

    region = models.ForeignKey(
        Region,
        null=True, blank=True,
        on_delete=models.RESTRICT,
        related_name='localities',
        verbose_name=_('region'),
    )

    class Meta(HierarchyNode.Meta):
        verbose_name = _('locality')
        verbose_name_plural = _('localities')


class AdminUnit(HierarchyNode):
    parent_field = 'locality'

    locality = models.ForeignKey(
        Locality,
        null=True, blank=True,
        on_delete=models.RESTRICT,
        related_name='admin_units',
        verbose_name=_('locality'),
    )

    class Meta(HierarchyNode.Meta):
        verbose_name = _('administrative unit')
        verbose_name_plural = _('administrative units')


class District(HierarchyNode):
    parent_field = 'admin_unit'

    admin_unit = models.ForeignKey(
        AdminUnit,
        null=True, blank=True,
        on_delete=models.RESTRICT,
        related_name='districts',
        verbose_name=_('administrative unit'),
    )

    class Meta(HierarchyNode.Meta):
        verbose_name = _('district')
        verbose_name_plural = _('districts')


# ---------------------------------------------------------------------------
# EXPATRIATE branch
# ---------------------------------------------------------------------------

class ExpatriateRegion(HierarchyNode):

    class Meta(HierarchyNode.Meta):
        verbose_name = _('expatriate region')
        verbose_name_plural = _('expatriate regions')


# ---------------------------------------------------------------------------
# SECTOR branch
# ---------------------------------------------------------------------------

class SectorNationalLevel(SectorNode):

    class Meta(SectorNode.Meta):
        verbose_name = _('sector national level')
        verbose_name_plural = _('sector national levels')


class SectorRegion(SectorNode):
    parent_field = 'sector_national_level'

    sector_national_level = models.ForeignKey(
        SectorNationalLevel,
        null=True, blank=True,
        on_delete=models.RESTRICT,
        related_name='sector_regions',
        verbose_name=_('sector national level'),
    )

    class Meta(SectorNode.Meta):
        verbose_name = _('sector region')
        verbose_name_plural = _('sector regions')


class SectorLocality(SectorNode):
    parent_field = 'sector_region'

    sector_region = models.ForeignKey(
        SectorRegion,
        null=True, blank=True,
        on_delete=models.RESTRICT,
        related_name='sector_localities',
        verbose_name=_('sector region'),
    )

    class Meta(SectorNode.Meta):
        verbose_name = _('sector locality')
        verbose_name_plural = _('sector localities')


class SectorAdminUnit(SectorNode):
    parent_field = 'sector_locality'

    sector_locality = models.ForeignKey(
        SectorLocality,
        null=True, blank=True,
        on_delete=models.RESTRICT,
        related_name='sector_admin_units',
        verbose_name=_('sector locality'),
    )

    class Meta(SectorNode.Meta):
        verbose_name = _('sector administrative unit')
        verbose_name_plural = _('sector administrative units')


class SectorDistrict(SectorNode):
    parent_field = 'sector_admin_unit'

    sector_admin_unit = models.ForeignKey(
        SectorAdminUnit,
        null=True, blank=True,
        on_delete=models.RESTRICT,
        related_name='sector_districts',
        verbose_name=_('sector administrative unit'),
    )

    class Meta(SectorNode.Meta):
        verbose_name = _('sector district')
        verbose_name_plural = _('sector districts')
