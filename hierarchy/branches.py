"""
Hierarchy — Branch & Level Tables

Typed description of every hierarchy level. Each branch is an ordered
tuple of ``HierarchyLevel`` descriptors, most specific first, so code
that walks a branch never builds field names from strings.

The same level key is used for:
  * the model's foreign key to that level (``District.admin_unit``),
  * the user position field (``User.admin_unit``),
  * the content target field, prefixed with ``target_``.

@file hierarchy/branches.py
"""

from dataclasses import dataclass

from django.apps import apps
from django.db import models
from django.utils.translation import gettext_lazy as _


class Branch(models.TextChoices):
    ORIGINAL = 'ORIGINAL', _('Original')
    EXPATRIATE = 'EXPATRIATE', _('Expatriate')
    SECTOR = 'SECTOR', _('Sector')


@dataclass(frozen=True)
class HierarchyLevel:
    key: str
    branch: str
    model_name: str

    @property
    def model(self):
        return apps.get_model('hierarchy', self.model_name)

    @property
    def user_field(self) -> str:
        return self.key

    @property
    def target_field(self) -> str:
        return f'target_{self.key}'

    @property
    def position(self) -> int:
        """Index in the branch, 0 being the most specific level."""
        return BRANCH_LEVELS[self.branch].index(self)

    @property
    def parent(self) -> 'HierarchyLevel | None':
        levels = BRANCH_LEVELS[self.branch]
        index = levels.index(self)
        return levels[index + 1] if index + 1 < len(levels) else None

    @property
    def ancestors(self) -> tuple['HierarchyLevel', ...]:
        """Less specific levels of the branch, nearest first."""
        return BRANCH_LEVELS[self.branch][self.position + 1:]

    @property
    def descendants(self) -> tuple['HierarchyLevel', ...]:
        """More specific levels of the branch, nearest first."""
        return tuple(reversed(BRANCH_LEVELS[self.branch][:self.position]))

    @property
    def chain_path(self) -> str | None:
        """select_related path covering every ancestor, e.g. 'admin_unit__locality__region__national_level'."""
        keys = [level.key for level in self.ancestors]
        return '__'.join(keys) if keys else None


DISTRICT = HierarchyLevel('district', Branch.ORIGINAL, 'District')
ADMIN_UNIT = HierarchyLevel('admin_unit', Branch.ORIGINAL, 'AdminUnit')
LOCALITY = HierarchyLevel('locality', Branch.ORIGINAL, 'Locality')
REGION = HierarchyLevel('region', Branch.ORIGINAL, 'Region')
NATIONAL_LEVEL = HierarchyLevel('national_level', Branch.ORIGINAL, 'NationalLevel')

EXPATRIATE_REGION = HierarchyLevel('expatriate_region', Branch.EXPATRIATE, 'ExpatriateRegion')

SECTOR_DISTRICT = HierarchyLevel('sector_district', Branch.SECTOR, 'SectorDistrict')
SECTOR_ADMIN_UNIT = HierarchyLevel('sector_admin_unit', Branch.SECTOR, 'SectorAdminUnit')
SECTOR_LOCALITY = HierarchyLevel('sector_locality', Branch.SECTOR, 'SectorLocality')
SECTOR_REGION = HierarchyLevel('sector_region', Branch.SECTOR, 'SectorRegion')
SECTOR_NATIONAL_LEVEL = HierarchyLevel('sector_national_level', Branch.SECTOR, 'SectorNationalLevel')

BRANCH_LEVELS: dict[str, tuple[HierarchyLevel, ...]] = {
    Branch.ORIGINAL: (DISTRICT, ADMIN_UNIT, LOCALITY, REGION, NATIONAL_LEVEL),
    Branch.EXPATRIATE: (EXPATRIATE_REGION,),
    Branch.SECTOR: (SECTOR_DISTRICT, SECTOR_ADMIN_UNIT, SECTOR_LOCALITY, SECTOR_REGION, SECTOR_NATIONAL_LEVEL),
}

ALL_LEVELS: tuple[HierarchyLevel, ...] = (
    BRANCH_LEVELS[Branch.ORIGINAL] + BRANCH_LEVELS[Branch.EXPATRIATE] + BRANCH_LEVELS[Branch.SECTOR]
)

LEVELS_BY_KEY: dict[str, HierarchyLevel] = {level.key: level for level in ALL_LEVELS}

ALL_TARGET_FIELDS: tuple[str, ...] = tuple(level.target_field for level in ALL_LEVELS)
ALL_USER_FIELDS: tuple[str, ...] = tuple(level.user_field for level in ALL_LEVELS)


def get_level(key: str) -> HierarchyLevel:
    try:
        return LEVELS_BY_KEY[key]
    except KeyError:
        raise LookupError(f'Unknown hierarchy level: {key}') from None
