"""
Users — Models

Custom User model with UUID PK, phone-based auth, status lifecycle,
a position in each hierarchy branch and an administrative level.

@file users/models.py
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel
from hierarchy.branches import ALL_USER_FIELDS, Branch
from users.managers import UserManager


def _position_fk(model: str, verbose_name):
    return models.ForeignKey(
        f'hierarchy.{model}',
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=verbose_name,
    )


class User(AbstractBaseUser, PermissionsMixin, BaseModel):
    """
    Member account.

    Authentication is phone-based. A member holds a position in up to
    three hierarchy branches (original geography, expatriate region,
    sector) and works in one of them at a time (``active_hierarchy``).
    ``admin_level`` says which node, if any, the member administers.
    """

    class StatusChoices(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        ACTIVE = 'ACTIVE', _('Active')
        SUSPENDED = 'SUSPENDED', _('Suspended')
        REJECTED = 'REJECTED', _('Rejected')

    class AdminLevel(models.TextChoices):
        USER = 'USER', _('Member')
        DISTRICT = 'DISTRICT', _('District admin')
        ADMIN_UNIT = 'ADMIN_UNIT', _('Administrative unit admin')
        LOCALITY = 'LOCALITY', _('Locality admin')
        REGION = 'REGION', _('Region admin')
        NATIONAL_LEVEL = 'NATIONAL_LEVEL', _('National level admin')
        EXPATRIATE_REGION = 'EXPATRIATE_REGION', _('Expatriate region admin')
        EXPATRIATE_GENERAL = 'EXPATRIATE_GENERAL', _('Expatriate general admin')
        GENERAL_SECRETARIAT = 'GENERAL_SECRETARIAT', _('General secretariat')
        ADMIN = 'ADMIN', _('Administrator')

    # Admin levels that see and manage everything.
    BYPASS_ADMIN_LEVELS = frozenset({AdminLevel.ADMIN, AdminLevel.GENERAL_SECRETARIAT})

    # Ordering used by HasAdminLevel.
    ADMIN_LEVEL_RANK = {
        AdminLevel.USER: 0,
        AdminLevel.DISTRICT: 1,
        AdminLevel.ADMIN_UNIT: 2,
        AdminLevel.LOCALITY: 3,
        AdminLevel.REGION: 4,
        AdminLevel.EXPATRIATE_REGION: 4,
        AdminLevel.NATIONAL_LEVEL: 5,
        AdminLevel.EXPATRIATE_GENERAL: 5,
        AdminLevel.GENERAL_SECRETARIAT: 6,
        AdminLevel.ADMIN: 7,
    }

    phone = models.CharField(_('phone'), max_length=20, unique=True)
    email = models.EmailField(_('email'), unique=True, null=True, blank=True)
    first_name = models.CharField(_('first name'), max_length=100, blank=True)
    last_name = models.CharField(_('last name'), max_length=100, blank=True)

    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices, default=StatusChoices.PENDING,
        db_index=True,
    )
    admin_level = models.CharField(
        _('admin level'), max_length=20,
        choices=AdminLevel.choices, default=AdminLevel.USER,
        db_index=True,
    )
    active_hierarchy = models.CharField(
        _('active hierarchy'), max_length=10,
        choices=Branch.choices, null=True, blank=True,
    )

    # Original branch
    national_level = _position_fk('NationalLevel', _('national level'))
    region = _position_fk('Region', _('region'))
    locality = _position_fk('Locality', _('locality'))
    admin_unit = _position_fk('AdminUnit', _('administrative unit'))
    district = _position_fk('District', _('district'))

    # Expatriate branch
    expatriate_region = _position_fk('ExpatriateRegion', _('expatriate region'))

    # Sector branch
    sector_national_level = _position_fk('SectorNationalLevel', _('sector national level'))
    sector_region = _position_fk('SectorRegion', _('sector region'))
    sector_locality = _position_fk('SectorLocality', _('sector locality'))
    sector_admin_unit = _position_fk('SectorAdminUnit', _('sector administrative unit'))
    sector_district = _position_fk('SectorDistrict', _('sector district'))

    is_staff = models.BooleanField(_('staff status'), default=False)
    is_active = models.BooleanField(_('active'), default=True)
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'phone'
    REQUIRED_FIELDS = []

    POSITION_FIELDS = ALL_USER_FIELDS

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'admin_level']),
            models.Index(fields=['district']),
            models.Index(fields=['sector_district']),
        ]

    def __str__(self):
        return self.get_full_name()

    def get_full_name(self):
        full = f'{self.first_name} {self.last_name}'.strip()
        return full or self.phone

    def get_short_name(self):
        return self.first_name or self.phone

    @property
    def bypasses_hierarchy(self) -> bool:
        return self.is_superuser or self.admin_level in self.BYPASS_ADMIN_LEVELS

    @property
    def admin_rank(self) -> int:
        if self.is_superuser:
            return self.ADMIN_LEVEL_RANK[self.AdminLevel.ADMIN]
        return self.ADMIN_LEVEL_RANK.get(self.admin_level, 0)
