"""
Users — Custom Managers

UserManager with the phone number as the login identifier, plus
helpers used by the scoped member listings.

@file users/managers.py
"""

from django.contrib.auth.models import BaseUserManager
from django.utils.translation import gettext_lazy as _

from hierarchy.branches import ALL_USER_FIELDS


class UserManager(BaseUserManager):

    def _create_user(self, phone, password=None, **extra_fields):
        if not phone:
            raise ValueError(_('Phone number is required.'))
        email = extra_fields.get('email')
        if email:
            extra_fields['email'] = self.normalize_email(email)
        user = self.model(phone=phone.strip(), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, phone, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(phone, password, **extra_fields)

    def create_superuser(self, phone, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('status', 'ACTIVE')
        extra_fields.setdefault('admin_level', 'ADMIN')

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True.'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True.'))

        return self._create_user(phone, password, **extra_fields)

    def active(self):
        return self.filter(status='ACTIVE', is_active=True)

    def with_positions(self):
        """Members with their hierarchy nodes joined in."""
        return self.select_related(*ALL_USER_FIELDS)
