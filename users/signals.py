"""
Users — Signals

Audit logging for User saves that do not go through UserService,
e.g. the Django admin or createsuperuser.

@file users/signals.py
"""

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_UPDATE
from core.services import AuditService
from users.models import User

AUDIT_EXCLUDED_FIELDS = ('password', 'last_login')


def _user_snapshot(instance) -> dict:
    snapshot = AuditService.snapshot(instance)
    for field in AUDIT_EXCLUDED_FIELDS:
        snapshot.pop(field, None)
    return snapshot


@receiver(pre_save, sender=User)
def user_pre_save(sender, instance, **kwargs):
    instance._audit_old_values = None
    if instance.pk and not instance._state.adding:
        old = User.objects.filter(pk=instance.pk).first()
        if old is not None:
            instance._audit_old_values = _user_snapshot(old)


@receiver(post_save, sender=User)
def user_post_save(sender, instance, created, **kwargs):
    old_values = getattr(instance, '_audit_old_values', None)
    new_values = _user_snapshot(instance)

    if not created and old_values == new_values:
        return

    AuditService.log(
        actor=getattr(instance, '_current_user', None),
        action=AUDIT_ACTION_CREATE if created else AUDIT_ACTION_UPDATE,
        model_name='User',
        object_id=str(instance.pk),
        old_values=old_values,
        new_values=new_values,
    )
