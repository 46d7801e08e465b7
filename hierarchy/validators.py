"""
Hierarchy — Field Validators

Normalisation and validation helpers for node codes and names.

@file hierarchy/validators.py
"""

from django.core.validators import RegexValidator
from django.utils.translation import gettext_lazy as _

CODE_PATTERN = r'^[A-Z0-9_-]+$'

code_validator = RegexValidator(
    CODE_PATTERN,
    message=_('Code may only contain uppercase letters, digits, hyphens and underscores.'),
    code='invalid_code',
)


def normalize_code(value: str | None) -> str | None:
    """Trim and upper-case a code. Blank codes are stored as NULL."""
    if value is None:
        return None
    value = str(value).strip().upper()
    return value or None


def normalize_name(value: str | None) -> str:
    return (value or '').strip()
