"""
Core — Constants

Shared constants: audit action names and pagination limits.

@file core/constants.py
"""

# Audit actions (mirror AuditLog.ActionChoices values)
AUDIT_ACTION_CREATE = 'CREATE'
AUDIT_ACTION_UPDATE = 'UPDATE'
AUDIT_ACTION_DELETE = 'DELETE'
AUDIT_ACTION_STATUS_CHANGE = 'STATUS_CHANGE'
AUDIT_ACTION_LOGIN = 'LOGIN'

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
