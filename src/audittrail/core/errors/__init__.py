"""Error types for the audit trail."""

from audittrail.core.errors.exceptions import (
    AuditConfigurationError,
    AuditDispatchError,
    AuditError,
    AuditNotFoundError,
    AuditStateError,
)


__all__ = [
    "AuditConfigurationError",
    "AuditDispatchError",
    "AuditError",
    "AuditNotFoundError",
    "AuditStateError",
]
