"""Audit trail capture for SQLAlchemy sessions."""

from audittrail.core.audit import (
    Audit,
    AuditConfiguration,
    AuditEntry,
    AuditEntryProperty,
    AuditEntryState,
    AuditListener,
    AuditManager,
    AuditRepository,
    JsonAuditEntry,
    XmlAuditEntry,
    save_changes,
    save_changes_async,
    set_audit_context,
)
from audittrail.core.database import AuditMixin, SoftDeleteMixin, is_soft_deleted


__version__ = "0.1.0"

__all__ = [
    "Audit",
    "AuditConfiguration",
    "AuditEntry",
    "AuditEntryProperty",
    "AuditEntryState",
    "AuditListener",
    "AuditManager",
    "AuditMixin",
    "AuditRepository",
    "JsonAuditEntry",
    "SoftDeleteMixin",
    "XmlAuditEntry",
    "__version__",
    "is_soft_deleted",
    "save_changes",
    "save_changes_async",
    "set_audit_context",
]
