"""Audit trail capture: collector, formatter, policy engine and dispatcher."""

from audittrail.core.audit.audit import Audit
from audittrail.core.audit.configuration import (
    AuditConfiguration,
    AuditEntryFactoryArgs,
    AuditManager,
)
from audittrail.core.audit.context import (
    clear_audit_context,
    get_audit_context,
    set_audit_context,
)
from audittrail.core.audit.dispatcher import dispatch, save_changes, save_changes_async
from audittrail.core.audit.enums import AuditEntryState
from audittrail.core.audit.listener import AuditListener, clear_retained_audits, retained_audits
from audittrail.core.audit.models import (
    AuditEntry,
    AuditEntryProperty,
    JsonAuditEntry,
    XmlAuditEntry,
)
from audittrail.core.audit.repos import AuditRepository


__all__ = [
    "Audit",
    "AuditConfiguration",
    "AuditEntry",
    "AuditEntryFactoryArgs",
    "AuditEntryProperty",
    "AuditEntryState",
    "AuditListener",
    "AuditManager",
    "AuditRepository",
    "JsonAuditEntry",
    "XmlAuditEntry",
    "clear_audit_context",
    "clear_retained_audits",
    "dispatch",
    "get_audit_context",
    "retained_audits",
    "save_changes",
    "save_changes_async",
    "set_audit_context",
]
