"""Database layer - declarative base, mixins and session factories."""

from audittrail.core.database.base import AuditMixin, Base, SoftDeleteMixin, is_soft_deleted
from audittrail.core.database.session import (
    create_audit_tables,
    create_engine_from_settings,
    create_session_factory,
    session_scope,
)


__all__ = [
    "AuditMixin",
    "Base",
    "SoftDeleteMixin",
    "create_audit_tables",
    "create_engine_from_settings",
    "create_session_factory",
    "is_soft_deleted",
    "session_scope",
]
