"""Audit entry states."""

from enum import Enum


class AuditEntryState(str, Enum):
    """Kind of change an AuditEntry records."""

    ENTITY_ADDED = "EntityAdded"
    ENTITY_MODIFIED = "EntityModified"
    ENTITY_DELETED = "EntityDeleted"
    ENTITY_SOFT_DELETED = "EntitySoftDeleted"
    RELATIONSHIP_ADDED = "RelationshipAdded"
    RELATIONSHIP_DELETED = "RelationshipDeleted"


# States whose properties may carry the value before the change
OLD_VALUE_STATES = frozenset(
    {
        AuditEntryState.ENTITY_MODIFIED,
        AuditEntryState.ENTITY_DELETED,
        AuditEntryState.ENTITY_SOFT_DELETED,
        AuditEntryState.RELATIONSHIP_DELETED,
    }
)

# States whose properties may carry the value after the change
NEW_VALUE_STATES = frozenset(
    {
        AuditEntryState.ENTITY_ADDED,
        AuditEntryState.ENTITY_MODIFIED,
        AuditEntryState.ENTITY_SOFT_DELETED,
        AuditEntryState.RELATIONSHIP_ADDED,
    }
)
