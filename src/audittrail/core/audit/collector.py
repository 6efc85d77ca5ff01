"""Change collector.

Inspects a session's pending unit of work and produces AuditEntry
objects for added, modified, soft-deleted and deleted instances and for
many-to-many membership changes.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import inspect, select
from sqlalchemy.orm import InstanceState, Mapper, RelationshipProperty, Session

from audittrail.constants import ENTITY_KEY_SEPARATOR
from audittrail.core.audit.configuration import AuditConfiguration, AuditEntryFactoryArgs
from audittrail.core.audit.enums import NEW_VALUE_STATES, OLD_VALUE_STATES, AuditEntryState
from audittrail.core.audit.formatting import format_value
from audittrail.core.audit.models import AuditEntry, AuditEntryProperty
from audittrail.core.audit.policy import (
    find_formatter,
    is_soft_deleted,
    should_audit_entity,
    should_audit_property,
)
from audittrail.core.errors import AuditConfigurationError


if TYPE_CHECKING:
    from audittrail.core.audit.audit import Audit


log = structlog.get_logger()


def _column_keys(mapper: Mapper[Any]) -> list[str]:
    return [attr.key for attr in mapper.column_attrs if not attr.key.startswith("_")]


def _primary_key_values(state: InstanceState[Any]) -> tuple[Any, ...]:
    if state.key is not None:
        return tuple(state.identity or ())
    # Pending, or flushed but not yet registered as persistent
    mapper = state.mapper
    return tuple(
        state.dict.get(mapper.get_property_by_column(column).key)
        for column in mapper.primary_key
    )


def entity_key(obj: Any) -> str | None:
    """Stringify the primary key of ``obj``; None until every part is known."""
    values = _primary_key_values(inspect(obj))
    if not values or any(value is None for value in values):
        return None
    return ENTITY_KEY_SEPARATOR.join(str(value) for value in values)


def _render(configuration: AuditConfiguration, obj: Any, name: str, value: Any) -> str | None:
    if value is None:
        return None
    formatter = find_formatter(configuration, obj, name)
    if formatter is not None:
        value = formatter(value)
    return format_value(value)


def _new_entry(
    audit: "Audit",
    obj: Any,
    state: AuditEntryState,
    entity_set_name: str | None = None,
    entity_type_name: str | None = None,
) -> AuditEntry:
    mapper = inspect(obj).mapper
    set_name = entity_set_name or mapper.local_table.name
    type_name = entity_type_name or type(obj).__name__

    factory = audit.configuration.audit_entry_factory
    if factory is None:
        entry = AuditEntry()
    else:
        entry = factory(
            AuditEntryFactoryArgs(
                audit=audit,
                entity=obj,
                entity_set_name=set_name,
                entity_type_name=type_name,
                state=state,
            )
        )
        if not isinstance(entry, AuditEntry):
            raise AuditConfigurationError(
                "audit_entry_factory must return an AuditEntry",
                details={"returned": type(entry).__name__},
            )

    entry.entity_set_name = set_name
    entry.entity_type_name = type_name
    entry.state = state
    entry.entity_key = entity_key(obj)
    entry.created_by = entry.created_by or audit.author
    entry.created_date = datetime.now(UTC)
    entry.entity = obj
    return entry


def _add_property(
    configuration: AuditConfiguration,
    entry: AuditEntry,
    obj: Any,
    name: str,
    old: Any = None,
    new: Any = None,
    relation_name: str | None = None,
) -> AuditEntryProperty:
    if entry.state not in OLD_VALUE_STATES:
        old = None
    if entry.state not in NEW_VALUE_STATES:
        new = None
    prop = AuditEntryProperty(
        relation_name=relation_name,
        property_name=name,
        old_value=_render(configuration, obj, name, old),
        new_value=_render(configuration, obj, name, new),
    )
    prop.validate_state(entry.state)
    prop.source = (obj, name)
    entry.properties.append(prop)
    return prop


def _collect_added(audit: "Audit", obj: Any) -> AuditEntry:
    configuration = audit.configuration
    state = inspect(obj)
    entry = _new_entry(audit, obj, AuditEntryState.ENTITY_ADDED)
    for key in _column_keys(state.mapper):
        if should_audit_property(configuration, obj, key):
            _add_property(configuration, entry, obj, key, new=state.dict.get(key))
    return entry


def _stored_values(session: Session, state: InstanceState[Any], keys: list[str]) -> dict[str, Any]:
    """Read the database values of ``keys`` for a persistent instance."""
    mapper = state.mapper
    entity = mapper.class_
    criteria = [
        getattr(entity, mapper.get_property_by_column(column).key) == value
        for column, value in zip(mapper.primary_key, state.identity, strict=True)
    ]
    stmt = select(*(getattr(entity, key) for key in keys)).where(*criteria)
    row = session.execute(stmt).one_or_none()
    if row is None:
        return {}
    return dict(zip(keys, row, strict=True))


def _collect_modified(audit: "Audit", session: Session, obj: Any) -> AuditEntry | None:
    configuration = audit.configuration
    entry_state = (
        AuditEntryState.ENTITY_SOFT_DELETED
        if is_soft_deleted(configuration, obj)
        else AuditEntryState.ENTITY_MODIFIED
    )
    if configuration.is_ignored(entry_state):
        return None

    state = inspect(obj)
    keys = [
        key
        for key in _column_keys(state.mapper)
        if should_audit_property(configuration, obj, key)
    ]
    histories = {key: state.attrs[key].history for key in keys}

    # Attributes set while expired or deferred carry no prior value
    unknown = [
        key
        for key, history in histories.items()
        if (history.added and not history.deleted and not history.unchanged)
        or (
            not configuration.ignore_property_unchanged
            and not history.has_changes()
            and not history.unchanged
        )
    ]
    stored = _stored_values(session, state, unknown) if unknown else {}

    entry = _new_entry(audit, obj, entry_state)
    changed_any = False

    for key in keys:
        history = histories[key]
        if key in stored:
            old = stored[key]
            new = history.added[0] if history.added else old
            changed = new != old
        elif history.has_changes():
            old = history.deleted[0] if history.deleted else None
            new = history.added[0] if history.added else None
            changed = True
        elif history.unchanged:
            old = new = history.unchanged[0]
            changed = False
        else:
            continue

        if not changed and configuration.ignore_property_unchanged:
            continue
        changed_any = changed_any or changed
        _add_property(configuration, entry, obj, key, old=old, new=new)

    # Nothing audited actually changed
    if not changed_any:
        return None
    return entry


def _collect_deleted(audit: "Audit", obj: Any) -> AuditEntry:
    configuration = audit.configuration
    state = inspect(obj)
    entry = _new_entry(audit, obj, AuditEntryState.ENTITY_DELETED)
    for key in _column_keys(state.mapper):
        if should_audit_property(configuration, obj, key):
            _add_property(configuration, entry, obj, key, old=getattr(obj, key))
    return entry


def _relationship_entry(
    audit: "Audit",
    obj: Any,
    related: Any,
    relationship_key: str,
    table_name: str,
    entry_state: AuditEntryState,
) -> AuditEntry:
    configuration = audit.configuration
    entry = _new_entry(
        audit,
        obj,
        entry_state,
        entity_set_name=table_name,
        entity_type_name=f"{type(obj).__name__}.{relationship_key}",
    )
    sides = ((obj, type(obj).__name__), (related, relationship_key))
    for side, relation_name in sides:
        side_state = inspect(side)
        mapper = side_state.mapper
        values = _primary_key_values(side_state)
        for column, value in zip(mapper.primary_key, values, strict=True):
            key = mapper.get_property_by_column(column).key
            _add_property(
                configuration,
                entry,
                side,
                key,
                old=value,
                new=value,
                relation_name=relation_name,
            )
    return entry


def _membership_marker(
    relationship: RelationshipProperty[Any],
    state: InstanceState[Any],
    related_state: InstanceState[Any],
    entry_state: AuditEntryState,
) -> tuple[str, frozenset[tuple[str, int]], AuditEntryState]:
    """Identify one association row independently of the side reporting it.

    Pairs every secondary column with the instance supplying its value, so
    both directions of a self-referential association stay distinct.
    """
    columns = {(secondary.key, id(state)) for _, secondary in relationship.synchronize_pairs}
    columns.update(
        (secondary.key, id(related_state))
        for _, secondary in relationship.secondary_synchronize_pairs
    )
    return relationship.secondary.name, frozenset(columns), entry_state


def _membership_changes(
    state: InstanceState[Any],
    relationship: RelationshipProperty[Any],
    removed: bool,
) -> list[tuple[AuditEntryState, list[Any]]]:
    if removed:
        # Deleting the owner deletes every association row it still has
        history = state.attrs[relationship.key].load_history()
        return [
            (
                AuditEntryState.RELATIONSHIP_DELETED,
                [*history.unchanged, *history.deleted],
            )
        ]
    history = state.attrs[relationship.key].history
    return [
        (AuditEntryState.RELATIONSHIP_ADDED, list(history.added)),
        (AuditEntryState.RELATIONSHIP_DELETED, list(history.deleted)),
    ]


def _collect_relationships(
    audit: "Audit",
    objects: list[Any],
    deleted: list[Any],
) -> list[AuditEntry]:
    configuration = audit.configuration
    entries: list[AuditEntry] = []
    # Bidirectional relationships report each change from both sides
    seen: set[tuple[str, frozenset[tuple[str, int]], AuditEntryState]] = set()

    candidates = [(obj, False) for obj in objects] + [(obj, True) for obj in deleted]
    for obj, removed in candidates:
        state = inspect(obj)
        for relationship in state.mapper.relationships:
            if relationship.secondary is None or relationship.viewonly:
                continue

            for entry_state, items in _membership_changes(state, relationship, removed):
                if configuration.is_ignored(entry_state):
                    continue
                for related in items:
                    if related is None:
                        continue
                    marker = _membership_marker(
                        relationship, state, inspect(related), entry_state
                    )
                    if marker in seen:
                        continue
                    seen.add(marker)
                    entries.append(
                        _relationship_entry(
                            audit,
                            obj,
                            related,
                            relationship.key,
                            relationship.secondary.name,
                            entry_state,
                        )
                    )
    return entries


def collect_changes(audit: "Audit", session: Session) -> list[AuditEntry]:
    """Produce audit entries for everything ``session`` is about to flush.

    Must run before the flush: history is reset once rows are written.

    Args:
        audit: Audit providing the configuration and author
        session: Session with pending changes

    Returns:
        New entries in new/dirty/deleted/relationship order
    """
    configuration = audit.configuration
    entries: list[AuditEntry] = []
    audited: list[Any] = []
    removed: list[Any] = []

    with session.no_autoflush:
        # Track new objects
        for obj in list(session.new):
            if not should_audit_entity(configuration, obj):
                continue
            audited.append(obj)
            if not configuration.is_ignored(AuditEntryState.ENTITY_ADDED):
                entries.append(_collect_added(audit, obj))

        # Track modified objects
        for obj in list(session.dirty):
            if not should_audit_entity(configuration, obj):
                continue
            audited.append(obj)
            if session.is_modified(obj, include_collections=False):
                entry = _collect_modified(audit, session, obj)
                if entry is not None:
                    entries.append(entry)

        # Track deleted objects
        for obj in list(session.deleted):
            if not should_audit_entity(configuration, obj):
                continue
            removed.append(obj)
            if not configuration.is_ignored(AuditEntryState.ENTITY_DELETED):
                entries.append(_collect_deleted(audit, obj))

        entries.extend(_collect_relationships(audit, audited, removed))

    log.debug(
        "audit_entries_collected",
        count=len(entries),
        new=len(session.new),
        dirty=len(session.dirty),
        deleted=len(session.deleted),
    )
    return entries


def resolve_generated_values(configuration: AuditConfiguration, entries: list[AuditEntry]) -> None:
    """Fill in keys and values the database generated during the flush.

    Re-reads the entity key of entries whose key was unknown and the new
    values of properties that are allowed to carry one.
    """
    for entry in entries:
        if entry.entity is not None and entry.entity_key is None:
            entry.entity_key = entity_key(entry.entity)

        if entry.state not in NEW_VALUE_STATES:
            continue

        for prop in entry.properties:
            if prop.source is None:
                continue
            obj, key = prop.source
            values = inspect(obj).dict
            if key in values:
                prop.new_value = _render(configuration, obj, key, values[key])
