"""Audit configuration and the process-wide default.

An ``Audit`` works on its own copy of ``AuditManager.default_configuration``
unless a configuration is passed explicitly, so per-save tweaks never leak
into the default.
"""

import copy
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from audittrail.config import Settings, settings as default_settings
from audittrail.core.audit.enums import AuditEntryState
from audittrail.core.audit.models import AuditEntry, JsonAuditEntry, XmlAuditEntry
from audittrail.core.audit.policy import (
    EntityRule,
    EntityTarget,
    FormatRule,
    PropertyRule,
    ValueFormatter,
)
from audittrail.core.errors import AuditConfigurationError


if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from audittrail.core.audit.audit import Audit


log = structlog.get_logger()


AUTO_SAVE_SETS: dict[str, type | None] = {
    "entries": AuditEntry,
    "xml": XmlAuditEntry,
    "json": JsonAuditEntry,
    "none": None,
}

AutoSaveAction = Callable[["Session", "Audit"], None]


@dataclass
class AuditEntryFactoryArgs:
    """Arguments handed to a custom ``audit_entry_factory``."""

    audit: "Audit"
    entity: Any
    entity_set_name: str
    entity_type_name: str
    state: AuditEntryState


AuditEntryFactory = Callable[[AuditEntryFactoryArgs], AuditEntry]


def _validate_auto_save_set(value: type | None) -> type | None:
    if value is None:
        return None
    if not isinstance(value, type):
        raise AuditConfigurationError(
            "auto_save_set must be an audit model class",
            details={"auto_save_set": repr(value)},
        )
    if issubclass(value, AuditEntry) or hasattr(value, "from_audit_entry"):
        return value
    raise AuditConfigurationError(
        "auto_save_set must be AuditEntry or define from_audit_entry()",
        details={"auto_save_set": value.__name__},
    )


class AuditConfiguration:
    """What to capture and where finished entries go.

    Attributes:
        is_enabled: When False, saving captures nothing
        auto_save_set: Model the entries are persisted as after a save
        auto_save_action: Callback ``(session, audit)`` replacing built-in persistence
        ignore_property_unchanged: Record only changed columns of modified entities
        retain_entries: Keep dispatched audits on the session for inspection
        audit_entry_factory: Builds custom AuditEntry instances
    """

    def __init__(
        self,
        *,
        is_enabled: bool = True,
        auto_save_set: type | None = None,
        auto_save_action: AutoSaveAction | None = None,
        ignore_property_unchanged: bool = True,
        ignore_entity_added: bool = False,
        ignore_entity_modified: bool = False,
        ignore_entity_deleted: bool = False,
        ignore_entity_soft_deleted: bool = False,
        ignore_relationship_added: bool = False,
        ignore_relationship_deleted: bool = False,
        retain_entries: bool = False,
        audit_entry_factory: AuditEntryFactory | None = None,
    ) -> None:
        self.is_enabled = is_enabled
        self.auto_save_set = auto_save_set
        self.auto_save_action = auto_save_action
        self.ignore_property_unchanged = ignore_property_unchanged
        self.ignore_entity_added = ignore_entity_added
        self.ignore_entity_modified = ignore_entity_modified
        self.ignore_entity_deleted = ignore_entity_deleted
        self.ignore_entity_soft_deleted = ignore_entity_soft_deleted
        self.ignore_relationship_added = ignore_relationship_added
        self.ignore_relationship_deleted = ignore_relationship_deleted
        self.retain_entries = retain_entries
        self.audit_entry_factory = audit_entry_factory

        self.entity_rules: list[EntityRule] = []
        self.property_rules: list[PropertyRule] = []
        self.format_rules: list[FormatRule] = []
        self.soft_delete_predicates: list[Callable[[Any], bool]] = []

    @property
    def auto_save_set(self) -> type | None:
        return self._auto_save_set

    @auto_save_set.setter
    def auto_save_set(self, value: type | None) -> None:
        self._auto_save_set = _validate_auto_save_set(value)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AuditConfiguration":
        """Build a configuration from ``AUDIT_*`` settings."""
        settings = settings or default_settings
        return cls(
            is_enabled=settings.enabled,
            auto_save_set=AUTO_SAVE_SETS[settings.auto_save_format],
            ignore_property_unchanged=settings.ignore_property_unchanged,
        )

    def is_ignored(self, state: AuditEntryState) -> bool:
        """Check the per-state ignore flag."""
        return {
            AuditEntryState.ENTITY_ADDED: self.ignore_entity_added,
            AuditEntryState.ENTITY_MODIFIED: self.ignore_entity_modified,
            AuditEntryState.ENTITY_DELETED: self.ignore_entity_deleted,
            AuditEntryState.ENTITY_SOFT_DELETED: self.ignore_entity_soft_deleted,
            AuditEntryState.RELATIONSHIP_ADDED: self.ignore_relationship_added,
            AuditEntryState.RELATIONSHIP_DELETED: self.ignore_relationship_deleted,
        }[state]

    def include_entity(self, target: EntityTarget) -> "AuditConfiguration":
        """Capture instances of a class, or instances matching a predicate."""
        self.entity_rules.append(EntityRule(target=target, include=True))
        return self

    def exclude_entity(self, target: EntityTarget) -> "AuditConfiguration":
        """Skip instances of a class, or instances matching a predicate."""
        self.entity_rules.append(EntityRule(target=target, include=False))
        return self

    def include_property(self, target: EntityTarget, *names: str) -> "AuditConfiguration":
        """Capture the named properties (all when none given) of selected instances."""
        self.property_rules.append(
            PropertyRule(target=target, names=frozenset(names), include=True)
        )
        return self

    def exclude_property(self, target: EntityTarget, *names: str) -> "AuditConfiguration":
        """Skip the named properties (all when none given) of selected instances."""
        self.property_rules.append(
            PropertyRule(target=target, names=frozenset(names), include=False)
        )
        return self

    def soft_deleted(self, predicate: Callable[[Any], bool]) -> "AuditConfiguration":
        """Record modified instances matching ``predicate`` as EntitySoftDeleted."""
        self.soft_delete_predicates.append(predicate)
        return self

    def format_value(
        self,
        target: EntityTarget,
        name: str,
        formatter: ValueFormatter,
    ) -> "AuditConfiguration":
        """Transform a property's raw value before it is rendered as text.

        Example:
            config.format_value(User, "card_number", lambda v: f"****{v[-4:]}")
        """
        self.format_rules.append(FormatRule(target=target, name=name, formatter=formatter))
        return self

    def copy(self) -> "AuditConfiguration":
        """Copy with independent rule lists."""
        clone = copy.copy(self)
        clone.entity_rules = list(self.entity_rules)
        clone.property_rules = list(self.property_rules)
        clone.format_rules = list(self.format_rules)
        clone.soft_delete_predicates = list(self.soft_delete_predicates)
        return clone


class AuditManager:
    """Holder of the process-wide default configuration."""

    default_configuration: AuditConfiguration = AuditConfiguration.from_settings()

    @classmethod
    def reset_default_configuration(
        cls,
        settings: Settings | None = None,
    ) -> AuditConfiguration:
        """Rebuild the default configuration from settings.

        Returns:
            The new default configuration
        """
        cls.default_configuration = AuditConfiguration.from_settings(settings)
        log.debug(
            "audit_default_configuration_reset",
            is_enabled=cls.default_configuration.is_enabled,
            auto_save_set=(
                cls.default_configuration.auto_save_set.__name__
                if cls.default_configuration.auto_save_set
                else None
            ),
        )
        return cls.default_configuration
