"""Audit trail database models.

Three storage shapes are supported:

- ``AuditEntry`` + ``AuditEntryProperty``: one row per change and one row
  per property
- ``XmlAuditEntry``: one row per change, properties as an XML document
- ``JsonAuditEntry``: one row per change, properties as a JSON document
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from audittrail.constants import (
    MAX_AUTHOR_LENGTH,
    MAX_ENTITY_KEY_LENGTH,
    MAX_ENTITY_SET_NAME_LENGTH,
    MAX_ENTITY_TYPE_NAME_LENGTH,
    MAX_PROPERTY_NAME_LENGTH,
    MAX_STATE_LENGTH,
)
from audittrail.core.audit.enums import NEW_VALUE_STATES, OLD_VALUE_STATES, AuditEntryState
from audittrail.core.audit.formatting import properties_to_json, properties_to_xml
from audittrail.core.database.base import Base
from audittrail.core.errors import AuditStateError


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AuditEntryHeaderMixin:
    """Columns shared by every audit entry table.

    Attributes:
        entity_set_name: Table name of the audited entity
        entity_type_name: Class name of the audited entity
        entity_key: Primary key, composite keys joined with ","
        state: Kind of change
        created_by: Author of the change
        created_date: When the change was captured
    """

    # Audit tables are never audited themselves
    __audit__ = False

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # What changed
    entity_set_name: Mapped[str] = mapped_column(
        String(MAX_ENTITY_SET_NAME_LENGTH),
        nullable=False,
        index=True,
    )
    entity_type_name: Mapped[str] = mapped_column(
        String(MAX_ENTITY_TYPE_NAME_LENGTH),
        nullable=False,
        index=True,
    )
    entity_key: Mapped[str | None] = mapped_column(
        String(MAX_ENTITY_KEY_LENGTH),
        nullable=True,
        index=True,
    )
    state: Mapped[AuditEntryState] = mapped_column(
        SAEnum(
            AuditEntryState,
            native_enum=False,
            length=MAX_STATE_LENGTH,
            values_callable=lambda states: [s.value for s in states],
        ),
        nullable=False,
        index=True,
    )

    # Who and when
    created_by: Mapped[str | None] = mapped_column(
        String(MAX_AUTHOR_LENGTH),
        nullable=True,
        index=True,
    )
    created_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )

    @property
    def state_name(self) -> str:
        """The state as its display name, e.g. ``EntityModified``."""
        return self.state.value


class AuditEntry(Base, AuditEntryHeaderMixin):
    """One logical change to one entity instance, with per-property rows."""

    __tablename__ = "audit_entries"

    properties: Mapped[list["AuditEntryProperty"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="AuditEntryProperty.id",
        lazy="selectin",
    )

    # Audited instance, kept in memory until generated keys are resolved
    entity = None

    def header_values(self) -> dict[str, Any]:
        """Header columns, used to build the XML and JSON projections."""
        return {
            "entity_set_name": self.entity_set_name,
            "entity_type_name": self.entity_type_name,
            "entity_key": self.entity_key,
            "state": self.state,
            "created_by": self.created_by,
            "created_date": self.created_date,
        }

    def __repr__(self) -> str:
        return (
            f"<AuditEntry(id={self.id}, state={self.state_name}, "
            f"entity_type_name={self.entity_type_name}, entity_key={self.entity_key})>"
        )


class AuditEntryProperty(Base):
    """Before/after value pair of one property, owned by an AuditEntry.

    Only EntityModified, EntityDeleted, EntitySoftDeleted and
    RelationshipDeleted entries carry ``old_value``; only EntityAdded,
    EntityModified, EntitySoftDeleted and RelationshipAdded entries carry
    ``new_value``.
    """

    __tablename__ = "audit_entry_properties"
    __audit__ = False

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    audit_entry_id: Mapped[int] = mapped_column(
        ForeignKey("audit_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    relation_name: Mapped[str | None] = mapped_column(
        String(MAX_PROPERTY_NAME_LENGTH),
        nullable=True,
    )
    property_name: Mapped[str] = mapped_column(
        String(MAX_PROPERTY_NAME_LENGTH),
        nullable=False,
    )
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    entry: Mapped[AuditEntry] = relationship(back_populates="properties")

    # (instance, attribute key) the new value is re-read from after flush
    source = None

    def validate_state(self, state: AuditEntryState) -> None:
        """Check the old/new value invariant against the owning entry's state.

        Raises:
            AuditStateError: If a value is set that the state does not allow
        """
        if self.old_value is not None and state not in OLD_VALUE_STATES:
            raise AuditStateError(
                f"{state.value} entries cannot carry an old value",
                state=state.value,
                property_name=self.property_name,
            )
        if self.new_value is not None and state not in NEW_VALUE_STATES:
            raise AuditStateError(
                f"{state.value} entries cannot carry a new value",
                state=state.value,
                property_name=self.property_name,
            )

    def __repr__(self) -> str:
        return (
            f"<AuditEntryProperty(property_name={self.property_name}, "
            f"old_value={self.old_value!r}, new_value={self.new_value!r})>"
        )


class XmlAuditEntry(Base, AuditEntryHeaderMixin):
    """One logical change with its properties serialized as XML."""

    __tablename__ = "xml_audit_entries"

    xml_properties: Mapped[str | None] = mapped_column(Text, nullable=True)

    @classmethod
    def from_audit_entry(cls, entry: AuditEntry) -> "XmlAuditEntry":
        """Project a row-per-property entry into the XML shape."""
        return cls(
            **entry.header_values(),
            xml_properties=properties_to_xml(entry.properties),
        )

    def __repr__(self) -> str:
        return f"<XmlAuditEntry(id={self.id}, state={self.state_name})>"


class JsonAuditEntry(Base, AuditEntryHeaderMixin):
    """One logical change with its properties serialized as JSON."""

    __tablename__ = "json_audit_entries"

    json_properties: Mapped[str | None] = mapped_column(Text, nullable=True)

    @classmethod
    def from_audit_entry(cls, entry: AuditEntry) -> "JsonAuditEntry":
        """Project a row-per-property entry into the JSON shape."""
        return cls(
            **entry.header_values(),
            json_properties=properties_to_json(entry.properties),
        )

    def __repr__(self) -> str:
        return f"<JsonAuditEntry(id={self.id}, state={self.state_name})>"


AUDIT_MODELS: tuple[type, ...] = (AuditEntry, AuditEntryProperty, XmlAuditEntry, JsonAuditEntry)
