"""Pydantic schemas for the JSON projections of audit entries."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from audittrail.core.audit.enums import AuditEntryState


class AuditEntryPropertyRead(BaseModel):
    """One property's before/after pair."""

    model_config = ConfigDict(from_attributes=True)

    relation_name: str | None = Field(None, description="Relationship side, null for columns")
    property_name: str = Field(..., description="Mapped attribute name")
    old_value: str | None = Field(None, description="Formatted value before the change")
    new_value: str | None = Field(None, description="Formatted value after the change")


class AuditEntryRead(BaseModel):
    """One logical change to one entity instance."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    entity_set_name: str
    entity_type_name: str
    entity_key: str | None = None
    state: AuditEntryState
    created_by: str | None = None
    created_date: datetime | None = None
    properties: list[AuditEntryPropertyRead] = Field(default_factory=list)


class AuditRead(BaseModel):
    """Every entry produced by one save call."""

    model_config = ConfigDict(from_attributes=True)

    author: str
    created_date: datetime
    entries: list[AuditEntryRead] = Field(default_factory=list)


PropertyListAdapter = TypeAdapter(list[AuditEntryPropertyRead])
