"""Tests for audit models, state invariants and projections."""

import json
import xml.etree.ElementTree as ET
from datetime import UTC, datetime

import pytest

from audittrail.core.audit import (
    Audit,
    AuditEntry,
    AuditEntryProperty,
    AuditEntryState,
    JsonAuditEntry,
    XmlAuditEntry,
)
from audittrail.core.errors import AuditStateError


pytestmark = pytest.mark.unit


def make_entry(state: AuditEntryState = AuditEntryState.ENTITY_MODIFIED) -> AuditEntry:
    """Build a transient entry with two properties."""
    return AuditEntry(
        entity_set_name="customers",
        entity_type_name="Customer",
        entity_key="7",
        state=state,
        created_by="alice",
        created_date=datetime(2024, 1, 15, 10, 30, tzinfo=UTC),
        properties=[
            AuditEntryProperty(property_name="email", old_value="a@x.io", new_value="b@x.io"),
            AuditEntryProperty(property_name="name", old_value="Ada", new_value="Ada L."),
        ],
    )


class TestAuditEntryProperty:
    """Tests for the old/new value invariant."""

    @pytest.mark.parametrize(
        "state",
        [
            AuditEntryState.ENTITY_MODIFIED,
            AuditEntryState.ENTITY_SOFT_DELETED,
        ],
    )
    def test_both_values_allowed(self, state):
        AuditEntryProperty(property_name="x", old_value="1", new_value="2").validate_state(state)

    @pytest.mark.parametrize(
        "state",
        [AuditEntryState.ENTITY_ADDED, AuditEntryState.RELATIONSHIP_ADDED],
    )
    def test_old_value_rejected_for_additions(self, state):
        prop = AuditEntryProperty(property_name="x", old_value="1", new_value="2")

        with pytest.raises(AuditStateError) as exc_info:
            prop.validate_state(state)

        assert exc_info.value.details == {"state": state.value, "property_name": "x"}

    @pytest.mark.parametrize(
        "state",
        [AuditEntryState.ENTITY_DELETED, AuditEntryState.RELATIONSHIP_DELETED],
    )
    def test_new_value_rejected_for_deletions(self, state):
        prop = AuditEntryProperty(property_name="x", old_value="1", new_value="2")

        with pytest.raises(AuditStateError):
            prop.validate_state(state)

    def test_empty_property_valid_for_every_state(self):
        prop = AuditEntryProperty(property_name="x")
        for state in AuditEntryState:
            prop.validate_state(state)


class TestAuditEntry:
    """Tests for AuditEntry helpers."""

    def test_state_name(self):
        assert make_entry(AuditEntryState.ENTITY_SOFT_DELETED).state_name == "EntitySoftDeleted"

    def test_properties_keep_insertion_order(self):
        entry = make_entry()

        assert [p.property_name for p in entry.properties] == ["email", "name"]
        assert entry.properties[0].entry is entry

    def test_repr(self):
        assert "EntityModified" in repr(make_entry())


class TestProjections:
    """Tests for XmlAuditEntry and JsonAuditEntry projections."""

    def test_xml_projection_copies_header(self):
        entry = make_entry()

        xml_entry = XmlAuditEntry.from_audit_entry(entry)

        assert xml_entry.entity_set_name == "customers"
        assert xml_entry.entity_type_name == "Customer"
        assert xml_entry.entity_key == "7"
        assert xml_entry.state is AuditEntryState.ENTITY_MODIFIED
        assert xml_entry.created_by == "alice"
        assert xml_entry.created_date == entry.created_date

    def test_xml_projection_properties(self):
        xml_entry = XmlAuditEntry.from_audit_entry(make_entry())

        root = ET.fromstring(xml_entry.xml_properties)
        assert [e.get("name") for e in root.findall("property")] == ["email", "name"]

    def test_json_projection_properties(self):
        json_entry = JsonAuditEntry.from_audit_entry(make_entry())

        data = json.loads(json_entry.json_properties)
        assert data[1]["property_name"] == "name"
        assert data[1]["new_value"] == "Ada L."
        assert json_entry.state_name == "EntityModified"


class TestAuditDocuments:
    """Tests for whole-audit XML and JSON documents."""

    @pytest.fixture
    def audit(self) -> Audit:
        audit = Audit(author="alice")
        audit.entries.extend(
            [make_entry(), make_entry(AuditEntryState.ENTITY_SOFT_DELETED)]
        )
        return audit

    def test_to_xml(self, audit):
        root = ET.fromstring(audit.to_xml())

        assert root.tag == "audit"
        assert root.get("author") == "alice"
        entries = root.findall("entry")
        assert [e.get("state") for e in entries] == ["EntityModified", "EntitySoftDeleted"]
        assert entries[0].get("entity_key") == "7"
        assert len(entries[0].find("properties").findall("property")) == 2

    def test_to_json(self, audit):
        data = json.loads(audit.to_json())

        assert data["author"] == "alice"
        assert len(data["entries"]) == 2
        assert data["entries"][1]["state"] == "EntitySoftDeleted"
        assert data["entries"][0]["properties"][0]["old_value"] == "a@x.io"

    def test_projection_lists(self, audit):
        assert len(audit.to_xml_entries()) == 2
        assert all(isinstance(e, JsonAuditEntry) for e in audit.to_json_entries())
        assert len(audit) == 2
