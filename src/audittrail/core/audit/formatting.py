"""Value formatting and the XML/JSON projections of audit properties.

Raw attribute values are normalized to JSON-compatible primitives and
then rendered as text, which is what AuditEntryProperty stores.
"""

import json
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

from audittrail.core.audit.schemas import AuditEntryPropertyRead, AuditRead, PropertyListAdapter


if TYPE_CHECKING:
    from audittrail.core.audit.audit import Audit


class PropertyLike(Protocol):
    relation_name: str | None
    property_name: str
    old_value: str | None
    new_value: str | None


def serialize_value(value: Any) -> Any:
    """Serialize a value to JSON-compatible primitives.

    Recursively converts non-JSON-serializable types to their
    string or primitive representations.

    Args:
        value: Any value to serialize

    Returns:
        JSON-serializable representation of the value
    """
    # Pass through JSON primitives
    if value is None or isinstance(value, str | int | float | bool):
        return value

    result: Any
    if isinstance(value, UUID):
        result = str(value)
    elif isinstance(value, datetime | date):
        result = value.isoformat()
    elif isinstance(value, Decimal):
        result = str(value)
    elif isinstance(value, Enum):
        result = serialize_value(value.value)
    elif isinstance(value, bytes):
        result = value.hex()
    elif isinstance(value, dict):
        result = {str(k): serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list | tuple | set | frozenset):
        result = [serialize_value(item) for item in value]
    else:
        # Fallback: convert to string
        result = str(value)

    return result


def format_value(value: Any) -> str | None:
    """Render a raw attribute value as the text stored in the audit tables.

    ``None`` stays ``None`` so a missing value is distinguishable from an
    empty string. Containers are rendered as JSON.
    """
    if value is None:
        return None

    serialized = serialize_value(value)
    if isinstance(serialized, dict | list):
        return json.dumps(serialized, sort_keys=True)
    return str(serialized)


def _properties_element(properties: Iterable[PropertyLike]) -> ET.Element:
    root = ET.Element("properties")
    for prop in properties:
        element = ET.SubElement(root, "property", name=prop.property_name)
        if prop.relation_name:
            element.set("relation", prop.relation_name)
        # A missing element means None; an empty element means ""
        if prop.old_value is not None:
            ET.SubElement(element, "oldValue").text = prop.old_value
        if prop.new_value is not None:
            ET.SubElement(element, "newValue").text = prop.new_value
    return root


def properties_to_xml(properties: Iterable[PropertyLike]) -> str:
    """Serialize properties into the ``xml_properties`` document.

    Example output:
        <properties><property name="email"><oldValue>a@x.io</oldValue>
        <newValue>b@x.io</newValue></property></properties>
    """
    return ET.tostring(_properties_element(properties), encoding="unicode")


def properties_to_json(properties: Iterable[PropertyLike]) -> str:
    """Serialize properties into the ``json_properties`` document."""
    rows = [AuditEntryPropertyRead.model_validate(prop) for prop in properties]
    return PropertyListAdapter.dump_json(rows).decode()


def audit_to_xml(audit: "Audit") -> str:
    """Render every entry of an audit as one XML document."""
    root = ET.Element(
        "audit",
        author=audit.author,
        created_date=audit.created_date.isoformat(),
    )
    for entry in audit.entries:
        element = ET.SubElement(
            root,
            "entry",
            entity_set_name=entry.entity_set_name,
            entity_type_name=entry.entity_type_name,
            state=entry.state.value,
        )
        if entry.entity_key is not None:
            element.set("entity_key", entry.entity_key)
        if entry.created_by is not None:
            element.set("created_by", entry.created_by)
        element.append(_properties_element(entry.properties))
    return ET.tostring(root, encoding="unicode")


def audit_to_json(audit: "Audit", indent: int | None = None) -> str:
    """Render every entry of an audit as one JSON document."""
    return AuditRead.model_validate(audit).model_dump_json(indent=indent)
