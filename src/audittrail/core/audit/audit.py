"""The Audit object: every entry produced by one save call."""

from datetime import UTC, datetime

import structlog
from sqlalchemy.orm import Session

from audittrail.core.audit.collector import collect_changes, resolve_generated_values
from audittrail.core.audit.configuration import AuditConfiguration, AuditManager
from audittrail.core.audit.context import resolve_author
from audittrail.core.audit.formatting import audit_to_json, audit_to_xml
from audittrail.core.audit.models import AuditEntry, JsonAuditEntry, XmlAuditEntry


log = structlog.get_logger()


class Audit:
    """Collects the changes of one save and exposes their projections.

    Example:
        audit = Audit(author="alice")
        save_changes(session, audit)
        for entry in audit.entries:
            print(entry.state_name, entry.entity_type_name, entry.entity_key)

    Attributes:
        author: Recorded as ``created_by`` on every entry
        configuration: Policy and dispatch settings for this save
        entries: Captured entries, in capture order
        created_date: When the Audit was created
    """

    def __init__(
        self,
        author: str | None = None,
        configuration: AuditConfiguration | None = None,
    ) -> None:
        self.author = resolve_author(author)
        self.configuration = configuration or AuditManager.default_configuration.copy()
        self.entries: list[AuditEntry] = []
        self.created_date = datetime.now(UTC)
        # Entries before these offsets are already resolved / dispatched
        self._resolved = 0
        self._dispatched = 0

    def pre_save_changes(self, session: Session) -> list[AuditEntry]:
        """Capture the session's pending changes. Call before flushing.

        Returns:
            Entries captured by this call (also appended to ``entries``)
        """
        if not self.configuration.is_enabled:
            return []

        entries = collect_changes(self, session)
        self.entries.extend(entries)
        if entries:
            log.info(
                "audit_changes_captured",
                author=self.author,
                count=len(entries),
            )
        return entries

    def post_save_changes(self) -> None:
        """Resolve database-generated keys and values. Call after flushing.

        Only entries captured since the previous call are resolved, so a
        reused Audit keeps the values of earlier saves.
        """
        pending = self.entries[self._resolved :]
        if pending:
            resolve_generated_values(self.configuration, pending)
        self._resolved = len(self.entries)

    def undispatched_entries(self) -> list[AuditEntry]:
        """Entries not yet handed to an auto-save target."""
        return self.entries[self._dispatched :]

    def mark_dispatched(self) -> None:
        self._dispatched = len(self.entries)

    def to_xml_entries(self) -> list[XmlAuditEntry]:
        """Project entries into XmlAuditEntry rows (not added to any session)."""
        return [XmlAuditEntry.from_audit_entry(entry) for entry in self.entries]

    def to_json_entries(self) -> list[JsonAuditEntry]:
        """Project entries into JsonAuditEntry rows (not added to any session)."""
        return [JsonAuditEntry.from_audit_entry(entry) for entry in self.entries]

    def to_xml(self) -> str:
        """Render the whole audit as one XML document."""
        return audit_to_xml(self)

    def to_json(self, indent: int | None = None) -> str:
        """Render the whole audit as one JSON document."""
        return audit_to_json(self, indent=indent)

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"<Audit(author={self.author}, entries={len(self.entries)})>"
