"""Audit entry repository for reading the trail back."""

from typing import Any

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session, selectinload

from audittrail.constants import ENTITY_KEY_SEPARATOR, MAX_LIST_LIMIT
from audittrail.core.audit.enums import AuditEntryState
from audittrail.core.audit.models import AuditEntry
from audittrail.core.errors import AuditNotFoundError


class AuditRepository:
    """Repository for AuditEntry queries.

    Works on the row-per-property tables (``AuditEntry`` and
    ``AuditEntryProperty``).
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, entry_id: int) -> AuditEntry:
        """Get an entry with its properties.

        Raises:
            AuditNotFoundError: If no entry has this ID
        """
        stmt = (
            select(AuditEntry)
            .where(AuditEntry.id == entry_id)
            .options(selectinload(AuditEntry.properties))
        )
        entry = self.session.execute(stmt).scalar_one_or_none()
        if entry is None:
            raise AuditNotFoundError(entry_id=entry_id)
        return entry

    def where_entity(self, entity: Any, *key: Any) -> list[AuditEntry]:
        """Entries recorded for one entity, oldest first.

        Args:
            entity: A mapped instance, or a mapped class followed by its key
            key: Primary key parts when ``entity`` is a class

        Example:
            repo.where_entity(invoice)
            repo.where_entity(Invoice, 42)
        """
        if isinstance(entity, type):
            entity_type_name = entity.__name__
            if not key:
                return self.for_entity_type(entity_type_name)
            values = key
        else:
            entity_type_name = type(entity).__name__
            values = tuple(inspect(entity).identity or ())

        entity_key = ENTITY_KEY_SEPARATOR.join(str(value) for value in values)
        stmt = (
            select(AuditEntry)
            .where(
                AuditEntry.entity_type_name == entity_type_name,
                AuditEntry.entity_key == entity_key,
            )
            .order_by(AuditEntry.created_date, AuditEntry.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def for_entity_type(self, entity_type_name: str) -> list[AuditEntry]:
        """Entries for every instance of one entity type, oldest first."""
        stmt = (
            select(AuditEntry)
            .where(AuditEntry.entity_type_name == entity_type_name)
            .order_by(AuditEntry.created_date, AuditEntry.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def by_author(self, author: str) -> list[AuditEntry]:
        """Entries recorded by one author, oldest first."""
        stmt = (
            select(AuditEntry)
            .where(AuditEntry.created_by == author)
            .order_by(AuditEntry.created_date, AuditEntry.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def latest(
        self,
        limit: int = 20,
        entity_type_name: str | None = None,
        author: str | None = None,
        state: AuditEntryState | None = None,
    ) -> tuple[list[AuditEntry], int]:
        """Most recent entries, newest first, with the total match count.

        Args:
            limit: Maximum number of entries returned (capped)
            entity_type_name: Optional entity type filter
            author: Optional author filter
            state: Optional state filter

        Returns:
            Tuple of (entries list, total count)
        """
        filters = []
        if entity_type_name:
            filters.append(AuditEntry.entity_type_name == entity_type_name)
        if author:
            filters.append(AuditEntry.created_by == author)
        if state:
            filters.append(AuditEntry.state == state)

        count_stmt = select(func.count()).select_from(AuditEntry).where(*filters)
        total = self.session.execute(count_stmt).scalar_one()

        stmt = (
            select(AuditEntry)
            .where(*filters)
            .order_by(AuditEntry.created_date.desc(), AuditEntry.id.desc())
            .limit(min(limit, MAX_LIST_LIMIT))
        )
        return list(self.session.execute(stmt).scalars().all()), total
