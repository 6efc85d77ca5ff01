"""Persistence dispatcher and the explicit save API.

Routes finished entries to ``auto_save_action`` when one is configured,
otherwise adds the ``auto_save_set`` projection to the session.
"""

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy.orm import Session

from audittrail.constants import SESSION_SUPPRESS_KEY
from audittrail.core.audit.audit import Audit
from audittrail.core.audit.models import AuditEntry
from audittrail.core.errors import AuditDispatchError, AuditError


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


log = structlog.get_logger()


def build_records(entries: list[AuditEntry], auto_save_set: type) -> list[Any]:
    """Build the rows to persist for ``entries`` in the ``auto_save_set`` shape."""
    if issubclass(auto_save_set, AuditEntry):
        return list(entries)
    return [auto_save_set.from_audit_entry(entry) for entry in entries]


def dispatch(session: Session, audit: Audit) -> int:
    """Hand entries not yet dispatched to their configured target.

    An Audit reused across saves only dispatches the entries captured
    since its previous dispatch. Inside an ``auto_save_action`` those are
    ``audit.undispatched_entries()``.

    Args:
        session: Session the audited changes were flushed with
        audit: Audit whose entries are complete

    Returns:
        Number of records added to the session (0 for custom actions)

    Raises:
        AuditDispatchError: If the auto-save action fails
    """
    configuration = audit.configuration
    entries = audit.undispatched_entries()
    if not entries:
        return 0

    if configuration.auto_save_action is not None:
        try:
            configuration.auto_save_action(session, audit)
        except AuditError:
            raise
        except Exception as exc:
            log.exception(
                "audit_dispatch_failed",
                author=audit.author,
                entries=len(entries),
                error=str(exc),
            )
            raise AuditDispatchError(
                "auto_save_action failed",
                details={"entries": len(entries), "error": str(exc)},
            ) from exc
        audit.mark_dispatched()
        log.info("audit_dispatched", target="action", entries=len(entries))
        return 0

    if configuration.auto_save_set is None:
        return 0

    records = build_records(entries, configuration.auto_save_set)
    session.add_all(records)
    audit.mark_dispatched()
    log.info(
        "audit_dispatched",
        target=configuration.auto_save_set.__name__,
        entries=len(records),
    )
    return len(records)


def save_changes(session: Session, audit: Audit | None = None) -> Audit:
    """Flush ``session`` while capturing an audit of the flushed changes.

    Captures, flushes, resolves generated keys, dispatches and flushes the
    dispatched rows. Committing stays with the caller.

    Example:
        audit = save_changes(session, Audit(author="alice"))
        session.commit()

    Returns:
        The audit holding the captured entries
    """
    audit = audit if audit is not None else Audit()

    # Keep an installed AuditListener from capturing the same flush twice
    previous = session.info.get(SESSION_SUPPRESS_KEY, False)
    session.info[SESSION_SUPPRESS_KEY] = True
    try:
        audit.pre_save_changes(session)
        session.flush()
        audit.post_save_changes()
        if dispatch(session, audit):
            session.flush()
    finally:
        session.info[SESSION_SUPPRESS_KEY] = previous

    return audit


async def save_changes_async(session: "AsyncSession", audit: Audit | None = None) -> Audit:
    """Async variant of :func:`save_changes` for ``AsyncSession``."""
    audit = audit if audit is not None else Audit()
    return await session.run_sync(save_changes, audit)
