"""Automatic audit capture via SQLAlchemy session events.

Once installed, every flush of the target sessions is audited without
calling ``save_changes`` explicitly:

    listener = AuditListener(configuration)
    listener.install(SessionLocal)  # a sessionmaker, Session class or session
"""

from typing import Any

import structlog
from sqlalchemy import event
from sqlalchemy.orm import Session

from audittrail.constants import SESSION_AUDIT_KEY, SESSION_RETAINED_KEY, SESSION_SUPPRESS_KEY
from audittrail.core.audit.audit import Audit
from audittrail.core.audit.configuration import AuditConfiguration, AuditManager
from audittrail.core.audit.dispatcher import dispatch


log = structlog.get_logger()


class AuditListener:
    """Registers flush hooks that capture, resolve and dispatch audits.

    The Audit for a flush lives in ``session.info`` between the hooks and
    is dropped after dispatch unless ``retain_entries`` is configured.

    Note:
        An ``auto_save_action`` runs inside ``after_flush_postexec`` and
        must not flush the session; rows it adds are written by the next
        flush or the commit.
    """

    def __init__(self, configuration: AuditConfiguration | None = None) -> None:
        self.configuration = configuration
        self._targets: list[Any] = []

    def _configuration(self) -> AuditConfiguration:
        if self.configuration is not None:
            return self.configuration.copy()
        return AuditManager.default_configuration.copy()

    def install(self, target: Any = Session) -> "AuditListener":
        """Listen on a Session class, sessionmaker or session instance.

        Call this during application startup.
        """
        event.listen(target, "before_flush", self.before_flush)
        event.listen(target, "after_flush", self.after_flush)
        event.listen(target, "after_flush_postexec", self.after_flush_postexec)
        event.listen(target, "after_rollback", self.after_rollback)
        self._targets.append(target)
        log.info("audit_listener_installed", target=repr(target))
        return self

    def remove(self) -> None:
        """Remove the hooks from every target they were installed on."""
        for target in self._targets:
            event.remove(target, "before_flush", self.before_flush)
            event.remove(target, "after_flush", self.after_flush)
            event.remove(target, "after_flush_postexec", self.after_flush_postexec)
            event.remove(target, "after_rollback", self.after_rollback)
        self._targets.clear()

    def before_flush(
        self,
        session: Session,
        _flush_context: Any,
        _instances: Any,
    ) -> None:
        """Capture changes before they're flushed to the database."""
        if session.info.get(SESSION_SUPPRESS_KEY):
            return

        audit = session.info.get(SESSION_AUDIT_KEY)
        if audit is None:
            audit = Audit(configuration=self._configuration())
            session.info[SESSION_AUDIT_KEY] = audit
        audit.pre_save_changes(session)

    def after_flush(self, session: Session, _flush_context: Any) -> None:
        """Read keys the database generated for inserted rows."""
        audit = session.info.get(SESSION_AUDIT_KEY)
        if audit is not None:
            audit.post_save_changes()

    def after_flush_postexec(self, session: Session, _flush_context: Any) -> None:
        """Dispatch the finished audit and release it."""
        audit = session.info.pop(SESSION_AUDIT_KEY, None)
        if audit is None or not audit.entries:
            return

        dispatch(session, audit)
        if audit.configuration.retain_entries:
            session.info.setdefault(SESSION_RETAINED_KEY, []).append(audit)

    def after_rollback(self, session: Session) -> None:
        """Drop an audit whose flush never completed."""
        if session.info.pop(SESSION_AUDIT_KEY, None) is not None:
            log.warning("audit_discarded_on_rollback")


def retained_audits(session: Session) -> list[Audit]:
    """Audits kept on ``session`` by a listener with ``retain_entries``."""
    return list(session.info.get(SESSION_RETAINED_KEY, []))


def clear_retained_audits(session: Session) -> None:
    """Forget audits retained on ``session``."""
    session.info.pop(SESSION_RETAINED_KEY, None)
