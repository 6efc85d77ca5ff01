"""Async-safe audit context.

Holds the author and request metadata for the current task so that
automatically created Audit objects can attribute their entries.
"""

from contextvars import ContextVar
from typing import Any

from audittrail.config import settings


# ContextVar for async-safe audit context storage
# Each async task/request gets its own isolated context
_audit_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "audit_context", default=None
)


def set_audit_context(
    author: str | None = None,
    request_id: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Set the audit context for the current task.

    Creates a new dict so concurrent requests stay isolated.

    Args:
        author: Author recorded on captured entries
        request_id: Request correlation ID
        ip_address: Client IP address
        user_agent: Client user agent
    """
    _audit_context.set(
        {
            "author": author,
            "request_id": request_id,
            "ip_address": ip_address,
            "user_agent": user_agent,
        }
    )


def clear_audit_context() -> None:
    """Clear the audit context after the request completes."""
    _audit_context.set(None)


def get_audit_context() -> dict[str, Any]:
    """Get the current audit context.

    Returns:
        Shallow copy of current audit context dict, or empty dict if not set
    """
    ctx = _audit_context.get()
    if ctx is None:
        return {}
    return ctx.copy()


def resolve_author(author: str | None = None) -> str:
    """Pick the author for a new Audit.

    Explicit author first, then the context author, then
    ``settings.default_author``.
    """
    if author:
        return author
    return get_audit_context().get("author") or settings.default_author
