"""Request middleware that feeds the audit context.

Add it inside any authentication middleware so ``request.state.user_id``
is already set when it runs:

    app.add_middleware(AuditContextMiddleware)
"""

from typing import TYPE_CHECKING

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from audittrail.constants import AUTHOR_HEADER
from audittrail.core.audit.context import clear_audit_context, set_audit_context


if TYPE_CHECKING:
    from starlette.types import ASGIApp


logger = structlog.get_logger()


class AuditContextMiddleware(BaseHTTPMiddleware):
    """Middleware that sets the audit author and request metadata.

    The author is taken from ``request.state.user_id`` when present,
    otherwise from the ``X-Audit-Author`` header. Requests with neither
    fall back to the configured default author.

    Attributes:
        exclude_paths: Paths that never touch audited data
        trust_author_header: Whether the author header is honoured
    """

    def __init__(
        self,
        app: "ASGIApp",
        exclude_paths: list[str] | None = None,
        trust_author_header: bool = True,
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
        ]
        self.trust_author_header = trust_author_header

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Set the audit context for the duration of the request.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            The response from the handler
        """
        # Skip for excluded paths
        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        author = getattr(request.state, "user_id", None)
        if author is None and self.trust_author_header:
            author = request.headers.get(AUTHOR_HEADER)

        request_id = getattr(request.state, "request_id", None) or request.headers.get(
            "X-Request-ID"
        )

        set_audit_context(
            author=str(author) if author is not None else None,
            request_id=request_id,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        logger.debug("audit_context_set", author=author, request_id=request_id)
        try:
            return await call_next(request)
        finally:
            clear_audit_context()


def get_client_ip(request: Request) -> str | None:
    """Extract the real client IP from a request.

    Handles X-Forwarded-For header for proxied requests.

    Args:
        request: The incoming request

    Returns:
        The client IP address or None
    """
    # X-Forwarded-For can contain multiple IPs; the first is the original client
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return None
