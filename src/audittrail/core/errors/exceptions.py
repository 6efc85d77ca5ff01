"""Exceptions raised by the audit trail.

Every error carries a machine-readable ``error_code`` and a ``details``
dict so callers can log or report them without parsing messages.
"""

from typing import Any


class AuditError(Exception):
    """Base exception for all audit trail errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Additional error details
    """

    message: str = "An unexpected audit error occurred"
    error_code: str = "audit_error"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class AuditConfigurationError(AuditError):
    """Raised when an audit configuration is invalid.

    Example:
        raise AuditConfigurationError(
            "auto_save_set must be an audit model",
            details={"auto_save_set": repr(value)},
        )
    """

    message = "Invalid audit configuration"
    error_code = "audit_configuration_error"


class AuditStateError(AuditError):
    """Raised when an entry or property breaks the state invariants.

    Example:
        raise AuditStateError(
            "Added entries cannot carry an old value",
            state="EntityAdded",
            property_name="email",
        )
    """

    message = "Audit entry state violation"
    error_code = "audit_state_error"

    def __init__(
        self,
        message: str | None = None,
        state: str | None = None,
        property_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if state:
            details["state"] = state
        if property_name:
            details["property_name"] = property_name
        super().__init__(message=message, details=details, **kwargs)


class AuditDispatchError(AuditError):
    """Raised when finished entries cannot be handed to their target.

    The original exception is chained as ``__cause__``.
    """

    message = "Failed to dispatch audit entries"
    error_code = "audit_dispatch_error"


class AuditNotFoundError(AuditError):
    """Raised when a requested audit entry does not exist.

    Example:
        raise AuditNotFoundError("Audit entry not found", entry_id=42)
    """

    message = "Audit entry not found"
    error_code = "audit_not_found"

    def __init__(
        self,
        message: str | None = None,
        entry_id: int | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if entry_id is not None:
            details["entry_id"] = entry_id
        super().__init__(message=message, details=details, **kwargs)
