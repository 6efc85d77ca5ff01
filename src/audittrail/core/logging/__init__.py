"""Structured logging setup."""

from audittrail.core.logging.setup import configure_logging


__all__ = [
    "configure_logging",
]
