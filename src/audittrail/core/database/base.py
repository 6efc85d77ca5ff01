"""SQLAlchemy declarative base for the audit tables and model mixins."""

from sqlalchemy import Boolean
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for the audit trail's own tables.

    Application models keep their own declarative base; both can share
    one engine and one session.
    """

    pass


class AuditMixin:
    """Marker mixin to opt a model into auditing.

    The policy engine reads ``__audit__`` as the starting decision for
    an entity before any include/exclude rule is applied. Models without
    the attribute are audited; set ``__audit__ = False`` to opt out.

    Example:
        class Invoice(AppBase, AuditMixin):
            __tablename__ = "invoices"
            __audit_exclude__ = ("internal_notes",)
            total: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    """

    # Marker attribute checked by the policy engine
    __audit__: bool = True


class SoftDeleteMixin:
    """Mixin that adds an ``is_deleted`` flag.

    Pair it with ``AuditConfiguration.soft_deleted(is_soft_deleted)`` to
    record flag flips as EntitySoftDeleted instead of EntityModified.
    """

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )


def is_soft_deleted(obj: object) -> bool:
    """Soft-delete predicate for models using SoftDeleteMixin."""
    return isinstance(obj, SoftDeleteMixin) and bool(obj.is_deleted)
