"""Inclusion/exclusion policy engine.

Decides which entities and which properties are captured. Rules are
evaluated in registration order and the last matching rule wins, so a
broad exclusion can be followed by narrow inclusions:

    config.exclude_entity(lambda obj: True)
    config.include_entity(Invoice)
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from audittrail.core.audit.models import AUDIT_MODELS


if TYPE_CHECKING:
    from audittrail.core.audit.configuration import AuditConfiguration


# A mapped class (matches subclasses too) or a predicate on the instance
EntityTarget = type | Callable[[Any], bool]
ValueFormatter = Callable[[Any], Any]


def match_target(target: EntityTarget, obj: Any) -> bool:
    """Check whether ``obj`` is selected by a class or predicate target."""
    if isinstance(target, type):
        return isinstance(obj, target)
    return bool(target(obj))


@dataclass(frozen=True)
class EntityRule:
    """Include or exclude every instance selected by ``target``."""

    target: EntityTarget
    include: bool

    def matches(self, obj: Any) -> bool:
        return match_target(self.target, obj)


@dataclass(frozen=True)
class PropertyRule:
    """Include or exclude properties of instances selected by ``target``.

    An empty ``names`` set selects every property.
    """

    target: EntityTarget
    names: frozenset[str]
    include: bool

    def matches(self, obj: Any, name: str) -> bool:
        if self.names and name not in self.names:
            return False
        return match_target(self.target, obj)


@dataclass(frozen=True)
class FormatRule:
    """Custom value formatter for one property of selected instances."""

    target: EntityTarget
    name: str
    formatter: ValueFormatter

    def matches(self, obj: Any, name: str) -> bool:
        return name == self.name and match_target(self.target, obj)


def should_audit_entity(configuration: "AuditConfiguration", obj: Any) -> bool:
    """Decide whether changes to ``obj`` are captured.

    The class marker ``__audit__`` gives the starting decision (audited
    when absent); entity rules then override it in order.
    """
    if isinstance(obj, AUDIT_MODELS):
        return False

    decision = bool(getattr(obj, "__audit__", True))
    for rule in configuration.entity_rules:
        if rule.matches(obj):
            decision = rule.include
    return decision


def should_audit_property(configuration: "AuditConfiguration", obj: Any, name: str) -> bool:
    """Decide whether property ``name`` of ``obj`` is captured.

    Names listed in the class attribute ``__audit_exclude__`` start out
    excluded; property rules then override the decision in order.
    """
    decision = name not in getattr(type(obj), "__audit_exclude__", ())
    for rule in configuration.property_rules:
        if rule.matches(obj, name):
            decision = rule.include
    return decision


def is_soft_deleted(configuration: "AuditConfiguration", obj: Any) -> bool:
    """Check whether a modified ``obj`` is a soft delete."""
    return any(predicate(obj) for predicate in configuration.soft_delete_predicates)


def find_formatter(
    configuration: "AuditConfiguration",
    obj: Any,
    name: str,
) -> ValueFormatter | None:
    """Return the last registered formatter matching ``obj.name``, if any."""
    found = None
    for rule in configuration.format_rules:
        if rule.matches(obj, name):
            found = rule.formatter
    return found
