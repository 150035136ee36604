"""
Writ rule data model and construction.

A rule is one declared permission statement: grant or revoke some actions
on some subjects, optionally scoped to attributes and guarded by a mapping
of conditions, a raw query fragment, or a predicate. Rules are built as
drafts and published once their expanded action set is known.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MANAGE = "manage"
ALL = "all"

SEQUENCE_TYPES = (list, tuple, set, frozenset)


# ---------------------------------------------------------------------------
# Error classes
# ---------------------------------------------------------------------------

class WritError(Exception):
    """Base class for all Writ errors."""


class BlockAndConditionsError(WritError):
    """Raised when a rule is declared with both a condition mapping and a predicate."""

    def __init__(self, action: Any, subject: Any):
        self.action = action
        self.subject = subject
        super().__init__(
            "A mapping of conditions is mutually exclusive with a predicate. "
            f"Check {action} {subject} ability."
        )


class RuleNotPublishedError(WritError):
    """Raised when a draft rule is used for matching before being published."""

    def __init__(self, draft: Any):
        self.draft = draft
        actions = list(getattr(draft, "actions", ()))
        subjects = list(getattr(draft, "subjects", ()))
        super().__init__(
            f"Rule for {actions} {subjects} has no expanded actions; "
            "publish() it before matching"
        )


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawFragment:
    """An opaque, driver-specific query condition passed through verbatim."""
    payload: Any


@dataclass(frozen=True)
class Wildcard:
    """Subject reference matching every subject."""


@dataclass(frozen=True)
class TypeRef:
    """Subject reference to a class; matches instances and subclasses."""
    type: type


@dataclass(frozen=True)
class Exact:
    """Subject reference matched by equality."""
    value: Any


SubjectRef = Union[Wildcard, TypeRef, Exact]
Conditions = Union[Mapping, RawFragment]
Predicate = Callable[[Any], bool]


def _empty_conditions() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True, eq=False)
class RuleDraft:
    """A constructed rule still waiting for its expanded action set."""
    permit: bool
    actions: tuple
    subjects: tuple
    subject_refs: tuple[SubjectRef, ...] = ()
    attributes: frozenset[str] = frozenset()
    conditions: Conditions = field(default_factory=_empty_conditions)
    predicate: Optional[Predicate] = None
    match_all: bool = False

    @property
    def base_behavior(self) -> bool:
        return self.permit

    def publish(self, expanded_actions: Iterable[str]) -> "Rule":
        """Attach the expanded action set and return the matchable Rule.

        The declared actions are always folded into the expanded set, so
        callers only need to supply the aliases they resolved.

        Args:
            expanded_actions: Declared actions plus every alias resolved for them.

        Returns:
            A frozen Rule ready for relevance matching.
        """
        expanded = frozenset(expanded_actions) | frozenset(self.actions)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Published %s rule for actions=%s subjects=%s expanded=%s",
                "permit" if self.permit else "deny",
                list(self.actions),
                list(self.subjects),
                sorted(map(str, expanded)),
            )
        return Rule(
            permit=self.permit,
            actions=self.actions,
            subjects=self.subjects,
            subject_refs=self.subject_refs,
            attributes=self.attributes,
            conditions=self.conditions,
            predicate=self.predicate,
            match_all=self.match_all,
            expanded_actions=expanded,
        )


@dataclass(frozen=True, eq=False)
class Rule:
    """A published, read-only rule with its expanded action set."""
    permit: bool
    actions: tuple
    subjects: tuple
    subject_refs: tuple[SubjectRef, ...] = ()
    attributes: frozenset[str] = frozenset()
    conditions: Conditions = field(default_factory=_empty_conditions)
    predicate: Optional[Predicate] = None
    match_all: bool = False
    expanded_actions: frozenset = frozenset()

    @property
    def base_behavior(self) -> bool:
        return self.permit


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------

def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, SEQUENCE_TYPES):
        return tuple(value)
    return (value,)


def subject_ref(subject: Any) -> SubjectRef:
    """Classify a declared subject as a wildcard, class reference, or exact value."""
    if isinstance(subject, str) and subject == ALL:
        return Wildcard()
    if isinstance(subject, type):
        return TypeRef(subject)
    return Exact(subject)


def _normalize_conditions(conditions: Any) -> Conditions:
    if conditions is None:
        return _empty_conditions()
    if isinstance(conditions, Mapping):
        return MappingProxyType(dict(conditions))
    if isinstance(conditions, RawFragment):
        return conditions
    return RawFragment(conditions)


def _is_attribute_arg(arg: Any) -> bool:
    if arg is None or isinstance(arg, str):
        return True
    return isinstance(arg, SEQUENCE_TYPES) and len(arg) > 0 and isinstance(next(iter(arg)), str)


def _check_conditions_and_predicate(
    conditions: Any, predicate: Optional[Predicate], action: Any, subject: Any
) -> None:
    if predicate is None:
        return
    if isinstance(conditions, Mapping) and len(conditions) > 0:
        raise BlockAndConditionsError(action, subject)


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def build_attribute_rule(
    permit: bool,
    action: Any,
    subject: Any,
    attributes: Any,
    conditions: Any = None,
    *,
    predicate: Optional[Predicate] = None,
) -> RuleDraft:
    """Build a rule scoped to specific attributes of the matched subjects.

    Args:
        permit: True for a granting rule, False for a revoking one.
        action: An action id, a collection of them, or None.
        subject: A subject (value, class or ALL), a collection of them, or None.
        attributes: An attribute id, a collection of them, or None for all.
        conditions: A mapping of attribute constraints, a RawFragment, any
            other opaque raw payload, or None.
        predicate: Optional callable taking a subject instance.

    Returns:
        A RuleDraft; call publish() on it before matching.

    Raises:
        BlockAndConditionsError: When a non-empty condition mapping and a
            predicate are both given.
    """
    _check_conditions_and_predicate(conditions, predicate, action, subject)
    subjects = _as_tuple(subject)
    return RuleDraft(
        permit=bool(permit),
        actions=_as_tuple(action),
        subjects=subjects,
        subject_refs=tuple(subject_ref(s) for s in subjects),
        attributes=frozenset(str(a) for a in _as_tuple(attributes)),
        conditions=_normalize_conditions(conditions),
        predicate=predicate,
        match_all=action is None and subject is None,
    )


def build_rule(
    permit: bool,
    action: Any,
    subject: Any,
    conditions: Any = None,
    *,
    predicate: Optional[Predicate] = None,
) -> RuleDraft:
    """Build a rule that applies to every attribute of the matched subjects."""
    return build_attribute_rule(
        permit, action, subject, None, conditions, predicate=predicate
    )


def parse_rule(
    permit: bool,
    action: Any,
    subject: Any,
    *extra: Any,
    predicate: Optional[Predicate] = None,
) -> RuleDraft:
    """Build a rule from the positional ``(attributes?, conditions?)`` form.

    The first extra argument is read as attributes when it is an identifier,
    a non-empty sequence starting with an identifier, or None; otherwise it
    is read as the conditions. Raw string fragments must be wrapped in
    RawFragment to avoid being taken for attribute names.
    """
    args = list(extra)
    attributes = None
    if args and _is_attribute_arg(args[0]):
        attributes = args.pop(0)
    conditions = args.pop(0) if args else None
    return build_attribute_rule(
        permit, action, subject, attributes, conditions, predicate=predicate
    )
