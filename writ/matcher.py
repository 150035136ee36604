"""
Writ relevance matching.

Decides whether an ``(action, subject, attribute)`` query falls within a
rule's scope. Conditions and predicates are not evaluated here; a relevant
rule may still fail its conditions for a particular instance.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from .rule import MANAGE, Exact, Rule, RuleNotPublishedError, TypeRef, Wildcard

logger = logging.getLogger(__name__)


def _require_published(rule: Any) -> Rule:
    if not isinstance(rule, Rule):
        raise RuleNotPublishedError(rule)
    return rule


def _type_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


# ---------------------------------------------------------------------------
# Component matchers
# ---------------------------------------------------------------------------

def matches_action(rule: Rule, action: Any) -> bool:
    """Return True if the action, or the MANAGE wildcard, is in the expanded actions."""
    expanded = _require_published(rule).expanded_actions
    return MANAGE in expanded or action in expanded


def _matches_type_ref(ref: TypeRef, subject: Any) -> bool:
    cls = ref.type
    if subject is cls or isinstance(subject, cls):
        return True
    # Same class loaded twice (e.g. after a module reload) compares by name
    if _type_name(type(subject)) == _type_name(cls):
        return True
    return isinstance(subject, type) and issubclass(subject, cls)


def matches_subject(rule: Rule, subject: Any) -> bool:
    """Return True if any of the rule's subject references covers the subject.

    A subject is covered by the ALL wildcard, by an equal declared value,
    or by a declared class it is an instance of, shares a qualified type
    name with, or (when the subject is itself a class) inherits from.
    """
    for ref in rule.subject_refs:
        if isinstance(ref, Wildcard):
            return True
        if isinstance(ref, TypeRef):
            if _matches_type_ref(ref, subject):
                return True
        elif isinstance(ref, Exact) and ref.value == subject:
            return True
    return False


def matches_attribute(rule: Rule, attribute: Optional[str]) -> bool:
    """Return True if the attribute is within the rule's attribute scope.

    An attribute-scoped rule asked about no particular attribute answers
    with its own polarity, so a scoped deny still registers as a match.
    """
    if not rule.attributes:
        return True
    if attribute is None:
        return rule.permit
    return str(attribute) in rule.attributes


# ---------------------------------------------------------------------------
# Relevance
# ---------------------------------------------------------------------------

def relevant(
    rule: Rule, action: Any, subject: Any, attribute: Optional[str] = None
) -> bool:
    """Check whether a rule applies to an action, subject and attribute.

    Args:
        rule: A published Rule.
        action: The action being checked.
        subject: A subject instance, a class, or a mapping whose first value is
            used as the subject.
        attribute: Optional attribute name being accessed.

    Returns:
        True if the rule's scope covers the query.

    Raises:
        RuleNotPublishedError: When given a RuleDraft.
    """
    rule = _require_published(rule)
    if isinstance(subject, Mapping):
        subject = next(iter(subject.values()), None)
    if rule.match_all:
        return True
    return (
        matches_action(rule, action)
        and matches_subject(rule, subject)
        and matches_attribute(rule, attribute)
    )


def relevant_rules(
    rules: Iterable[Rule],
    action: Any,
    subject: Any,
    attribute: Optional[str] = None,
) -> list[Rule]:
    """Return the rules relevant to the query, most recently declared first.

    Precedence between the returned rules is left to the caller.
    """
    matched = [r for r in reversed(list(rules)) if relevant(r, action, subject, attribute)]
    logger.debug(
        "%d relevant rule(s) for action=%r subject=%r attribute=%r",
        len(matched),
        action,
        subject,
        attribute,
    )
    return matched
