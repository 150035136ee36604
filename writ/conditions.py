"""
Writ condition classification and condition-derived views.

Tells a query layer how a rule's conditions should be applied (defer to the
predicate, pass a raw fragment through, or merge a condition mapping) and
extracts the association paths and default attribute values a condition
mapping implies.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

from .rule import SEQUENCE_TYPES, Rule, RuleDraft

AnyRule = Union[Rule, RuleDraft]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def conditions_empty(rule: AnyRule) -> bool:
    return isinstance(rule.conditions, Mapping) and len(rule.conditions) == 0


def only_predicate(rule: AnyRule) -> bool:
    """True when the rule has a predicate and no conditions to merge into a query."""
    return conditions_empty(rule) and rule.predicate is not None


def only_raw_fragment(rule: AnyRule) -> bool:
    """True when the conditions are a raw fragment to hand to the query layer as-is."""
    return (
        rule.predicate is None
        and not conditions_empty(rule)
        and not isinstance(rule.conditions, Mapping)
    )


def unmergeable(rule: AnyRule) -> bool:
    """True when the condition mapping is keyed by raw parameters.

    Such a rule's conditions cannot be combined with other rules' condition
    mappings into a single query. Only the first key is inspected.
    """
    conditions = rule.conditions
    if not isinstance(conditions, Mapping) or len(conditions) == 0:
        return False
    first_key = next(iter(conditions))
    return not isinstance(first_key, str)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

def associations_hash(conditions: Any) -> dict:
    """Extract the nested association paths touched by a condition mapping.

    Every key whose value is itself a mapping is kept, mapped to the
    associations of that nested mapping; scalar-valued keys are dropped.

    Args:
        conditions: A condition mapping. Anything else yields an empty dict.

    Returns:
        A new dict of association name to nested association dict, e.g.
        ``{"author": {"company": {}}}``.
    """
    associations: dict = {}
    if isinstance(conditions, Mapping):
        for name, value in conditions.items():
            if isinstance(value, Mapping):
                associations[name] = associations_hash(value)
    return associations


def attributes_from_conditions(rule: AnyRule) -> dict:
    """Extract default attribute values from a rule's top-level conditions.

    Sequence, range and mapping values describe filters rather than single
    values and are skipped.
    """
    attributes: dict = {}
    if isinstance(rule.conditions, Mapping):
        for key, value in rule.conditions.items():
            if not isinstance(value, SEQUENCE_TYPES + (range, Mapping)):
                attributes[key] = value
    return attributes
