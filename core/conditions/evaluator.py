"""Condition tree evaluation.

Two entry points with different top-level semantics:

- ``evaluate_condition_group``: full recursive AND/OR. The quote calculator
  uses this to decide whether a rule applies.
- ``evaluate_rule``: the rule-testing path. Each top-level entry is evaluated
  on its own and the entries are always combined with AND, even when the
  root group says OR. Nested groups below the top level still honour their
  own operator.

Both are pure and never raise on malformed conditions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from core.conditions.model import (
    Condition,
    ConditionGroup,
    GroupOperator,
    InvalidCondition,
    LeafResult,
    Node,
    normalize_conditions,
    parse_node,
)
from core.conditions.operators import MISSING, evaluate_operator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Record lookup
# ---------------------------------------------------------------------------

def get_nested_value(record: Any, path: str) -> Any:
    """Resolve a dot path (``"student_details.nationality"``) in a record.

    Mappings are indexed by key, sequences by integer segment, anything else
    by attribute. Returns ``MISSING`` when a segment does not exist.
    """
    if not path:
        return MISSING

    current = record
    for part in path.split("."):
        if current is None or current is MISSING:
            return MISSING
        if isinstance(current, Mapping):
            current = current.get(part, MISSING)
        elif isinstance(current, Sequence) and not isinstance(current, str):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return MISSING
        else:
            current = getattr(current, part, MISSING)
    return current


# ---------------------------------------------------------------------------
# Recursive evaluation
# ---------------------------------------------------------------------------

def _evaluate_leaf(condition: Condition, record: Any) -> bool:
    actual = get_nested_value(record, condition.field)
    return evaluate_operator(condition.operator, actual, condition.value)


def _evaluate_node(node: Node, record: Any) -> bool:
    if isinstance(node, Condition):
        return _evaluate_leaf(node, record)

    if isinstance(node, ConditionGroup):
        results = (_evaluate_node(child, record) for child in node.conditions)
        if node.group_operator is GroupOperator.OR:
            return any(results)
        return all(results)

    if isinstance(node, InvalidCondition):
        logger.warning("Invalid condition (%s): %r", node.reason, node.raw)
        return False

    # Raw JSON placed directly inside a hand-built group.
    return _evaluate_node(parse_node(node), record)


def evaluate_condition_group(node: Any, record: Any) -> bool:
    """Evaluate a condition tree against a quote record.

    ``node`` may be a parsed tree or raw stored JSON in any supported shape.
    AND over no children is True, OR over no children is False.

    Usage::

        tree = {
            "group_operator": "AND",
            "conditions": [
                {"field": "course_type", "operator": "eq", "value": "VET"},
                {"group_operator": "OR", "conditions": [...]},
            ],
        }
        evaluate_condition_group(tree, {"course_type": "VET", ...})
    """
    if not isinstance(node, (Condition, ConditionGroup, InvalidCondition)):
        node = normalize_conditions(node)
    return _evaluate_node(node, record)


def trace_conditions(node: Any, record: Any) -> list[LeafResult]:
    """Evaluate every leaf and report each outcome in traversal order.

    No short-circuiting: every leaf appears in the trace.
    """
    if not isinstance(node, (Condition, ConditionGroup, InvalidCondition)):
        node = normalize_conditions(node)

    results: list[LeafResult] = []

    def walk(current: Node, path: tuple[int, ...]) -> None:
        current = parse_node(current)
        if isinstance(current, ConditionGroup):
            for index, child in enumerate(current.conditions):
                walk(child, path + (index,))
        elif isinstance(current, Condition):
            actual = get_nested_value(record, current.field)
            results.append(
                LeafResult(
                    condition=current,
                    actual=None if actual is MISSING else actual,
                    matched=evaluate_operator(current.operator, actual, current.value),
                    path=path,
                )
            )
        else:
            results.append(LeafResult(condition=current, matched=False, path=path))

    walk(node, ())
    return results


# ---------------------------------------------------------------------------
# Rule-testing path (shallow AND at the top level)
# ---------------------------------------------------------------------------

@dataclass
class RuleTestResult:
    """Per-entry verdicts for the top level of a rule, plus the overall result."""

    conditions: list[bool] = field(default_factory=list)
    applies: bool = True


def _top_level_entries(raw: Any) -> list[Node]:
    if isinstance(raw, list):
        return [parse_node(item) for item in raw]
    return list(normalize_conditions(raw).conditions)


def evaluate_rule(rule: Any, record: Any) -> RuleTestResult:
    """Test a rule against a sample quote for display.

    ``rule`` is a mapping with a ``conditions`` key or any object with a
    ``conditions`` attribute. The top-level combination is always AND.
    This can disagree with ``evaluate_condition_group`` when the root group
    is OR.
    """
    if isinstance(rule, Mapping):
        raw = rule.get("conditions")
    else:
        raw = getattr(rule, "conditions", None)

    verdicts = [_evaluate_node(entry, record) for entry in _top_level_entries(raw)]
    return RuleTestResult(conditions=verdicts, applies=all(verdicts))
