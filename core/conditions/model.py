"""Condition tree model.

A rule's conditions form a recursive boolean expression:

- Condition: a single ``field / operator / value`` test (leaf)
- ConditionGroup: an AND/OR combinator over child nodes (internal node)
- InvalidCondition: typed marker for anything that failed to parse

Nodes are frozen dataclasses, so a parsed tree can be shared freely between
evaluations. Raw JSON from storage comes in several historical shapes;
``normalize_conditions`` is the one place where those are folded into a
``ConditionGroup``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Union

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Node types
# ---------------------------------------------------------------------------

class GroupOperator(str, Enum):
    """Boolean combinator for a condition group."""

    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class Condition:
    """Leaf test: ``record[field] <operator> value``."""

    field: str
    operator: str
    value: Any = None


@dataclass(frozen=True)
class ConditionGroup:
    """AND/OR over child conditions or nested groups."""

    group_operator: GroupOperator = GroupOperator.AND
    conditions: tuple["Node", ...] = ()

    def __len__(self) -> int:
        return len(self.conditions)


@dataclass(frozen=True)
class InvalidCondition:
    """A node that could not be parsed. Always evaluates to False."""

    raw: Any
    reason: str


Node = Union[Condition, ConditionGroup, InvalidCondition]

_LEAF_KEYS = frozenset({"field", "operator"})
_GROUP_KEYS = ("AND", "OR")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _parse_group_operator(raw: Any) -> GroupOperator | None:
    if isinstance(raw, GroupOperator):
        return raw
    if isinstance(raw, str):
        try:
            return GroupOperator(raw.strip().upper())
        except ValueError:
            return None
    return None


def _parse_leaf(raw: dict) -> Node:
    field_name = raw.get("field")
    operator = raw.get("operator")
    if not isinstance(field_name, str) or not field_name:
        return InvalidCondition(raw=raw, reason="missing field")
    if not isinstance(operator, str) or not operator:
        return InvalidCondition(raw=raw, reason="missing operator")
    return Condition(field=field_name, operator=operator, value=raw.get("value"))


def _parse_operator_map(raw: dict) -> ConditionGroup:
    """Parse ``{"<field>": {"<op>": value}, "AND": [...], "OR": [...]}``.

    Every entry must hold, so the result is an AND group.
    """
    children: list[Node] = []
    for key, spec in raw.items():
        if key in _GROUP_KEYS:
            if not isinstance(spec, list):
                children.append(InvalidCondition(raw={key: spec}, reason=f"{key} expects a list"))
                continue
            children.append(
                ConditionGroup(
                    group_operator=GroupOperator(key),
                    conditions=tuple(normalize_conditions(item) for item in spec),
                )
            )
            continue

        if not isinstance(spec, dict):
            children.append(InvalidCondition(raw={key: spec}, reason="operator map expected"))
            continue
        for operator, value in spec.items():
            children.append(Condition(field=key, operator=operator, value=value))

    return ConditionGroup(group_operator=GroupOperator.AND, conditions=tuple(children))


def parse_node(raw: Any) -> Node:
    """Parse one JSON-compatible node into a tree node.

    Never raises: anything unrecognised becomes an ``InvalidCondition``.
    """
    if isinstance(raw, (Condition, ConditionGroup, InvalidCondition)):
        return raw

    if isinstance(raw, list):
        return ConditionGroup(
            group_operator=GroupOperator.AND,
            conditions=tuple(parse_node(item) for item in raw),
        )

    if not isinstance(raw, dict):
        return InvalidCondition(raw=raw, reason=f"unsupported node type {type(raw).__name__}")

    if "group_operator" in raw or "conditions" in raw:
        op = _parse_group_operator(raw.get("group_operator", GroupOperator.AND))
        if op is None:
            return InvalidCondition(raw=raw, reason=f"unknown group operator {raw.get('group_operator')!r}")
        children = raw.get("conditions") or []
        if not isinstance(children, list):
            return InvalidCondition(raw=raw, reason="group conditions must be a list")
        return ConditionGroup(
            group_operator=op,
            conditions=tuple(parse_node(item) for item in children),
        )

    if _LEAF_KEYS & raw.keys():
        return _parse_leaf(raw)

    if not raw:
        return ConditionGroup()

    return _parse_operator_map(raw)


def normalize_conditions(raw: Any) -> ConditionGroup:
    """Fold any stored conditions shape into a root ``ConditionGroup``.

    Accepted shapes:

    - ``{"group_operator": "OR", "conditions": [...]}``
    - ``[cond, cond]`` (legacy flat array, implicit AND)
    - ``{"field": ..., "operator": ..., "value": ...}`` (single leaf)
    - ``{"duration_weeks": {"gte": 26}, "OR": [...]}`` (operator map)
    - ``None`` or empty (matches everything)

    Usage::

        root = normalize_conditions(rule_record["conditions"])
        if evaluate_condition_group(root, record):
            ...
    """
    if raw is None:
        return ConditionGroup()

    node = parse_node(raw)
    if isinstance(node, ConditionGroup):
        return node
    if isinstance(node, InvalidCondition):
        logger.warning("Invalid rule conditions (%s): %r", node.reason, node.raw)
    return ConditionGroup(group_operator=GroupOperator.AND, conditions=(node,))


# ---------------------------------------------------------------------------
# Serialisation & traversal
# ---------------------------------------------------------------------------

def to_dict(node: Node) -> Any:
    """Serialise a node back to the structured JSON shape."""
    if isinstance(node, Condition):
        return {"field": node.field, "operator": node.operator, "value": node.value}
    if isinstance(node, ConditionGroup):
        return {
            "group_operator": node.group_operator.value,
            "conditions": [to_dict(child) for child in node.conditions],
        }
    return node.raw


def iter_leaves(node: Node) -> Iterator[Condition | InvalidCondition]:
    """Yield leaves depth-first in document order."""
    if isinstance(node, ConditionGroup):
        for child in node.conditions:
            yield from iter_leaves(child)
    else:
        yield node


@dataclass
class LeafResult:
    """Outcome of one leaf during a traced evaluation."""

    condition: Condition | InvalidCondition
    actual: Any = None
    matched: bool = False
    path: tuple[int, ...] = field(default_factory=tuple)
