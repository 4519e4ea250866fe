"""Immutable editing helpers for condition trees.

These back the conditions step of the rule authoring form. Every helper
returns a new tree; the input is never modified. Paths are tuples of child
indices starting at the root group, so ``()`` is the root and ``(1, 0)`` is
the first child of the root's second child.

Shape invariants maintained here:

- the root group always keeps at least one member
- removing the last member of a nested group removes the group itself
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from core.conditions.model import Condition, ConditionGroup, GroupOperator, Node


def blank_condition() -> Condition:
    return Condition(field="", operator="", value="")


def empty_root() -> ConditionGroup:
    """Starting tree for a new rule: one AND group with one blank leaf."""
    return ConditionGroup(group_operator=GroupOperator.AND, conditions=(blank_condition(),))


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

def get_node(root: ConditionGroup, path: tuple[int, ...]) -> Node:
    node: Node = root
    for index in path:
        if not isinstance(node, ConditionGroup):
            raise TypeError(f"Path {path} descends into a leaf")
        node = node.conditions[index]
    return node


def _get_group(root: ConditionGroup, path: tuple[int, ...]) -> ConditionGroup:
    node = get_node(root, path)
    if not isinstance(node, ConditionGroup):
        raise TypeError(f"Node at {path} is not a group")
    return node


def _replace_at(root: ConditionGroup, path: tuple[int, ...], new_node: Optional[Node]) -> Node:
    """Rebuild ``root`` with the node at ``path`` replaced (or dropped if None)."""
    if not path:
        if new_node is None:
            raise ValueError("Cannot remove the root group")
        return new_node

    head, rest = path[0], path[1:]
    children = list(root.conditions)
    if not -len(children) <= head < len(children):
        raise IndexError(f"No child {head} in group of {len(children)}")

    if rest:
        child = children[head]
        if not isinstance(child, ConditionGroup):
            raise TypeError(f"Path {path} descends into a leaf")
        children[head] = _replace_at(child, rest, new_node)
    elif new_node is None:
        del children[head]
    else:
        children[head] = new_node

    return replace(root, conditions=tuple(children))


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------

def add_condition(
    root: ConditionGroup,
    path: tuple[int, ...] = (),
    condition: Optional[Condition] = None,
) -> ConditionGroup:
    """Append a leaf to the group at ``path``."""
    group = _get_group(root, path)
    updated = replace(group, conditions=group.conditions + (condition or blank_condition(),))
    return _replace_at(root, path, updated)


def add_group(
    root: ConditionGroup,
    path: tuple[int, ...] = (),
    group_operator: GroupOperator = GroupOperator.AND,
) -> ConditionGroup:
    """Append a nested group, seeded with one blank leaf, to the group at ``path``."""
    group = _get_group(root, path)
    child = ConditionGroup(group_operator=GroupOperator(group_operator), conditions=(blank_condition(),))
    updated = replace(group, conditions=group.conditions + (child,))
    return _replace_at(root, path, updated)


def update_node(root: ConditionGroup, path: tuple[int, ...], node: Node) -> ConditionGroup:
    return _replace_at(root, path, node)


def set_group_operator(
    root: ConditionGroup,
    path: tuple[int, ...],
    group_operator: GroupOperator,
) -> ConditionGroup:
    group = _get_group(root, path)
    return _replace_at(root, path, replace(group, group_operator=GroupOperator(group_operator)))


def remove_node(root: ConditionGroup, path: tuple[int, ...]) -> ConditionGroup:
    """Remove the node at ``path``.

    If that empties a nested group, the group goes too (repeatedly, up the
    tree). Removing the root's last member is refused and ``root`` comes
    back unchanged.
    """
    if not path:
        raise ValueError("Cannot remove the root group")

    parent_path = path[:-1]
    parent = _get_group(root, parent_path)
    get_node(root, path)  # validate

    if len(parent.conditions) <= 1:
        if not parent_path:
            return root
        return remove_node(root, parent_path)

    return _replace_at(root, path, None)


def move_node(
    root: ConditionGroup,
    group_path: tuple[int, ...],
    old_index: int,
    new_index: int,
) -> ConditionGroup:
    """Reorder a child within its group (drag-and-drop semantics)."""
    group = _get_group(root, group_path)
    children = list(group.conditions)
    children.insert(new_index, children.pop(old_index))
    return _replace_at(root, group_path, replace(group, conditions=tuple(children)))


def prune_empty_groups(root: ConditionGroup) -> ConditionGroup:
    """Drop nested groups left without members. The root itself is kept."""

    def prune(group: ConditionGroup) -> ConditionGroup:
        kept: list[Node] = []
        for child in group.conditions:
            if isinstance(child, ConditionGroup):
                child = prune(child)
                if not child.conditions:
                    continue
            kept.append(child)
        return replace(group, conditions=tuple(kept))

    return prune(root)
