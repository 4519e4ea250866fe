"""Test condition parsing and normalisation."""
import logging

from core.conditions import (
    Condition,
    ConditionGroup,
    GroupOperator,
    InvalidCondition,
    evaluate_condition_group,
    normalize_conditions,
    parse_node,
)
from core.conditions.model import iter_leaves, to_dict


def test_none_is_an_empty_group():
    root = normalize_conditions(None)
    assert root == ConditionGroup()
    assert len(root) == 0
    assert evaluate_condition_group(root, {})


def test_legacy_flat_list_is_an_and_group():
    root = normalize_conditions([
        {"field": "course_type", "operator": "eq", "value": "VET"},
        {"field": "duration_weeks", "operator": "gte", "value": 26},
    ])
    assert root.group_operator is GroupOperator.AND
    assert root.conditions == (
        Condition("course_type", "eq", "VET"),
        Condition("duration_weeks", "gte", 26),
    )


def test_structured_group_operator_is_case_insensitive():
    root = normalize_conditions({"group_operator": "or", "conditions": []})
    assert root.group_operator is GroupOperator.OR


def test_single_leaf_is_wrapped():
    root = normalize_conditions({"field": "student_visa", "operator": "eq", "value": True})
    assert root == ConditionGroup(conditions=(Condition("student_visa", "eq", True),))


def test_unknown_group_operator_never_matches(caplog):
    with caplog.at_level(logging.WARNING):
        root = normalize_conditions({"group_operator": "XOR", "conditions": []})
    assert isinstance(root.conditions[0], InvalidCondition)
    assert not evaluate_condition_group(root, {})
    assert "Invalid rule conditions" in caplog.text


def test_operator_map_shape():
    root = normalize_conditions({
        "duration_weeks": {"gte": 26},
        "OR": [
            {"course_type": {"eq": "VET"}},
            {"study_load": {"eq": "part_time"}},
        ],
    })
    assert root.group_operator is GroupOperator.AND
    assert root.conditions[0] == Condition("duration_weeks", "gte", 26)
    assert root.conditions[1].group_operator is GroupOperator.OR

    assert evaluate_condition_group(root, {"duration_weeks": 52, "course_type": "VET"})
    assert evaluate_condition_group(root, {"duration_weeks": 52, "study_load": "part_time"})
    assert not evaluate_condition_group(root, {"duration_weeks": 12, "course_type": "VET"})
    assert not evaluate_condition_group(root, {"duration_weeks": 52, "course_type": "ELICOS"})


def test_malformed_nodes_become_invalid_conditions():
    assert parse_node({"operator": "eq", "value": 1}).reason == "missing field"
    assert parse_node({"field": "x", "value": 1}).reason == "missing operator"
    assert isinstance(parse_node({"group_operator": "AND", "conditions": "nope"}), InvalidCondition)
    assert isinstance(parse_node(42), InvalidCondition)
    assert isinstance(parse_node({"duration_weeks": 26}), ConditionGroup)
    assert isinstance(parse_node({"duration_weeks": 26}).conditions[0], InvalidCondition)


def test_empty_dict_is_an_empty_group():
    assert parse_node({}) == ConditionGroup()


def test_to_dict_gives_back_the_structured_shape():
    raw = {
        "group_operator": "AND",
        "conditions": [
            {"field": "course_type", "operator": "eq", "value": "VET"},
            {
                "group_operator": "OR",
                "conditions": [
                    {"field": "student_visa", "operator": "eq", "value": True},
                    {"field": "previous_student", "operator": "eq", "value": True},
                ],
            },
        ],
    }
    assert to_dict(normalize_conditions(raw)) == raw


def test_iter_leaves_is_depth_first():
    root = normalize_conditions({
        "group_operator": "AND",
        "conditions": [
            {"field": "a", "operator": "exists"},
            {"group_operator": "OR", "conditions": [
                {"field": "b", "operator": "exists"},
                {"field": "c", "operator": "exists"},
            ]},
            {"field": "d", "operator": "exists"},
        ],
    })
    assert [leaf.field for leaf in iter_leaves(root)] == ["a", "b", "c", "d"]
