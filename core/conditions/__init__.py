"""
Core Conditions: Boolean Condition Trees.

Interpreter for the nested condition trees attached to pricing rules:
- model: Condition / ConditionGroup / InvalidCondition nodes and normalisation
- operators: closed operator set and type-aware dispatch
- evaluator: recursive evaluation, per-leaf tracing, rule testing
- editing: immutable tree edits for the authoring form
"""
from core.conditions.evaluator import (
    RuleTestResult,
    evaluate_condition_group,
    evaluate_rule,
    get_nested_value,
    trace_conditions,
)
from core.conditions.model import (
    Condition,
    ConditionGroup,
    GroupOperator,
    InvalidCondition,
    LeafResult,
    Node,
    iter_leaves,
    normalize_conditions,
    parse_node,
    to_dict,
)
from core.conditions.operators import (
    MISSING,
    Operator,
    evaluate_operator,
    is_known_operator,
    operator_family,
)

__all__ = [
    # Model
    "Condition",
    "ConditionGroup",
    "GroupOperator",
    "InvalidCondition",
    "LeafResult",
    "Node",
    "iter_leaves",
    "normalize_conditions",
    "parse_node",
    "to_dict",
    # Operators
    "MISSING",
    "Operator",
    "evaluate_operator",
    "is_known_operator",
    "operator_family",
    # Evaluation
    "RuleTestResult",
    "evaluate_condition_group",
    "evaluate_rule",
    "get_nested_value",
    "trace_conditions",
]
