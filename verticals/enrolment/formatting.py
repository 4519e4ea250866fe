"""Human-readable rendering of rules, conditions and quote lines.

Used by the rules table, the review step of the authoring form and quote
breakdowns shown to staff.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Optional

from core.conditions.model import Condition, ConditionGroup, InvalidCondition, Node, normalize_conditions
from core.conditions.operators import Operator
from verticals.enrolment.fields import OPTION_LABELS, RULE_FIELDS, TRANSPORT_LABELS, Transport, operator_label
from verticals.enrolment.models.schemas import Adjustment
from verticals.enrolment.rules import (
    APPLIES_TO_LABELS,
    RULE_STATUS_LABELS,
    AppliesTo,
    Rule,
    ValueType,
    rule_status,
)

NO_CONDITIONS = "No conditions set"


def _number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}"


def _rule(rule: Rule | Mapping[str, Any]) -> Rule:
    return rule if isinstance(rule, Rule) else Rule.model_validate(rule)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def format_rule_value(rule: Rule | Mapping[str, Any]) -> str:
    """``"10%"`` for percent rules, ``"$50"`` for fixed ones."""
    rule = _rule(rule)
    if rule.value_type is ValueType.PERCENT:
        return f"{_number(rule.value)}%"
    return f"${_number(rule.value)}"


def format_rule_action(rule: Rule | Mapping[str, Any]) -> str:
    """One-line description of what the rule does to the price."""
    rule = _rule(rule)
    stage = rule.stage
    amount = _number(abs(rule.value))
    percent = rule.value_type is ValueType.PERCENT

    if stage.is_price_adjustment:
        if percent:
            direction = "increase" if rule.value >= 0 else "decrease"
            return f"Apply {amount}% {direction} to the price"
        if rule.value >= 0:
            return f"Add ${amount} to the price"
        return f"Subtract ${amount} from the price"

    if stage.is_fee:
        if percent:
            return f"Add a fee of {_number(rule.value)}% of the subtotal"
        return f"Add a fee of ${_number(rule.value)}"

    if stage.is_discount:
        if percent:
            return f"Apply {amount}% discount"
        return f"Subtract ${amount} from the total"

    return "Unknown action"


def format_applies_to(applies_to: AppliesTo | str) -> str:
    """Stage label for the rules table; unknown stages are shown as given."""
    try:
        return APPLIES_TO_LABELS[AppliesTo(applies_to)]
    except ValueError:
        return str(applies_to)


def format_rule_status(rule: Rule | Mapping[str, Any], as_of: date | datetime | str) -> str:
    return RULE_STATUS_LABELS[rule_status(_rule(rule), as_of)]


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

def format_condition_value(value: Any, field_key: Optional[str] = None) -> str:
    """Render a condition value; option fields show their label."""
    if field_key == "needs_transport" and isinstance(value, bool):
        return TRANSPORT_LABELS[Transport.NEEDED if value else Transport.NOT_NEEDED]
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(format_condition_value(v, field_key) for v in value)
    if value is None:
        return ""
    labels = OPTION_LABELS.get(field_key or "")
    if labels and isinstance(value, str) and value in labels:
        return labels[value]
    if isinstance(value, float):
        return _number(value)
    return str(value)


def format_condition(condition: Condition | InvalidCondition | Mapping[str, Any]) -> str:
    """``"Duration (weeks) greater than or equal to 26"``."""
    if isinstance(condition, InvalidCondition):
        return f"(invalid condition: {condition.reason})"
    if isinstance(condition, Mapping):
        condition = Condition(
            field=condition.get("field", ""),
            operator=condition.get("operator", ""),
            value=condition.get("value"),
        )

    definition = RULE_FIELDS.get(condition.field)
    field_label = definition.label if definition else condition.field
    op_label = operator_label(condition.operator, definition.type if definition else None)

    if condition.operator in (Operator.EXISTS.value, Operator.NOT_EXISTS.value):
        return f"{field_label} {op_label}"
    if (
        condition.operator == Operator.BETWEEN.value
        and isinstance(condition.value, (list, tuple))
        and len(condition.value) == 2
    ):
        low, high = (format_condition_value(v, condition.field) for v in condition.value)
        return f"{field_label} {op_label} {low} and {high}"

    return f"{field_label} {op_label} {format_condition_value(condition.value, condition.field)}"


def _format_node(node: Node, nested: bool) -> str:
    if not isinstance(node, ConditionGroup):
        return format_condition(node)
    parts = [_format_node(child, nested=True) for child in node.conditions]
    text = f" {node.group_operator.value} ".join(parts)
    return f"({text})" if nested and len(parts) > 1 else text


def format_rule_conditions(conditions: Any) -> str:
    """Render a whole condition tree; nested groups are parenthesised.

    Usage::

        format_rule_conditions({
            "group_operator": "OR",
            "conditions": [
                {"field": "student_visa", "operator": "eq", "value": True},
                {"field": "duration_weeks", "operator": "gte", "value": 26},
            ],
        })
        # 'Student visa equal to Yes OR Duration (weeks) greater than or equal to 26'
    """
    root = conditions if isinstance(conditions, ConditionGroup) else normalize_conditions(conditions)
    if not root.conditions:
        return NO_CONDITIONS
    return _format_node(root, nested=False)


# ---------------------------------------------------------------------------
# Quote lines
# ---------------------------------------------------------------------------

def describe_adjustment(adjustment: Adjustment, currency: str = "AUD") -> str:
    """``"Early bird: -115.00 AUD"``."""
    sign = "-" if adjustment.amount < 0 else "+"
    return f"{adjustment.rule_name}: {sign}{abs(adjustment.amount):,.2f} {currency}"
