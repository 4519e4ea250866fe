"""Enrolment pricing rules: model, validation and stage helpers.

A rule is a persisted directive: "when these conditions hold, adjust this
pricing stage by this fixed amount or percentage". Rules are read-only
during evaluation; everything here is a pure function of its inputs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.conditions.evaluator import RuleTestResult, evaluate_rule
from core.conditions.model import ConditionGroup, normalize_conditions
from core.conditions.operators import to_datetime

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AppliesTo(str, Enum):
    """Pricing stage a rule adjusts."""

    COURSE_PRICE = "course_price"
    COURSE_DISCOUNT = "course_discount"
    ACCOMMODATION_PRICE = "accommodation_price"
    ACCOMMODATION_DISCOUNT = "accommodation_discount"
    ENROLLMENT_FEE = "enrollment_fee"
    MATERIAL_FEE = "material_fee"
    TOTAL_FEE = "total_fee"
    TOTAL_PRICE = "total_price"
    TOTAL_DISCOUNT = "total_discount"
    # Older records; same stage as ACCOMMODATION_PRICE.
    ACCOMMODATION = "accommodation"

    @property
    def canonical(self) -> "AppliesTo":
        if self is AppliesTo.ACCOMMODATION:
            return AppliesTo.ACCOMMODATION_PRICE
        return self

    @property
    def is_discount(self) -> bool:
        return "discount" in self.value

    @property
    def is_fee(self) -> bool:
        return self.canonical in _FEE_STAGES

    @property
    def is_price_adjustment(self) -> bool:
        return self.canonical in (AppliesTo.COURSE_PRICE, AppliesTo.ACCOMMODATION_PRICE)


_FEE_STAGES = frozenset({
    AppliesTo.ENROLLMENT_FEE,
    AppliesTo.MATERIAL_FEE,
    AppliesTo.TOTAL_FEE,
    AppliesTo.TOTAL_PRICE,
})


class ValueType(str, Enum):
    FIXED = "fixed"
    PERCENT = "percent"


class RuleStatus(str, Enum):
    DRAFT = "draft"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    EXPIRED = "expired"


APPLIES_TO_LABELS = {
    AppliesTo.COURSE_PRICE: "Course Price",
    AppliesTo.COURSE_DISCOUNT: "Course Discount",
    AppliesTo.ACCOMMODATION_PRICE: "Accommodation Price",
    AppliesTo.ACCOMMODATION_DISCOUNT: "Accommodation Discount",
    AppliesTo.ENROLLMENT_FEE: "Enrollment Fee",
    AppliesTo.MATERIAL_FEE: "Material Fee",
    AppliesTo.TOTAL_FEE: "Total Fees",
    AppliesTo.TOTAL_PRICE: "Total Price",
    AppliesTo.TOTAL_DISCOUNT: "Total Discount",
    AppliesTo.ACCOMMODATION: "Accommodation Price",
}

RULE_STATUS_LABELS = {
    RuleStatus.DRAFT: "Draft",
    RuleStatus.UPCOMING: "Upcoming",
    RuleStatus.ACTIVE: "Active",
    RuleStatus.EXPIRED: "Expired",
}

# Order in which rule stages are applied
RULE_CALCULATION_ORDER: tuple[AppliesTo, ...] = (
    AppliesTo.COURSE_PRICE,
    AppliesTo.ACCOMMODATION_PRICE,
    AppliesTo.COURSE_DISCOUNT,
    AppliesTo.ACCOMMODATION_DISCOUNT,
    AppliesTo.ENROLLMENT_FEE,
    AppliesTo.MATERIAL_FEE,
    AppliesTo.TOTAL_FEE,
    AppliesTo.TOTAL_PRICE,
    AppliesTo.TOTAL_DISCOUNT,
)


# ---------------------------------------------------------------------------
# Rule model
# ---------------------------------------------------------------------------

class Rule(BaseModel):
    """A stored pricing, fee or discount rule.

    Accepts the column names used by the different rule tables
    (``rule_name`` / ``fee_name`` / ``discount_name``, ``type`` for
    ``value_type``); unknown columns are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Union[str, int]
    name: str = Field(
        "",
        validation_alias=AliasChoices("name", "rule_name", "fee_name", "discount_name"),
    )
    description: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "description", "rule_description", "fee_description", "discount_description"
        ),
    )
    applies_to: AppliesTo
    value: float
    value_type: ValueType = Field(validation_alias=AliasChoices("value_type", "type"))
    conditions: Any = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> Any:
        # Stored dates may be bare "YYYY-MM-DD" strings or ISO timestamps.
        if value is None or value == "":
            return None
        parsed = to_datetime(value)
        return parsed if parsed is not None else value

    @property
    def label(self) -> str:
        return self.name or self.description or str(self.id)

    @property
    def stage(self) -> AppliesTo:
        return self.applies_to.canonical

    def condition_tree(self) -> ConditionGroup:
        return normalize_conditions(self.conditions)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def is_valid_rule_value_combo(
    value_type: ValueType | str,
    applies_to: AppliesTo | str,
    value: float,
) -> bool:
    """Check that a value makes sense for its stage and type.

    - discounts must be negative
    - percentages must lie within [-100, 100]
    - unknown value types are never valid
    """
    stage = applies_to.value if isinstance(applies_to, AppliesTo) else str(applies_to)
    if "discount" in stage and value >= 0:
        return False
    try:
        value_type = ValueType(value_type)
    except ValueError:
        return False
    if value_type is ValueType.PERCENT:
        return -100 <= value <= 100
    return True


@dataclass
class RuleValidation:
    is_valid: bool
    errors: dict[str, str] = field(default_factory=dict)


def validate_rule_basic_info(form: Mapping[str, Any]) -> RuleValidation:
    """Validate the basic-info step of the rule authoring form."""
    errors: dict[str, str] = {}

    name = form.get("name") or form.get("rule_name") or ""
    if not str(name).strip():
        errors["name"] = "Name is required"

    applies_to = form.get("applies_to")
    try:
        applies_to = AppliesTo(applies_to) if applies_to else None
    except ValueError:
        errors["applies_to"] = f"Unknown stage: {applies_to}"
        applies_to = None
    if applies_to is None and "applies_to" not in errors:
        errors["applies_to"] = "Applies to is required"

    value_type = form.get("value_type")
    try:
        value_type = ValueType(value_type) if value_type else None
    except ValueError:
        errors["value_type"] = f"Unknown value type: {value_type}"
        value_type = None
    if value_type is None and "value_type" not in errors:
        errors["value_type"] = "Value type is required"

    value = form.get("value")
    if value is None or value == "":
        errors["value"] = "Value is required"
    elif not isinstance(value, (int, float)) or isinstance(value, bool):
        errors["value"] = "Value must be a number"

    start = form.get("start_date")
    if not start:
        errors["start_date"] = "Start date is required"
    elif to_datetime(start) is None:
        errors["start_date"] = "Start date is invalid"

    end = form.get("end_date")
    if end:
        end_dt = to_datetime(end)
        start_dt = to_datetime(start) if start else None
        if end_dt is None:
            errors["end_date"] = "End date is invalid"
        elif start_dt is not None and end_dt < start_dt:
            errors["end_date"] = "End date must be on or after the start date"

    if "value" not in errors and applies_to is not None and value_type is not None:
        if not is_valid_rule_value_combo(value_type, applies_to, value):
            if applies_to.is_discount and value >= 0:
                errors["value"] = "Discounts must have a negative value"
            else:
                errors["value"] = "Percentages must be between -100 and 100"

    return RuleValidation(is_valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def rule_status(rule: Rule, as_of: date | datetime | str) -> RuleStatus:
    """Derive a rule's status from its date window at ``as_of``."""
    now = to_datetime(as_of)
    if now is None:
        raise ValueError(f"Invalid as_of date: {as_of!r}")

    start = to_datetime(rule.start_date)
    end = to_datetime(rule.end_date)
    if start is None:
        return RuleStatus.DRAFT
    if start > now:
        return RuleStatus.UPCOMING
    if end is not None and end < now:
        return RuleStatus.EXPIRED
    return RuleStatus.ACTIVE


def is_rule_active(rule: Rule, as_of: date | datetime | str) -> bool:
    return rule_status(rule, as_of) is RuleStatus.ACTIVE


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

def coerce_rules(raw_rules: Iterable[Rule | Mapping[str, Any]] | None) -> list[Rule]:
    """Parse stored rule records, skipping (and logging) any that do not validate."""
    rules: list[Rule] = []
    for raw in raw_rules or ():
        if isinstance(raw, Rule):
            rules.append(raw)
            continue
        try:
            rules.append(Rule.model_validate(raw))
        except ValidationError as exc:
            rule_id = raw.get("id") if isinstance(raw, Mapping) else None
            logger.warning("Skipping malformed rule %s: %s", rule_id, exc.errors())
    return rules


@dataclass
class RulePartition:
    pricing: list[Rule] = field(default_factory=list)
    fees: list[Rule] = field(default_factory=list)
    discounts: list[Rule] = field(default_factory=list)


def partition_rules(rules: Iterable[Rule | Mapping[str, Any]]) -> RulePartition:
    """Split one mixed rule list into pricing, fee and discount lists.

    Each list is ordered by ``RULE_CALCULATION_ORDER``; rules in the same
    stage keep their input order.
    """
    order = {stage: index for index, stage in enumerate(RULE_CALCULATION_ORDER)}
    ordered = sorted(coerce_rules(rules), key=lambda r: order[r.stage])

    partition = RulePartition()
    for rule in ordered:
        if rule.stage.is_price_adjustment:
            partition.pricing.append(rule)
        elif rule.stage.is_fee:
            partition.fees.append(rule)
        else:
            partition.discounts.append(rule)
    return partition


def check_rule_against_quote(rule: Rule | Mapping[str, Any], quote: Mapping[str, Any]) -> RuleTestResult:
    """Run a rule against one flat sample quote (authoring test step)."""
    return evaluate_rule(rule, quote)
