"""Quote calculation pipeline.

Stages run in a fixed order because later stages price off earlier totals:

1. base price per course (fixed price, or weekly rate x weeks)
2. course_price rules per course
3. accommodation base price and accommodation_price rules
4. subtotal
5. fees, percent fees priced off the subtotal
6. discounts, percent discounts priced off subtotal + fees
7. total = subtotal + fees - discounts (no floor at zero)

Every adjustment is recorded with its rule id, label, amount and kind so
staff can audit how a price was reached. The calculation is pure: inputs
are never mutated and each call returns a fresh ``QuoteOutput``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from core.conditions.evaluator import evaluate_condition_group
from core.conditions.model import ConditionGroup
from core.observability.otel_setup import get_tracer, start_quote_span
from verticals.enrolment.config import EnrolmentConfig
from verticals.enrolment.errors import QuoteValidationError
from verticals.enrolment.fields import OnshoreOffshore
from verticals.enrolment.models.schemas import (
    AccommodationLine,
    AccommodationRoom,
    AccommodationSelection,
    Adjustment,
    CourseLine,
    CoursePrice,
    CourseSelection,
    QuoteBreakdown,
    QuoteInput,
    QuoteOutput,
)
from verticals.enrolment.rules import (
    AppliesTo,
    Rule,
    ValueType,
    coerce_rules,
    is_rule_active,
    is_valid_rule_value_combo,
    partition_rules,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def validate_quote_input(quote_input: QuoteInput | Mapping[str, Any] | None) -> QuoteInput:
    """Parse and validate quote input. Raises QuoteValidationError."""
    if isinstance(quote_input, QuoteInput):
        return quote_input
    if not isinstance(quote_input, Mapping):
        raise QuoteValidationError("Invalid input data: quote input must be an object")

    missing = [
        key for key in ("student_details", "course_details")
        if quote_input.get(key) is None
    ]
    if missing:
        raise QuoteValidationError(
            "Invalid input data: missing required fields",
            errors=[{"field": key, "message": "Field required"} for key in missing],
        )

    try:
        return QuoteInput.model_validate(quote_input)
    except ValidationError as exc:
        raise QuoteValidationError.from_pydantic(exc) from exc


def _coerce_records(model: type[ModelT], raw: Iterable[Any] | None, kind: str) -> list[ModelT]:
    records: list[ModelT] = []
    for item in raw or ():
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s record: %s", kind, exc.errors())
    return records


# ---------------------------------------------------------------------------
# Evaluation records
# ---------------------------------------------------------------------------

def _course_fields(course: CourseSelection) -> dict[str, Any]:
    fields = dict(course.model_extra or {})
    fields.update(
        course_id=course.course_id,
        campus_id=course.campus_id,
        intake_date=course.intake_date,
        duration_weeks=course.duration_weeks,
        course_type=course.course_type,
        faculty_id=course.faculty_id,
        study_load=course.study_load,
        day_night_classes=course.day_night_classes,
        needs_transport=course.needs_transport,
    )
    return fields


def build_quote_record(
    quote: QuoteInput,
    accommodation_room: Optional[AccommodationRoom] = None,
) -> dict[str, Any]:
    """Flatten a quote into the record rule conditions are evaluated against.

    The nested input stays available for dot paths
    (``student_details.nationality``). Student keys appear in both spellings
    so ``student_details.isStudentVisa`` and ``student_details.is_student_visa``
    resolve alike. Flat keys carry the student fields,
    the derived ``onshore_offshore``, the first (primary) course and the
    accommodation selection.
    """
    record = quote.model_dump(mode="json")
    student = quote.student_details
    record["student_details"].update(student.model_dump(mode="json", by_alias=True))

    record.update(
        onshore_offshore=(
            OnshoreOffshore.OFFSHORE.value if student.is_offshore else OnshoreOffshore.ONSHORE.value
        ),
        student_visa=student.is_student_visa,
        nationality=student.nationality,
        region_id=student.region_id,
        previous_student=student.previous_student,
    )

    if quote.course_details:
        record.update(_course_fields(quote.course_details[0]))

    if quote.accommodation is not None:
        record.update(
            accommodation_type_id=quote.accommodation.accommodation_type_id,
            room_size_id=quote.accommodation.room_size_id,
            accommodation_duration_weeks=quote.accommodation.duration_weeks,
        )
        if accommodation_room is not None:
            record["accommodation_price_per_week"] = accommodation_room.price_per_week

    return record


def build_course_record(base: Mapping[str, Any], course: CourseSelection) -> dict[str, Any]:
    """Overlay one course's fields on the quote record."""
    record = dict(base)
    record.update(_course_fields(course))
    return record


# ---------------------------------------------------------------------------
# Price lookup
# ---------------------------------------------------------------------------

def _same_id(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def find_course_price(
    course_id: Any,
    course_prices: list[CoursePrice],
    region_id: Any = None,
) -> Optional[CoursePrice]:
    """Course price for ``course_id``: regional match, then region-less, then any."""
    candidates = [p for p in course_prices if _same_id(p.course_details_id, course_id)]
    if not candidates:
        return None
    if region_id is not None:
        for price in candidates:
            if _same_id(price.region_id, region_id):
                return price
    for price in candidates:
        if price.region_id is None:
            return price
    return candidates[0]


def find_accommodation_room(
    accommodation: AccommodationSelection,
    rooms: list[AccommodationRoom],
) -> Optional[AccommodationRoom]:
    for room in rooms:
        if _same_id(room.accommodation_type_id, accommodation.accommodation_type_id) and _same_id(
            room.room_size_id, accommodation.room_size_id
        ):
            return room
    return None


def calculate_base_price(price: CoursePrice | AccommodationRoom, duration_weeks: float) -> float:
    """Fixed base price if set, else weekly rate x weeks, else 0."""
    if price.base_price is not None:
        return price.base_price
    if price.price_per_week is not None:
        return price.price_per_week * duration_weeks
    return 0.0


# ---------------------------------------------------------------------------
# Rule application
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PreparedRule:
    """A rule with its condition tree parsed once per calculation."""

    rule: Rule
    tree: ConditionGroup

    def matches(self, record: Mapping[str, Any]) -> bool:
        return evaluate_condition_group(self.tree, record)


def prepare_rules(
    raw_rules: Iterable[Rule | Mapping[str, Any]] | None,
    config: EnrolmentConfig,
    as_of: date | datetime | str | None = None,
) -> list[PreparedRule]:
    """Parse rules and drop the ones that must not take part in this calculation."""
    rules = coerce_rules(raw_rules)

    if as_of is None and config.evaluation.check_active_window:
        as_of = datetime.now(timezone.utc)
    if as_of is not None:
        active = []
        for rule in rules:
            if is_rule_active(rule, as_of):
                active.append(rule)
            else:
                logger.debug("Rule %s is outside its active window", rule.id)
        rules = active

    if config.pricing.skip_invalid_value_combos:
        valid = []
        for rule in rules:
            if is_valid_rule_value_combo(rule.value_type, rule.applies_to, rule.value):
                valid.append(rule)
            else:
                logger.warning("Skipping rule %s: invalid value %s for %s", rule.id, rule.value, rule.applies_to.value)
        rules = valid

    return [PreparedRule(rule=rule, tree=rule.condition_tree()) for rule in rules]


def _round(amount: float, config: EnrolmentConfig) -> float:
    places = config.pricing.round_amounts_to
    return round(amount, places) if places is not None else amount


def compute_amount(rule: Rule, running_total: float) -> float:
    """Fixed rules contribute their value; percent rules a share of the running total."""
    if rule.value_type is ValueType.PERCENT:
        return running_total * rule.value / 100
    return rule.value


def _adjustment(rule: Rule, amount: float) -> Adjustment:
    return Adjustment(rule_id=rule.id, rule_name=rule.label, amount=amount, type=rule.value_type.value)


def apply_price_rules(
    base_price: float,
    rules: list[PreparedRule],
    stages: tuple[AppliesTo, ...],
    record: Mapping[str, Any],
    config: EnrolmentConfig,
) -> tuple[float, list[Adjustment]]:
    """Apply matching price rules for ``stages`` to one base price, in input order."""
    adjusted = base_price
    adjustments: list[Adjustment] = []
    for prepared in rules:
        if prepared.rule.applies_to not in stages or not prepared.matches(record):
            continue
        amount = _round(compute_amount(prepared.rule, base_price), config)
        adjusted += amount
        adjustments.append(_adjustment(prepared.rule, amount))
    return _round(adjusted, config), adjustments


def apply_total_rules(
    rules: list[PreparedRule],
    record: Mapping[str, Any],
    running_total: float,
    config: EnrolmentConfig,
) -> list[Adjustment]:
    """Fee / discount stage: every matching rule, priced off ``running_total``."""
    lines: list[Adjustment] = []
    for prepared in rules:
        if not prepared.matches(record):
            continue
        amount = _round(compute_amount(prepared.rule, running_total), config)
        lines.append(_adjustment(prepared.rule, amount))
    return lines


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def calculate_final_quote(
    quote_input: QuoteInput | Mapping[str, Any],
    pricing_rules: Iterable[Rule | Mapping[str, Any]],
    fee_rules: Iterable[Rule | Mapping[str, Any]],
    discount_rules: Iterable[Rule | Mapping[str, Any]],
    course_prices: Iterable[CoursePrice | Mapping[str, Any]],
    accommodation_rooms: Iterable[AccommodationRoom | Mapping[str, Any]],
    *,
    config: Optional[EnrolmentConfig] = None,
    as_of: date | datetime | str | None = None,
) -> QuoteOutput:
    """Price a quote and return the total with a full breakdown.

    Raises QuoteValidationError when ``student_details`` or
    ``course_details`` is missing or malformed. Everything else (unknown
    operators, broken conditions, missing prices) is logged and skipped.

    Usage::

        quote = calculate_final_quote(
            quote_input,
            pricing_rules=pricing,
            fee_rules=fees,
            discount_rules=discounts,
            course_prices=course_prices,
            accommodation_rooms=rooms,
        )
        quote.total_price, quote.breakdown.fees
    """
    quote = validate_quote_input(quote_input)
    config = config or EnrolmentConfig.default()

    prices = _coerce_records(CoursePrice, course_prices, "course price")
    rooms = _coerce_records(AccommodationRoom, accommodation_rooms, "accommodation room")
    pricing = prepare_rules(pricing_rules, config, as_of)
    fees = prepare_rules(fee_rules, config, as_of)
    discounts = prepare_rules(discount_rules, config, as_of)

    accommodation_stages: tuple[AppliesTo, ...] = (AppliesTo.ACCOMMODATION_PRICE,)
    if config.evaluation.accept_legacy_accommodation_stage:
        accommodation_stages += (AppliesTo.ACCOMMODATION,)

    tracer = get_tracer()
    rule_count = len(pricing) + len(fees) + len(discounts)
    with start_quote_span(tracer, len(quote.course_details), rule_count) as span:
        room = (
            find_accommodation_room(quote.accommodation, rooms)
            if quote.accommodation is not None
            else None
        )
        record = build_quote_record(quote, room)
        breakdown = QuoteBreakdown()

        # 1-2. courses
        courses_total = 0.0
        for course in quote.course_details:
            price = find_course_price(course.course_id, prices, quote.student_details.region_id)
            if price is None:
                logger.warning("No price found for course %s", course.course_id)
                continue

            base_price = _round(calculate_base_price(price, course.duration_weeks), config)
            adjusted, adjustments = apply_price_rules(
                base_price,
                pricing,
                (AppliesTo.COURSE_PRICE,),
                build_course_record(record, course),
                config,
            )
            breakdown.courses.append(
                CourseLine(
                    course_id=course.course_id,
                    base_price=base_price,
                    adjusted_price=adjusted,
                    adjustments=adjustments,
                )
            )
            courses_total += adjusted

        # 3. accommodation
        accommodation_total = 0.0
        if quote.accommodation is not None:
            if room is None:
                logger.warning(
                    "No price found for accommodation %s / room size %s",
                    quote.accommodation.accommodation_type_id,
                    quote.accommodation.room_size_id,
                )
            else:
                base_price = _round(calculate_base_price(room, quote.accommodation.duration_weeks), config)
                adjusted, adjustments = apply_price_rules(
                    base_price, pricing, accommodation_stages, record, config
                )
                breakdown.accommodation = AccommodationLine(
                    accommodation_type_id=quote.accommodation.accommodation_type_id,
                    room_size_id=quote.accommodation.room_size_id,
                    base_price=base_price,
                    adjusted_price=adjusted,
                    adjustments=adjustments,
                )
                accommodation_total = adjusted

        # 4. subtotal
        subtotal = _round(courses_total + accommodation_total, config)

        # 5. fees
        breakdown.fees = apply_total_rules(fees, record, subtotal, config)
        total_with_fees = _round(subtotal + sum(fee.amount for fee in breakdown.fees), config)

        # 6. discounts, priced off the total including fees
        breakdown.discounts = apply_total_rules(discounts, record, total_with_fees, config)
        for line in breakdown.discounts:
            if line.amount > 0:
                logger.warning("Discount rule %s increases the total by %s", line.rule_id, line.amount)
        discount_total = -sum(line.amount for line in breakdown.discounts)

        # 7. total; may go negative
        total_price = _round(total_with_fees - discount_total, config)

        span.set_attribute("quote.subtotal", subtotal)
        span.set_attribute("quote.total_price", total_price)

    return QuoteOutput(
        total_price=total_price,
        subtotal=subtotal,
        total_with_fees=total_with_fees,
        currency=config.pricing.currency,
        breakdown=breakdown,
    )


def calculate_quote(
    quote_input: QuoteInput | Mapping[str, Any],
    rules: Iterable[Rule | Mapping[str, Any]],
    course_prices: Iterable[CoursePrice | Mapping[str, Any]],
    accommodation_rooms: Iterable[AccommodationRoom | Mapping[str, Any]],
    *,
    config: Optional[EnrolmentConfig] = None,
    as_of: date | datetime | str | None = None,
) -> QuoteOutput:
    """Same as ``calculate_final_quote`` for a single mixed rule list."""
    quote = validate_quote_input(quote_input)
    partition = partition_rules(rules)
    return calculate_final_quote(
        quote,
        partition.pricing,
        partition.fees,
        partition.discounts,
        course_prices,
        accommodation_rooms,
        config=config,
        as_of=as_of,
    )
