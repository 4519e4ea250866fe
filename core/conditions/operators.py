"""Operator dispatch for leaf conditions.

Operators form a closed set split into four families (equality, string,
date, existence). ``evaluate_operator`` is total: malformed operands and
unknown operators evaluate to False instead of raising.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class _Missing:
    """Sentinel for a path that does not exist in the record."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


# ---------------------------------------------------------------------------
# Operator set
# ---------------------------------------------------------------------------

class Operator(str, Enum):
    # equality
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NIN = "nin"
    # string
    LIKE = "like"
    NOT_LIKE = "notlike"
    ILIKE = "ilike"
    NOT_ILIKE = "nilike"
    REGEX = "regex"
    # date
    BEFORE = "before"
    AFTER = "after"
    BETWEEN = "between"
    # existence
    EXISTS = "exists"
    NOT_EXISTS = "notexists"


OPERATOR_FAMILIES: dict[str, frozenset[Operator]] = {
    "equality": frozenset({
        Operator.EQ, Operator.NEQ, Operator.GT, Operator.GTE,
        Operator.LT, Operator.LTE, Operator.IN, Operator.NIN,
    }),
    "string": frozenset({
        Operator.LIKE, Operator.NOT_LIKE, Operator.ILIKE,
        Operator.NOT_ILIKE, Operator.REGEX,
    }),
    "date": frozenset({Operator.BEFORE, Operator.AFTER, Operator.BETWEEN}),
    "existence": frozenset({Operator.EXISTS, Operator.NOT_EXISTS}),
}


def _as_operator(operator: Any) -> Operator | None:
    if isinstance(operator, Operator):
        return operator
    try:
        return Operator(operator)
    except ValueError:
        return None


def is_known_operator(operator: Any) -> bool:
    return _as_operator(operator) is not None


def operator_family(operator: Any) -> str | None:
    """Return the family name of an operator, or None if unknown."""
    op = _as_operator(operator)
    if op is None:
        return None
    for family, members in OPERATOR_FAMILIES.items():
        if op in members:
            return family
    return None


def is_absent(value: Any) -> bool:
    return value is None or value is MISSING


# ---------------------------------------------------------------------------
# Operand helpers
# ---------------------------------------------------------------------------

def _strict_equals(left: Any, right: Any) -> bool:
    # True == 1 in Python; rule values never mean that.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def run(left: Any, right: Any) -> bool:
        if isinstance(left, bool) or isinstance(right, bool):
            return False
        try:
            return compare(left, right)
        except TypeError:
            logger.debug("Incomparable operands %r and %r", left, right)
            return False
    return run


def _is_collection(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _member(left: Any, right: Any) -> bool:
    return any(_strict_equals(left, item) for item in right)


def _both_strings(left: Any, right: Any) -> bool:
    return isinstance(left, str) and isinstance(right, str)


def _regex(left: Any, pattern: Any) -> bool:
    if not _both_strings(left, pattern):
        return False
    try:
        return re.search(pattern, left) is not None
    except re.error as exc:
        logger.warning("Invalid regex pattern %r: %s", pattern, exc)
        return False


def to_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 string, date or datetime; None when unparseable.

    Aware datetimes are converted to naive UTC so mixed inputs compare.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
    return parsed


def _date_compare(compare: Callable[[datetime, datetime], bool]) -> Callable[[Any, Any], bool]:
    def run(left: Any, right: Any) -> bool:
        lhs, rhs = to_datetime(left), to_datetime(right)
        if lhs is None or rhs is None:
            return False
        return compare(lhs, rhs)
    return run


def _between(left: Any, bounds: Any) -> bool:
    if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
        return False
    value = to_datetime(left)
    start, end = to_datetime(bounds[0]), to_datetime(bounds[1])
    if value is None or start is None or end is None:
        return False
    return start <= value <= end


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

_DISPATCH: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: _strict_equals,
    Operator.NEQ: lambda a, b: not _strict_equals(a, b),
    Operator.GT: _ordered(lambda a, b: a > b),
    Operator.GTE: _ordered(lambda a, b: a >= b),
    Operator.LT: _ordered(lambda a, b: a < b),
    Operator.LTE: _ordered(lambda a, b: a <= b),
    Operator.IN: lambda a, b: _is_collection(b) and _member(a, b),
    Operator.NIN: lambda a, b: _is_collection(b) and not _member(a, b),
    Operator.LIKE: lambda a, b: _both_strings(a, b) and b in a,
    Operator.NOT_LIKE: lambda a, b: _both_strings(a, b) and b not in a,
    Operator.ILIKE: lambda a, b: _both_strings(a, b) and b.lower() in a.lower(),
    Operator.NOT_ILIKE: lambda a, b: _both_strings(a, b) and b.lower() not in a.lower(),
    Operator.REGEX: _regex,
    Operator.BEFORE: _date_compare(lambda a, b: a < b),
    Operator.AFTER: _date_compare(lambda a, b: a > b),
    Operator.BETWEEN: _between,
    Operator.EXISTS: lambda a, b: True,
    Operator.NOT_EXISTS: lambda a, b: False,
}


def evaluate_operator(operator: Any, actual_value: Any, compare_value: Any) -> bool:
    """Apply ``operator`` to ``actual_value`` and ``compare_value``.

    An absent actual value only satisfies ``notexists``. Unknown operators
    log a warning and return False.

    Usage::

        evaluate_operator("gte", 52, 26)            # True
        evaluate_operator("between", "2024-07-01", ["2024-01-01", "2024-12-31"])
        evaluate_operator("notexists", None, None)  # True
    """
    op = _as_operator(operator)
    if op is None:
        logger.warning("Unknown operator: %r", operator)
        return False

    if is_absent(actual_value):
        return op is Operator.NOT_EXISTS

    return bool(_DISPATCH[op](actual_value, compare_value))
