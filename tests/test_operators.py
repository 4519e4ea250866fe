"""Test leaf operator dispatch."""
import logging
from datetime import date, datetime

from core.conditions.operators import (
    MISSING,
    Operator,
    evaluate_operator,
    is_known_operator,
    operator_family,
    to_datetime,
)


def test_equality_is_strict_about_booleans():
    assert evaluate_operator("eq", "VET", "VET")
    assert evaluate_operator("eq", 12, 12.0)
    assert not evaluate_operator("eq", True, 1)
    assert not evaluate_operator("eq", 0, False)
    assert evaluate_operator("neq", "VET", "ELICOS")
    assert evaluate_operator("neq", True, 1)


def test_ordering_operators():
    assert evaluate_operator("gt", 52, 26)
    assert evaluate_operator("gte", 26, 26)
    assert evaluate_operator("lt", 12, 26)
    assert evaluate_operator("lte", 26, 26)
    assert not evaluate_operator("gte", 12, 26)


def test_ordering_with_incomparable_operands_is_false():
    assert not evaluate_operator("gt", "10", 5)
    assert not evaluate_operator("gte", True, 0)
    assert not evaluate_operator("lt", 1, {"a": 1})


def test_membership_needs_a_collection():
    assert evaluate_operator("in", "VET", ["VET", "ELICOS"])
    assert evaluate_operator("in", 2, (1, 2, 3))
    assert not evaluate_operator("in", "VET", "VET")
    assert evaluate_operator("nin", "Other", ["VET"])
    assert not evaluate_operator("nin", "Other", "VET")
    assert not evaluate_operator("in", True, [1])


def test_string_operators():
    assert evaluate_operator("like", "Sydney Campus", "Campus")
    assert not evaluate_operator("like", "sydney campus", "Campus")
    assert evaluate_operator("ilike", "sydney campus", "CAMPUS")
    assert evaluate_operator("notlike", "Melbourne", "Sydney")
    assert evaluate_operator("nilike", "Melbourne", "SYDNEY")
    assert not evaluate_operator("nilike", "Sydney", "SYDNEY")
    assert not evaluate_operator("like", 5, "5")


def test_regex(caplog):
    assert evaluate_operator("regex", "ABC123", r"^[A-Z]+\d+$")
    assert not evaluate_operator("regex", "abc", r"^\d+$")
    with caplog.at_level(logging.WARNING):
        assert not evaluate_operator("regex", "abc", "(")
    assert "Invalid regex" in caplog.text


def test_date_operators():
    assert evaluate_operator("before", "2024-05-01", "2024-07-01")
    assert evaluate_operator("after", "2024-09-01", "2024-07-01")
    assert not evaluate_operator("before", "2024-07-01", "2024-07-01")
    assert evaluate_operator("after", date(2024, 7, 2), "2024-07-01")


def test_between_is_inclusive():
    bounds = ["2024-01-01", "2024-06-30"]
    assert evaluate_operator("between", "2024-01-01", bounds)
    assert evaluate_operator("between", "2024-06-30", bounds)
    assert evaluate_operator("between", "2024-03-15", bounds)
    assert not evaluate_operator("between", "2024-07-01", bounds)


def test_between_needs_exactly_two_bounds():
    assert not evaluate_operator("between", "2024-03-15", ["2024-01-01"])
    assert not evaluate_operator("between", "2024-03-15", ["2024-01-01", "2024-02-01", "2024-12-31"])
    assert not evaluate_operator("between", "2024-03-15", "2024-01-01")


def test_unparseable_dates_are_false():
    assert not evaluate_operator("before", "soon", "2024-07-01")
    assert not evaluate_operator("after", "2024-07-01", 12)


def test_mixed_timezones_compare_in_utc():
    assert evaluate_operator("after", "2024-07-01T10:00:00+10:00", "2024-06-30T23:00:00")
    assert not evaluate_operator("after", "2024-07-01T08:00:00+10:00", "2024-06-30T23:00:00")
    assert to_datetime("2024-07-01T00:00:00Z") == datetime(2024, 7, 1)


def test_existence():
    assert evaluate_operator("exists", 0, None)
    assert evaluate_operator("exists", False, None)
    assert not evaluate_operator("exists", None, None)
    assert evaluate_operator("notexists", None, None)
    assert evaluate_operator("notexists", MISSING, None)
    assert not evaluate_operator("notexists", "x", None)


def test_absent_value_fails_every_other_operator():
    for op in Operator:
        if op is Operator.NOT_EXISTS:
            continue
        assert not evaluate_operator(op, None, "VET")
        assert not evaluate_operator(op, MISSING, "VET")


def test_unknown_operator_is_false_and_logged(caplog):
    with caplog.at_level(logging.WARNING):
        assert not evaluate_operator("approx", 1, 1)
    assert "Unknown operator" in caplog.text


def test_operator_lookup_helpers():
    assert is_known_operator("nilike")
    assert is_known_operator(Operator.BETWEEN)
    assert not is_known_operator("contains")
    assert operator_family("between") == "date"
    assert operator_family("in") == "equality"
    assert operator_family("exists") == "existence"
    assert operator_family("bogus") is None


def test_to_datetime():
    assert to_datetime(date(2024, 7, 1)) == datetime(2024, 7, 1)
    assert to_datetime("2024-07-01") == datetime(2024, 7, 1)
    assert to_datetime("not a date") is None
    assert to_datetime("") is None
    assert to_datetime(None) is None
