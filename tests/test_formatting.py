"""Test display formatting and the sample-quote test step."""
from verticals.enrolment.formatting import (
    NO_CONDITIONS,
    describe_adjustment,
    format_applies_to,
    format_condition,
    format_condition_value,
    format_rule_action,
    format_rule_conditions,
    format_rule_status,
    format_rule_value,
)
from verticals.enrolment.models.schemas import Adjustment
from verticals.enrolment.samples import (
    CUSTOM_QUOTE_TEMPLATE,
    SAMPLE_QUOTES,
    custom_quote,
    run_rule_against_samples,
)


def rule(applies_to="course_price", value=10, value_type="percent", conditions=None):
    return {
        "id": "r1",
        "name": "Rule",
        "applies_to": applies_to,
        "value": value,
        "value_type": value_type,
        "conditions": conditions,
    }


def test_format_rule_value():
    assert format_rule_value(rule()) == "10%"
    assert format_rule_value(rule(value=50, value_type="fixed")) == "$50"
    assert format_rule_value(rule(value=12.5, value_type="fixed")) == "$12.5"


def test_format_rule_action():
    assert format_rule_action(rule(value=-5)) == "Apply 5% decrease to the price"
    assert format_rule_action(rule(value=15)) == "Apply 15% increase to the price"
    assert format_rule_action(rule(value=200, value_type="fixed")) == "Add $200 to the price"
    assert format_rule_action(rule("accommodation", -50, "fixed")) == "Subtract $50 from the price"
    assert format_rule_action(rule("enrollment_fee", 50, "fixed")) == "Add a fee of $50"
    assert format_rule_action(rule("total_fee", 2, "percent")) == "Add a fee of 2% of the subtotal"
    assert format_rule_action(rule("total_discount", -10, "percent")) == "Apply 10% discount"
    assert format_rule_action(rule("course_discount", -100, "fixed")) == "Subtract $100 from the total"


def test_format_applies_to():
    assert format_applies_to("total_fee") == "Total Fees"
    assert format_applies_to("accommodation") == "Accommodation Price"
    assert format_applies_to("gift_card") == "gift_card"


def test_format_rule_status():
    window = dict(rule(), start_date="2024-01-01", end_date="2024-06-30")
    assert format_rule_status(window, "2023-12-01") == "Upcoming"
    assert format_rule_status(window, "2024-03-01") == "Active"
    assert format_rule_status(window, "2024-07-01") == "Expired"
    assert format_rule_status(rule(), "2024-03-01") == "Draft"


def test_format_condition_value():
    assert format_condition_value(True) == "Yes"
    assert format_condition_value(False) == "No"
    assert format_condition_value(["VET", "ELICOS"]) == "VET, ELICOS"
    assert format_condition_value("full_time", "study_load") == "Full Time"
    assert format_condition_value(26.0) == "26"
    assert format_condition_value(None) == ""
    assert format_condition_value(True, "needs_transport") == "Transport Needed"
    assert format_condition_value(False, "needs_transport") == "No Transport Needed"


def test_format_condition():
    assert format_condition(
        {"field": "duration_weeks", "operator": "gte", "value": 26}
    ) == "Duration (weeks) greater than or equal to 26"
    assert format_condition(
        {"field": "study_load", "operator": "eq", "value": "full_time"}
    ) == "Study load equal to Full Time"
    assert format_condition(
        {"field": "intake_date", "operator": "between", "value": ["2024-01-01", "2024-06-30"]}
    ) == "Intake date between 2024-01-01 and 2024-06-30"
    assert format_condition(
        {"field": "intake_date", "operator": "gt", "value": "2024-07-01"}
    ) == "Intake date after 2024-07-01"
    assert format_condition({"field": "faculty_id", "operator": "exists"}) == "Faculty exists"
    assert format_condition({"field": "legacy_flag", "operator": "eq", "value": 1}) == "legacy_flag equal to 1"


def test_format_rule_conditions():
    assert format_rule_conditions(None) == NO_CONDITIONS
    assert format_rule_conditions([]) == NO_CONDITIONS

    tree = {
        "group_operator": "AND",
        "conditions": [
            {"field": "student_visa", "operator": "eq", "value": True},
            {
                "group_operator": "OR",
                "conditions": [
                    {"field": "course_type", "operator": "eq", "value": "VET"},
                    {"field": "duration_weeks", "operator": "gte", "value": 26},
                ],
            },
        ],
    }
    assert format_rule_conditions(tree) == (
        "Student visa equal to Yes AND "
        "(Course type equal to VET OR Duration (weeks) greater than or equal to 26)"
    )


def test_describe_adjustment():
    discount = Adjustment(rule_id="d1", rule_name="Early bird", amount=-115, type="percent")
    fee = Adjustment(rule_id="f1", rule_name="Enrolment fee", amount=1234.5, type="fixed")
    assert describe_adjustment(discount) == "Early bird: -115.00 AUD"
    assert describe_adjustment(fee, currency="NZD") == "Enrolment fee: +1,234.50 NZD"


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------

def test_samples_against_a_duration_rule():
    results = run_rule_against_samples(rule(conditions=[
        {"field": "duration_weeks", "operator": "gte", "value": 26},
    ]))
    assert len(SAMPLE_QUOTES) == 3
    assert {k: r.applies for k, r in results.items()} == {
        "sample_1": True,
        "sample_2": False,
        "sample_3": True,
    }


def test_samples_use_the_shallow_and_path():
    results = run_rule_against_samples(rule(conditions={
        "group_operator": "OR",
        "conditions": [
            {"field": "course_type", "operator": "eq", "value": "ELICOS"},
            {"field": "previous_student", "operator": "eq", "value": True},
        ],
    }))
    assert results["sample_1"].conditions == [False, False]
    assert results["sample_2"].applies
    assert results["sample_3"].conditions == [False, True]
    assert not results["sample_3"].applies


def test_null_sample_fields_count_as_absent():
    results = run_rule_against_samples(rule(conditions=[
        {"field": "accommodation_type_id", "operator": "notexists"},
    ]))
    assert not results["sample_1"].applies
    assert results["sample_3"].applies


def test_custom_quote_copies_the_template():
    quote = custom_quote(duration_weeks=30, course_type="VET")
    assert quote["duration_weeks"] == 30
    assert CUSTOM_QUOTE_TEMPLATE["duration_weeks"] == 0
    assert CUSTOM_QUOTE_TEMPLATE["course_type"] is None
