"""Sample quotes for the rule authoring "test" step.

Each sample is a flat evaluation record, the same shape the calculator
builds for a quote's primary course.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from core.conditions.evaluator import RuleTestResult
from verticals.enrolment.rules import Rule, check_rule_against_quote


@dataclass(frozen=True)
class SampleQuote:
    id: str
    name: str
    quote: dict[str, Any]


SAMPLE_QUOTES: tuple[SampleQuote, ...] = (
    SampleQuote(
        id="sample_1",
        name="International Student - VET Course",
        quote={
            "student_visa": True,
            "onshore_offshore": "offshore",
            "region_id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa",  # Asia
            "course_type": "VET",
            "faculty_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",  # Business
            "campus_id": "cccccccc-cccc-cccc-cccc-cccccccccccc",  # Sydney
            "duration_weeks": 52,
            "study_load": "full_time",
            "day_night_classes": "day",
            "intake_date": "2024-07-01",
            "accommodation_type_id": "cccccccc-cccc-cccc-cccc-cccccccccccc",  # Homestay
            "room_size_id": "eeeeeeee-eeee-eeee-eeee-eeeeeeeeeeee",  # Single
            "accommodation_price_per_week": 350,
            "needs_transport": True,
            "previous_student": False,
        },
    ),
    SampleQuote(
        id="sample_2",
        name="Local Student - ELICOS Course",
        quote={
            "student_visa": False,
            "onshore_offshore": "onshore",
            "region_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",  # Oceania
            "course_type": "ELICOS",
            "faculty_id": "cccccccc-cccc-cccc-cccc-cccccccccccc",  # English
            "campus_id": "dddddddd-dddd-dddd-dddd-dddddddddddd",  # Melbourne
            "duration_weeks": 12,
            "study_load": "part_time",
            "day_night_classes": "night",
            "intake_date": "2024-05-01",
            "accommodation_type_id": "dddddddd-dddd-dddd-dddd-dddddddddddd",  # Student Residence
            "room_size_id": "ffffffff-ffff-ffff-ffff-ffffffffffff",  # Twin Share
            "accommodation_price_per_week": 250,
            "needs_transport": False,
            "previous_student": True,
        },
    ),
    SampleQuote(
        id="sample_3",
        name="Returning Student - VET Course",
        quote={
            "student_visa": True,
            "onshore_offshore": "onshore",
            "region_id": "cccccccc-cccc-cccc-cccc-cccccccccccc",  # Europe
            "course_type": "VET",
            "faculty_id": "dddddddd-dddd-dddd-dddd-dddddddddddd",  # IT
            "campus_id": "cccccccc-cccc-cccc-cccc-cccccccccccc",  # Sydney
            "duration_weeks": 26,
            "study_load": "full_time",
            "day_night_classes": "day",
            "intake_date": "2024-09-01",
            "accommodation_type_id": None,
            "room_size_id": None,
            "accommodation_price_per_week": 0,
            "needs_transport": False,
            "previous_student": True,
        },
    ),
)

# Starting point for a hand-built sample in the test step
CUSTOM_QUOTE_TEMPLATE: dict[str, Any] = {
    "student_visa": False,
    "onshore_offshore": "onshore",
    "region_id": None,
    "course_type": None,
    "faculty_id": None,
    "campus_id": None,
    "duration_weeks": 0,
    "study_load": None,
    "day_night_classes": None,
    "intake_date": None,
    "accommodation_type_id": None,
    "room_size_id": None,
    "accommodation_price_per_week": 0,
    "needs_transport": False,
    "previous_student": False,
}


def custom_quote(**overrides: Any) -> dict[str, Any]:
    """A fresh copy of the template with ``overrides`` applied."""
    quote = copy.deepcopy(CUSTOM_QUOTE_TEMPLATE)
    quote.update(overrides)
    return quote


def run_rule_against_samples(
    rule: Rule | Mapping[str, Any],
    samples: tuple[SampleQuote, ...] = SAMPLE_QUOTES,
) -> dict[str, RuleTestResult]:
    """Check a rule against every sample; keyed by sample id."""
    return {sample.id: check_rule_against_quote(rule, sample.quote) for sample in samples}
