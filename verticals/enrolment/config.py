"""Dataclass-based configuration for the enrolment quote engine.

Thresholds and switches are frozen dataclasses:
- Defaults follow the historical calculator, with amounts rounded to cents
- Immutability (frozen=True) keeps a config safe to share between calls
- Overrides come from env vars or are passed explicitly per calculation
"""

import os
from dataclasses import dataclass, field
from typing import Optional


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PricingConfig:
    """How amounts are computed and recorded."""

    currency: str = "AUD"
    round_amounts_to: Optional[int] = 2  # decimal places; None keeps raw floats
    skip_invalid_value_combos: bool = False  # drop e.g. positive "discounts" at calc time


@dataclass(frozen=True)
class EvaluationConfig:
    """How rules are selected before evaluation."""

    check_active_window: bool = False  # callers normally pre-filter by date
    accept_legacy_accommodation_stage: bool = True  # applies_to == "accommodation"


# ---------------------------------------------------------------------------
# Top-level domain config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EnrolmentConfig:
    """Complete configuration for the enrolment vertical.

    Usage::

        config = EnrolmentConfig.default()
        quote = calculate_final_quote(..., config=config)
    """

    pricing: PricingConfig = field(default_factory=PricingConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)

    @classmethod
    def default(cls) -> "EnrolmentConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "ENROLMENT_") -> "EnrolmentConfig":
        """Create config from environment variables.

        Example: ENROLMENT_ROUND_AMOUNTS_TO=2 ENROLMENT_CHECK_ACTIVE_WINDOW=true
        """
        pricing = {}
        currency = os.getenv(f"{prefix}CURRENCY")
        if currency:
            pricing["currency"] = currency
        round_to = os.getenv(f"{prefix}ROUND_AMOUNTS_TO")
        if round_to:
            pricing["round_amounts_to"] = None if round_to.lower() == "none" else int(round_to)
        skip_invalid = os.getenv(f"{prefix}SKIP_INVALID_VALUE_COMBOS")
        if skip_invalid:
            pricing["skip_invalid_value_combos"] = _env_flag(skip_invalid)

        evaluation = {}
        check_window = os.getenv(f"{prefix}CHECK_ACTIVE_WINDOW")
        if check_window:
            evaluation["check_active_window"] = _env_flag(check_window)
        legacy = os.getenv(f"{prefix}ACCEPT_LEGACY_ACCOMMODATION_STAGE")
        if legacy:
            evaluation["accept_legacy_accommodation_stage"] = _env_flag(legacy)

        return cls(
            pricing=PricingConfig(**pricing),
            evaluation=EvaluationConfig(**evaluation),
        )


def _env_flag(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Default configuration instance
config = EnrolmentConfig.default()
