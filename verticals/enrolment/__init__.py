"""Enrolment vertical: rule-driven quotes for study placements.

Puts the condition interpreter to work on course, accommodation, fee and
discount pricing:
- Field registry mapping rule fields to types and allowed operators
- Pydantic rule model with date-window status and value validation
- Pydantic quote input / output schemas
- Staged quote calculator with an auditable breakdown
- Display formatting and sample quotes for rule authoring
- Dataclass configuration
"""
