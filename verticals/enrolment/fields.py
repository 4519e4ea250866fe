"""Rule field registry for the enrolment vertical.

Maps every field a rule condition can reference to its label and type, and
maps field types to the operators an author may pick for them. The
operator table is built once at import; ``operators_for_field`` is the one
query used by authoring and validation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from core.conditions.model import Condition, InvalidCondition
from core.conditions.operators import Operator, is_known_operator, to_datetime


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FieldType(str, Enum):
    STRING = "string"
    STRING_OPTION = "string_option"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    CAMPUS = "campus"
    FACULTY = "faculty"
    COURSE_TYPE = "course_type"
    ACCOMMODATION_TYPE = "accommodation_type"
    ROOM_SIZE = "room_size"
    REGION = "region"


class CourseType(str, Enum):
    VET = "VET"
    ELICOS = "ELICOS"


class StudyLoad(str, Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"


class ClassSchedule(str, Enum):
    DAY = "day"
    NIGHT = "night"


class Transport(str, Enum):
    NEEDED = "needed"
    NOT_NEEDED = "not_needed"


class OnshoreOffshore(str, Enum):
    ONSHORE = "onshore"
    OFFSHORE = "offshore"


STUDY_LOAD_LABELS = {
    StudyLoad.FULL_TIME: "Full Time",
    StudyLoad.PART_TIME: "Part Time",
}

CLASS_SCHEDULE_LABELS = {
    ClassSchedule.DAY: "Day Classes",
    ClassSchedule.NIGHT: "Night Classes",
}

TRANSPORT_LABELS = {
    Transport.NEEDED: "Transport Needed",
    Transport.NOT_NEEDED: "No Transport Needed",
}

ONSHORE_OFFSHORE_LABELS = {
    OnshoreOffshore.ONSHORE: "Onshore",
    OnshoreOffshore.OFFSHORE: "Offshore",
}

OPTION_LABELS: dict[str, dict] = {
    "study_load": STUDY_LOAD_LABELS,
    "day_night_classes": CLASS_SCHEDULE_LABELS,
    "onshore_offshore": ONSHORE_OFFSHORE_LABELS,
}


# ---------------------------------------------------------------------------
# Field definitions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldDefinition:
    key: str
    label: str
    type: FieldType
    options: tuple[str, ...] = ()
    dynamic_options: bool = False


def _field(key: str, label: str, type_: FieldType, options=(), dynamic: bool = False) -> FieldDefinition:
    return FieldDefinition(
        key=key,
        label=label,
        type=type_,
        options=tuple(o.value if isinstance(o, Enum) else o for o in options),
        dynamic_options=dynamic,
    )


RULE_FIELDS: dict[str, FieldDefinition] = {
    f.key: f
    for f in (
        _field("region_id", "Region", FieldType.REGION, dynamic=True),
        _field("onshore_offshore", "Onshore/offshore", FieldType.STRING_OPTION, options=OnshoreOffshore),
        _field("student_visa", "Student visa", FieldType.BOOLEAN),
        _field("previous_student", "Previous student", FieldType.BOOLEAN),
        _field("course_type", "Course type", FieldType.STRING_OPTION, options=CourseType),
        _field("faculty_id", "Faculty", FieldType.FACULTY, dynamic=True),
        _field("campus_id", "Campus", FieldType.CAMPUS, dynamic=True),
        _field("duration_weeks", "Duration (weeks)", FieldType.NUMBER),
        _field("study_load", "Study load", FieldType.STRING_OPTION, options=StudyLoad),
        _field("day_night_classes", "Class schedule", FieldType.STRING_OPTION, options=ClassSchedule),
        _field("intake_date", "Intake date", FieldType.DATE),
        _field("accommodation_type_id", "Accommodation", FieldType.ACCOMMODATION_TYPE, dynamic=True),
        _field("room_size_id", "Room size", FieldType.ROOM_SIZE, dynamic=True),
        _field("accommodation_price_per_week", "Accom price p/w", FieldType.NUMBER),
        _field("needs_transport", "Transport required", FieldType.BOOLEAN),
    )
}

_ID_TYPES = (
    FieldType.CAMPUS,
    FieldType.FACULTY,
    FieldType.COURSE_TYPE,
    FieldType.ACCOMMODATION_TYPE,
    FieldType.ROOM_SIZE,
    FieldType.REGION,
)


# ---------------------------------------------------------------------------
# Operator registry
# ---------------------------------------------------------------------------

Label = Union[str, Callable[[Optional[FieldType]], str]]


def _date_aware(date_label: str, default: str) -> Callable[[Optional[FieldType]], str]:
    return lambda field_type: date_label if field_type is FieldType.DATE else default


# operator -> (label, field types an author may use it with)
_OPERATOR_SPECS: dict[Operator, tuple[Label, tuple[FieldType, ...]]] = {
    Operator.EQ: (
        _date_aware("on", "equal to"),
        (FieldType.NUMBER, FieldType.BOOLEAN, *_ID_TYPES, FieldType.STRING_OPTION, FieldType.DATE),
    ),
    Operator.NEQ: (
        _date_aware("not on", "not equal to"),
        (FieldType.NUMBER, FieldType.BOOLEAN, *_ID_TYPES, FieldType.STRING_OPTION, FieldType.DATE),
    ),
    Operator.GT: (_date_aware("after", "greater than"), (FieldType.NUMBER, FieldType.DATE)),
    Operator.GTE: (_date_aware("on or after", "greater than or equal to"), (FieldType.NUMBER, FieldType.DATE)),
    Operator.LT: (_date_aware("before", "less than"), (FieldType.NUMBER, FieldType.DATE)),
    Operator.LTE: (_date_aware("on or before", "less than or equal to"), (FieldType.NUMBER, FieldType.DATE)),
    # Evaluatable, but not offered in the authoring form.
    Operator.IN: ("one of", ()),
    Operator.NIN: ("not one of", ()),
    Operator.LIKE: ("containing (case sensitive)", (FieldType.STRING,)),
    Operator.NOT_LIKE: ("not containing (case sensitive)", (FieldType.STRING,)),
    Operator.ILIKE: ("containing", (FieldType.STRING,)),
    Operator.NOT_ILIKE: ("not containing", (FieldType.STRING,)),
    Operator.REGEX: ("matching pattern", (FieldType.STRING,)),
    Operator.BEFORE: ("before", (FieldType.DATE,)),
    Operator.AFTER: ("after", (FieldType.DATE,)),
    Operator.BETWEEN: ("between", (FieldType.DATE,)),
    Operator.EXISTS: ("exists", ()),
    Operator.NOT_EXISTS: ("does not exist", ()),
}


def _build_type_index() -> dict[FieldType, tuple[Operator, ...]]:
    index: dict[FieldType, list[Operator]] = {t: [] for t in FieldType}
    for operator, (_, types) in _OPERATOR_SPECS.items():
        for field_type in types:
            index[field_type].append(operator)
    return {t: tuple(ops) for t, ops in index.items()}


OPERATORS_BY_TYPE: dict[FieldType, tuple[Operator, ...]] = _build_type_index()


def operators_for_type(field_type: FieldType | str) -> tuple[Operator, ...]:
    try:
        return OPERATORS_BY_TYPE[FieldType(field_type)]
    except ValueError:
        return ()


def operators_for_field(field_key: str) -> tuple[Operator, ...]:
    """Operators an author may choose for ``field_key`` (empty if unknown)."""
    definition = RULE_FIELDS.get(field_key)
    if definition is None:
        return ()
    return OPERATORS_BY_TYPE[definition.type]


def operator_label(operator: Operator | str, field_type: FieldType | str | None = None) -> str:
    try:
        op = Operator(operator)
    except ValueError:
        return str(operator)
    label = _OPERATOR_SPECS[op][0]
    if callable(label):
        return label(FieldType(field_type) if field_type else None)
    return label


def operator_choices(field_key: str) -> list[dict[str, str]]:
    """``[{"value": "gte", "label": "greater than or equal to"}, ...]`` for a select box."""
    definition = RULE_FIELDS.get(field_key)
    if definition is None:
        return []
    return [
        {"value": op.value, "label": operator_label(op, definition.type)}
        for op in OPERATORS_BY_TYPE[definition.type]
    ]


# ---------------------------------------------------------------------------
# Authoring-time helpers
# ---------------------------------------------------------------------------

def coerce_value(value: Any, field_type: FieldType | str) -> Any:
    """Normalise a raw form value for a field type."""
    field_type = FieldType(field_type)
    if field_type is FieldType.NUMBER:
        if value == "" or value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        number = float(value)
        return int(number) if number.is_integer() else number
    if field_type is FieldType.BOOLEAN:
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_condition(condition: Condition | InvalidCondition | dict) -> list[str]:
    """Check one leaf against the registry. Returns a list of problems (empty if valid)."""
    if isinstance(condition, InvalidCondition):
        return [f"Invalid condition: {condition.reason}"]
    if isinstance(condition, dict):
        condition = Condition(
            field=condition.get("field", ""),
            operator=condition.get("operator", ""),
            value=condition.get("value"),
        )

    definition = RULE_FIELDS.get(condition.field)
    if definition is None:
        return [f"Unknown field: {condition.field or '(empty)'}"]
    if not is_known_operator(condition.operator):
        return [f"Unknown operator: {condition.operator or '(empty)'}"]

    operator = Operator(condition.operator)
    if operator not in OPERATORS_BY_TYPE[definition.type]:
        return [f"Operator '{operator.value}' is not valid for {definition.label}"]

    value = condition.value
    if value is None or value == "":
        return [f"A value is required for {definition.label}"]

    errors: list[str] = []
    if definition.type is FieldType.NUMBER and not _is_number(value):
        errors.append(f"{definition.label} must be a number")
    elif definition.type is FieldType.BOOLEAN and not isinstance(value, bool):
        errors.append(f"{definition.label} must be yes or no")
    elif definition.type is FieldType.DATE:
        if operator is Operator.BETWEEN:
            if not isinstance(value, (list, tuple)) or len(value) != 2:
                errors.append(f"{definition.label} needs a start and end date")
            elif any(to_datetime(v) is None for v in value):
                errors.append(f"{definition.label} has an invalid date")
        elif to_datetime(value) is None:
            errors.append(f"{definition.label} has an invalid date")
    elif definition.options and value not in definition.options:
        errors.append(f"{value!r} is not an option for {definition.label}")

    return errors
