"""Pydantic schemas for quote input, price tables and quote output."""

from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Quote input
# ---------------------------------------------------------------------------

class StudentDetails(BaseModel):
    """Prospective student. Accepts camelCase (form) or snake_case keys.

    ``model_dump(by_alias=True)`` gives the camelCase spelling back.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    first_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("first_name", "firstName"), serialization_alias="firstName"
    )
    last_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("last_name", "lastName"), serialization_alias="lastName"
    )
    date_of_birth: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("date_of_birth", "dateOfBirth"),
        serialization_alias="dateOfBirth",
    )
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    is_offshore: bool = Field(
        False, validation_alias=AliasChoices("is_offshore", "isOffshore"), serialization_alias="isOffshore"
    )
    is_student_visa: bool = Field(
        False,
        validation_alias=AliasChoices("is_student_visa", "isStudentVisa", "student_visa"),
        serialization_alias="isStudentVisa",
    )
    region_id: Optional[Union[str, int]] = None
    previous_student: Optional[bool] = None


class CourseSelection(BaseModel):
    model_config = ConfigDict(extra="allow")

    course_id: Union[str, int]
    campus_id: Optional[Union[str, int]] = None
    intake_date: Optional[str] = None
    duration_weeks: float = Field(0, ge=0)
    course_type: Optional[str] = None
    faculty_id: Optional[Union[str, int]] = None
    study_load: Optional[str] = None
    day_night_classes: Optional[str] = None
    needs_transport: Optional[bool] = None


class AccommodationSelection(BaseModel):
    model_config = ConfigDict(extra="allow")

    accommodation_type_id: Union[str, int]
    room_size_id: Union[str, int]
    check_in_date: Optional[str] = None
    duration_weeks: float = Field(0, ge=0)


class QuoteInput(BaseModel):
    student_details: StudentDetails
    course_details: list[CourseSelection]
    accommodation: Optional[AccommodationSelection] = None


# ---------------------------------------------------------------------------
# Price tables
# ---------------------------------------------------------------------------

class CoursePrice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[str, int]] = None
    course_details_id: Union[str, int]
    region_id: Optional[Union[str, int]] = None
    base_price: Optional[float] = None
    price_per_week: Optional[float] = None


class AccommodationRoom(BaseModel):
    model_config = ConfigDict(extra="ignore")

    accommodation_type_id: Union[str, int]
    room_size_id: Union[str, int]
    price_per_week: Optional[float] = None
    base_price: Optional[float] = None


# ---------------------------------------------------------------------------
# Quote output
# ---------------------------------------------------------------------------

class Adjustment(BaseModel):
    """One auditable line: which rule changed the price, and by how much."""

    rule_id: Union[str, int]
    rule_name: str
    amount: float
    type: str  # fixed | percent


class CourseLine(BaseModel):
    course_id: Union[str, int]
    base_price: float
    adjusted_price: float
    adjustments: list[Adjustment] = Field(default_factory=list)


class AccommodationLine(BaseModel):
    accommodation_type_id: Union[str, int]
    room_size_id: Union[str, int]
    base_price: float
    adjusted_price: float
    adjustments: list[Adjustment] = Field(default_factory=list)


class QuoteBreakdown(BaseModel):
    courses: list[CourseLine] = Field(default_factory=list)
    accommodation: Optional[AccommodationLine] = None
    fees: list[Adjustment] = Field(default_factory=list)
    discounts: list[Adjustment] = Field(default_factory=list)


class QuoteOutput(BaseModel):
    total_price: float
    subtotal: float = 0.0
    total_with_fees: float = 0.0
    currency: str = "AUD"
    breakdown: QuoteBreakdown = Field(default_factory=QuoteBreakdown)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict; ``accommodation`` is omitted when there is none."""
        data = self.model_dump(mode="json")
        if data["breakdown"]["accommodation"] is None:
            del data["breakdown"]["accommodation"]
        return data
