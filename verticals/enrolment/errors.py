"""Errors raised by the enrolment quote engine.

Only hard failures are raised. Soft failures (unknown operators, bad
conditions, missing prices) are logged and the affected rule or item
contributes nothing.
"""

from typing import Any, Optional

from pydantic import ValidationError


class EnrolmentError(Exception):
    """Base class for enrolment engine errors."""


class QuoteValidationError(EnrolmentError, ValueError):
    """The quote input is missing or structurally invalid."""

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "QuoteValidationError":
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        fields = ", ".join(sorted({e["field"] for e in errors}))
        return cls(f"Invalid input data: {fields}", errors=errors)

    def to_dict(self) -> dict[str, Any]:
        return {"error": str(self), "details": self.errors}
