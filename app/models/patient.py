"""Patient data models."""

import re
from dataclasses import dataclass
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class Patient:
    """Persisted patient record.

    Instances are immutable; an update produces a new value.
    """

    id: str
    name: str
    address: str
    email: str
    date_of_birth: date


class PatientRequest(BaseModel):
    """Request body for creating or replacing a patient.

    All fields are required on update as well; a request always carries the
    whole record.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100, examples=["Alice Smith"])
    address: str = Field(..., min_length=1, max_length=255, examples=["1 Main St"])
    email: str = Field(..., min_length=3, max_length=255, examples=["alice@clinic.org"])
    date_of_birth: str = Field(
        ...,
        alias="dateOfBirth",
        min_length=1,
        description="ISO-8601 date (YYYY-MM-DD), parsed before it is stored",
        examples=["1990-01-01"],
    )

    @field_validator("name", "address")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject whitespace-only text."""
        if v.isspace():
            raise ValueError("Value cannot be whitespace only")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate email shape."""
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Email should be valid")
        return v


class PatientResponse(BaseModel):
    """Patient representation returned by the API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    address: str
    email: str
    date_of_birth: date = Field(..., alias="dateOfBirth")

    @classmethod
    def from_patient(cls, patient: Patient) -> "PatientResponse":
        """Build the API representation of a patient record."""
        return cls(
            id=patient.id,
            name=patient.name,
            address=patient.address,
            email=patient.email,
            date_of_birth=patient.date_of_birth,
        )


class PatientCountResponse(BaseModel):
    """Response model for the patient count endpoint."""

    count: int
    total: int
