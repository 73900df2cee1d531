"""Domain events emitted to the message bus."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.models.patient import Patient


class PatientCreatedEvent(BaseModel):
    """Snapshot of a newly created patient."""

    event_type: Literal["PATIENT_CREATED"] = "PATIENT_CREATED"
    patient_id: str
    name: str
    email: str
    created_time: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_patient(cls, patient: Patient) -> "PatientCreatedEvent":
        """Snapshot the fields carried by the event."""
        return cls(patient_id=patient.id, name=patient.name, email=patient.email)
