"""SQLAlchemy table definitions."""

from sqlalchemy import Column, Date, String, UniqueConstraint
from sqlalchemy.orm import declarative_base

from app.models.patient import Patient

Base = declarative_base()


class PatientRow(Base):
    """Patients table. Email uniqueness is enforced by the database."""

    __tablename__ = "patients"
    __table_args__ = (UniqueConstraint("email", name="uq_patients_email"),)

    id = Column(String(32), primary_key=True)
    name = Column(String(100), nullable=False)
    address = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=False)

    def to_patient(self) -> Patient:
        return Patient(
            id=self.id,
            name=self.name,
            address=self.address,
            email=self.email,
            date_of_birth=self.date_of_birth,
        )
