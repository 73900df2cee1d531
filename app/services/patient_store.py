"""Patient store interface and implementations."""

import asyncio
from datetime import date
from typing import Protocol

from cuid2 import cuid_wrapper
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.errors import EmailAlreadyExistsError, PatientNotFoundError
from app.models.db import Base, PatientRow
from app.models.patient import Patient
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class PatientStore(Protocol):
    """Interface for durable patient storage.

    Email uniqueness must be enforced atomically with the write itself;
    ``exists_by_email`` is only an advisory fast path for callers.
    """

    async def list_all(self) -> list[Patient]:
        """Return every patient record."""
        ...

    async def get(self, patient_id: str) -> Patient:
        """Return the patient with this id.

        Raises:
            PatientNotFoundError: If no record has that id
        """
        ...

    async def exists_by_email(self, email: str, exclude_id: str | None = None) -> bool:
        """Check whether a record other than ``exclude_id`` uses this email."""
        ...

    async def create(self, name: str, address: str, email: str, date_of_birth: date) -> Patient:
        """Persist a new patient under a freshly generated id.

        Raises:
            EmailAlreadyExistsError: If any record already has this email
        """
        ...

    async def update(self, patient_id: str, name: str, address: str, email: str, date_of_birth: date) -> Patient:
        """Overwrite all mutable fields of an existing patient.

        Raises:
            PatientNotFoundError: If no record has that id
            EmailAlreadyExistsError: If a different record has this email
        """
        ...

    async def delete(self, patient_id: str) -> None:
        """Remove a patient. Deleting an absent id is a no-op."""
        ...

    async def count(self) -> int:
        """Return the number of stored patients."""
        ...

    async def search_by_name(self, name: str) -> list[Patient]:
        """Case-insensitive substring match on name."""
        ...

    async def search(self, term: str) -> list[Patient]:
        """Case-insensitive substring match on name, email or address."""
        ...


class InMemoryPatientStore:
    """In-memory patient store.

    A single lock covers the email check and the write, so two concurrent
    creates with the same email cannot both succeed.
    """

    def __init__(self):
        self._patients: dict[str, Patient] = {}
        self._lock = asyncio.Lock()

    async def list_all(self) -> list[Patient]:
        return list(self._patients.values())

    async def get(self, patient_id: str) -> Patient:
        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient

    async def exists_by_email(self, email: str, exclude_id: str | None = None) -> bool:
        return self._email_owner(email, exclude_id) is not None

    async def create(self, name: str, address: str, email: str, date_of_birth: date) -> Patient:
        async with self._lock:
            if self._email_owner(email) is not None:
                raise EmailAlreadyExistsError(email)

            patient = Patient(id=cuid(), name=name, address=address, email=email, date_of_birth=date_of_birth)
            self._patients[patient.id] = patient
            return patient

    async def update(self, patient_id: str, name: str, address: str, email: str, date_of_birth: date) -> Patient:
        async with self._lock:
            if patient_id not in self._patients:
                raise PatientNotFoundError(patient_id)
            if self._email_owner(email, exclude_id=patient_id) is not None:
                raise EmailAlreadyExistsError(email)

            updated = Patient(id=patient_id, name=name, address=address, email=email, date_of_birth=date_of_birth)
            self._patients[patient_id] = updated
            return updated

    async def delete(self, patient_id: str) -> None:
        async with self._lock:
            self._patients.pop(patient_id, None)

    async def count(self) -> int:
        return len(self._patients)

    async def search_by_name(self, name: str) -> list[Patient]:
        needle = name.lower()
        return [p for p in self._patients.values() if needle in p.name.lower()]

    async def search(self, term: str) -> list[Patient]:
        if not term or not term.strip():
            return await self.list_all()

        needle = term.strip().lower()
        return [
            p
            for p in self._patients.values()
            if needle in p.name.lower() or needle in p.email.lower() or needle in p.address.lower()
        ]

    def _email_owner(self, email: str, exclude_id: str | None = None) -> str | None:
        """Return the id of the record using this email, ignoring ``exclude_id``."""
        for patient in self._patients.values():
            if patient.email == email and patient.id != exclude_id:
                return patient.id
        return None


def _like_pattern(term: str) -> str:
    """Build a lowercase ``%term%`` pattern with LIKE wildcards escaped."""
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlAlchemyPatientStore:
    """Relational patient store backed by async SQLAlchemy.

    The ``uq_patients_email`` constraint is the source of truth for email
    uniqueness; an ``IntegrityError`` on insert or update becomes
    ``EmailAlreadyExistsError``.
    """

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize the engine and session factory.

        Args:
            database_url: SQLAlchemy async URL, e.g. ``postgresql+asyncpg://...``
            echo: Log emitted SQL
        """
        engine_kwargs: dict = {"echo": echo, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection, otherwise every session sees an empty database
            engine_kwargs = {"echo": echo, "poolclass": StaticPool, "connect_args": {"check_same_thread": False}}

        self.engine: AsyncEngine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    async def init_schema(self) -> None:
        """Create the patients table if it does not exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Patient schema initialized")

    async def aclose(self) -> None:
        """Dispose of the connection pool."""
        await self.engine.dispose()

    async def list_all(self) -> list[Patient]:
        async with self._session_factory() as session:
            rows = (await session.scalars(select(PatientRow))).all()
            return [row.to_patient() for row in rows]

    async def get(self, patient_id: str) -> Patient:
        async with self._session_factory() as session:
            row = await session.get(PatientRow, patient_id)
            if row is None:
                raise PatientNotFoundError(patient_id)
            return row.to_patient()

    async def exists_by_email(self, email: str, exclude_id: str | None = None) -> bool:
        query = select(PatientRow.id).where(PatientRow.email == email)
        if exclude_id is not None:
            query = query.where(PatientRow.id != exclude_id)

        async with self._session_factory() as session:
            return (await session.scalar(query.limit(1))) is not None

    async def create(self, name: str, address: str, email: str, date_of_birth: date) -> Patient:
        row = PatientRow(id=cuid(), name=name, address=address, email=email, date_of_birth=date_of_birth)

        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(f"Unique constraint rejected patient insert for {email}: {e.orig}")
                raise EmailAlreadyExistsError(email) from e

            return row.to_patient()

    async def update(self, patient_id: str, name: str, address: str, email: str, date_of_birth: date) -> Patient:
        async with self._session_factory() as session:
            row = await session.get(PatientRow, patient_id)
            if row is None:
                raise PatientNotFoundError(patient_id)

            row.name = name
            row.address = address
            row.email = email
            row.date_of_birth = date_of_birth
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(f"Unique constraint rejected patient update {patient_id} for {email}: {e.orig}")
                raise EmailAlreadyExistsError(email) from e

            return row.to_patient()

    async def delete(self, patient_id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(PatientRow).where(PatientRow.id == patient_id))
            await session.commit()

    async def count(self) -> int:
        async with self._session_factory() as session:
            return await session.scalar(select(func.count()).select_from(PatientRow)) or 0

    async def search_by_name(self, name: str) -> list[Patient]:
        query = select(PatientRow).where(func.lower(PatientRow.name).like(_like_pattern(name), escape="\\"))

        async with self._session_factory() as session:
            return [row.to_patient() for row in (await session.scalars(query)).all()]

    async def search(self, term: str) -> list[Patient]:
        if not term or not term.strip():
            return await self.list_all()

        pattern = _like_pattern(term.strip())
        query = select(PatientRow).where(
            or_(
                func.lower(PatientRow.name).like(pattern, escape="\\"),
                func.lower(PatientRow.email).like(pattern, escape="\\"),
                func.lower(PatientRow.address).like(pattern, escape="\\"),
            )
        )

        async with self._session_factory() as session:
            return [row.to_patient() for row in (await session.scalars(query)).all()]
