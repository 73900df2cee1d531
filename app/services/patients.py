"""Patient lifecycle service.

Sequences the patient store, billing provisioning and event publishing for
every patient operation. Creation runs a fixed pipeline:

    VALIDATED -> PERSISTED -> BILLING_PROVISIONED -> EVENT_PUBLISHED -> DONE

A duplicate email stops the pipeline before anything is written. A billing
failure propagates to the caller and leaves the persisted row in place without
a billing account or event; there is no compensation or retry, so such rows
need manual reconciliation. The event is published in a background task so a
slow or unavailable bus never delays the response; its failure is only logged.
"""

import asyncio
from datetime import date
from enum import Enum

from app.clients.billing import BillingClient
from app.clients.events import EventPublisher
from app.errors import BillingUnavailableError, EmailAlreadyExistsError, EventPublishError, PatientValidationError
from app.models.events import PatientCreatedEvent
from app.models.patient import Patient, PatientRequest
from app.services.patient_store import PatientStore
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CreateStage(str, Enum):
    """Progress of a single create request."""

    VALIDATED = "validated"
    PERSISTED = "persisted"
    BILLING_PROVISIONED = "billing_provisioned"
    EVENT_PUBLISHED = "event_published"
    DONE = "done"


def parse_date_of_birth(value: str) -> date:
    """Parse an ISO-8601 date string.

    Raises:
        PatientValidationError: If the value is not a valid ISO date
    """
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise PatientValidationError(f"Invalid dateOfBirth {value!r}, expected YYYY-MM-DD") from e


class PatientService:
    """Coordinates patient persistence with billing and event side effects.

    Holds no patient state; collaborators are supplied by the caller. The only
    thing it tracks is the set of publish tasks still in flight.
    """

    def __init__(self, store: PatientStore, billing_client: BillingClient, publisher: EventPublisher):
        self.store = store
        self.billing_client = billing_client
        self.publisher = publisher
        self._pending_publishes: set[asyncio.Task] = set()

    async def list_patients(self) -> list[Patient]:
        return await self.store.list_all()

    async def get_patient(self, patient_id: str) -> Patient:
        return await self.store.get(patient_id)

    async def count_patients(self) -> int:
        return await self.store.count()

    async def search_patients(self, term: str | None = None, name: str | None = None) -> list[Patient]:
        """Search patients by free text or by name.

        Free text (name, email or address) wins when both are given; with
        neither, every patient is returned.
        """
        if term and term.strip():
            return await self.store.search(term.strip())
        if name and name.strip():
            return await self.store.search_by_name(name.strip())
        return await self.store.list_all()

    async def create_patient(self, request: PatientRequest) -> Patient:
        """Create a patient, provision billing, then publish the created event.

        Raises:
            PatientValidationError: If the date of birth cannot be parsed
            EmailAlreadyExistsError: If the email is already in use
            BillingUnavailableError: If billing provisioning failed; the
                patient stays persisted
        """
        date_of_birth = parse_date_of_birth(request.date_of_birth)
        stage = CreateStage.VALIDATED
        logger.info(f"Creating patient {request.email}: {stage.value}")

        if await self.store.exists_by_email(request.email):
            logger.warning(f"Rejected patient creation, email already in use: {request.email}")
            raise EmailAlreadyExistsError(request.email)

        try:
            patient = await self.store.create(request.name, request.address, request.email, date_of_birth)
        except EmailAlreadyExistsError:
            logger.warning(f"Rejected patient creation, email already in use: {request.email}")
            raise
        stage = CreateStage.PERSISTED
        logger.info(f"Patient {patient.id} {stage.value}")

        try:
            account = await self.billing_client.create_billing_account(patient.id, patient.name, patient.email)
        except BillingUnavailableError as e:
            logger.error(f"Billing provisioning failed for patient {patient.id}, record left without account: {e}")
            raise
        stage = CreateStage.BILLING_PROVISIONED
        logger.info(f"Patient {patient.id} {stage.value} (account {account.account_id})")

        self._schedule_publish(patient)
        logger.info(f"Patient {patient.id} creation {CreateStage.DONE.value}")
        return patient

    async def update_patient(self, patient_id: str, request: PatientRequest) -> Patient:
        """Replace all mutable fields of a patient.

        Raises:
            PatientNotFoundError: If no patient has that id
            PatientValidationError: If the date of birth cannot be parsed
            EmailAlreadyExistsError: If a different patient uses the email
        """
        current = await self.store.get(patient_id)

        if await self.store.exists_by_email(request.email, exclude_id=current.id):
            logger.warning(f"Rejected update of patient {patient_id}, email already in use: {request.email}")
            raise EmailAlreadyExistsError(request.email)

        date_of_birth = parse_date_of_birth(request.date_of_birth)
        updated = await self.store.update(current.id, request.name, request.address, request.email, date_of_birth)
        logger.info(f"Patient {patient_id} updated")
        return updated

    async def delete_patient(self, patient_id: str) -> None:
        await self.store.delete(patient_id)
        logger.info(f"Patient {patient_id} deleted")

    async def drain_publishes(self) -> None:
        """Wait for every publish task still in flight."""
        if self._pending_publishes:
            await asyncio.gather(*self._pending_publishes, return_exceptions=True)

    def _schedule_publish(self, patient: Patient) -> None:
        """Hand the created event to the publisher without waiting for it."""
        event = PatientCreatedEvent.from_patient(patient)
        task = asyncio.create_task(self.publisher.publish(event), name=f"publish-{patient.id}")
        self._pending_publishes.add(task)
        task.add_done_callback(self._on_publish_done)

    def _on_publish_done(self, task: asyncio.Task) -> None:
        self._pending_publishes.discard(task)
        if task.cancelled():
            logger.warning(f"Publish task {task.get_name()} cancelled")
            return

        error = task.exception()
        if error is None:
            logger.info(f"{task.get_name()} {CreateStage.EVENT_PUBLISHED.value}")
        elif isinstance(error, EventPublishError):
            logger.warning(f"Patient created event not published ({task.get_name()}): {error}")
        else:
            logger.error(f"Unexpected error in {task.get_name()}: {error}", exc_info=error)
