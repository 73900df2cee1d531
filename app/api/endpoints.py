"""API endpoints for the patient service."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Response, status

from app import __version__
from app.api.deps import get_patient_service
from app.models.health import HealthResponse, InfoResponse
from app.models.patient import PatientCountResponse, PatientRequest, PatientResponse
from app.services.patients import PatientService
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/patients", tags=["Patient"])
status_router = APIRouter(tags=["Health"])


@router.get("", response_model=list[PatientResponse], summary="Get Patients")
async def list_patients(service: PatientService = Depends(get_patient_service)) -> list[PatientResponse]:
    patients = await service.list_patients()
    return [PatientResponse.from_patient(p) for p in patients]


@router.get("/search", response_model=list[PatientResponse], summary="Search Patients")
async def search_patients(
    name: str | None = None,
    q: str | None = None,
    service: PatientService = Depends(get_patient_service),
) -> list[PatientResponse]:
    """Search by free text (``q``, matched against name, email and address) or by name.

    ``q`` takes precedence when both are given; with neither, all patients are returned.
    """
    patients = await service.search_patients(term=q, name=name)
    return [PatientResponse.from_patient(p) for p in patients]


@router.get("/count", response_model=PatientCountResponse, summary="Get Patient Count")
async def count_patients(service: PatientService = Depends(get_patient_service)) -> PatientCountResponse:
    count = await service.count_patients()
    return PatientCountResponse(count=count, total=count)


@router.get("/{patient_id}", response_model=PatientResponse, summary="Get Patient by ID")
async def get_patient(patient_id: str, service: PatientService = Depends(get_patient_service)) -> PatientResponse:
    patient = await service.get_patient(patient_id)
    return PatientResponse.from_patient(patient)


@router.post("", response_model=PatientResponse, summary="Create a new Patient")
async def create_patient(
    request: PatientRequest, service: PatientService = Depends(get_patient_service)
) -> PatientResponse:
    """Create a patient, provision its billing account and announce it on the event bus.

    A 502 means billing provisioning failed after the patient was stored.
    """
    patient = await service.create_patient(request)
    return PatientResponse.from_patient(patient)


@router.put("/{patient_id}", response_model=PatientResponse, summary="Update a Patient")
async def update_patient(
    patient_id: str, request: PatientRequest, service: PatientService = Depends(get_patient_service)
) -> PatientResponse:
    patient = await service.update_patient(patient_id, request)
    return PatientResponse.from_patient(patient)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a Patient")
async def delete_patient(patient_id: str, service: PatientService = Depends(get_patient_service)) -> Response:
    await service.delete_patient(patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@status_router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="UP",
        service="patient-service",
        timestamp=datetime.now(UTC),
        version=__version__,
    )


@status_router.get("/info", response_model=InfoResponse)
async def info() -> InfoResponse:
    """Service information endpoint."""
    return InfoResponse(
        name="Patient Management Service",
        description="Service for managing patient data",
        version=__version__,
    )
