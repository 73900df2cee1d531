"""Construction of the patient service and its FastAPI dependency."""

from fastapi import Request

from app.clients.billing import BillingClientConfig, HttpBillingClient, InMemoryBillingClient
from app.clients.events import InMemoryEventPublisher, RedisEventPublisher
from app.config import ServiceConfig
from app.services.patient_store import InMemoryPatientStore, SqlAlchemyPatientStore
from app.services.patients import PatientService
from app.utils.logging import get_logger

logger = get_logger(__name__)


async def build_patient_service(config: ServiceConfig) -> PatientService:
    """Wire the store, billing client and publisher selected by ``config``."""
    if config.uses_memory_store:
        store = InMemoryPatientStore()
        logger.info("Using in-memory patient store")
    else:
        store = SqlAlchemyPatientStore(config.database_url)
        await store.init_schema()
        logger.info(f"Using SQL patient store ({store.engine.url.get_backend_name()})")

    if config.billing_service_url:
        billing_client = HttpBillingClient(
            BillingClientConfig(base_url=config.billing_service_url, timeout_seconds=config.billing_timeout_seconds)
        )
        logger.info(f"Using billing service at {config.billing_service_url}")
    else:
        billing_client = InMemoryBillingClient()
        logger.warning("BILLING_SERVICE_URL not set, billing accounts are kept in memory")

    if config.event_bus_url:
        publisher = RedisEventPublisher.from_url(
            config.event_bus_url,
            channel=config.patient_events_channel,
            timeout_seconds=config.event_publish_timeout_seconds,
        )
        logger.info(f"Publishing patient events on channel '{config.patient_events_channel}'")
    else:
        publisher = InMemoryEventPublisher()
        logger.warning("EVENT_BUS_URL not set, patient events are kept in memory")

    return PatientService(store=store, billing_client=billing_client, publisher=publisher)


async def close_patient_service(service: PatientService) -> None:
    """Finish in-flight publishes, then release collaborator connections."""
    await service.drain_publishes()
    for collaborator in (service.store, service.billing_client, service.publisher):
        aclose = getattr(collaborator, "aclose", None)
        if aclose is not None:
            await aclose()


def get_patient_service(request: Request) -> PatientService:
    """FastAPI dependency returning the service wired at startup."""
    return request.app.state.patient_service
