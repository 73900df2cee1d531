"""Event publisher interface and implementations."""

import asyncio
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.errors import EventPublishError
from app.models.events import PatientCreatedEvent
from app.utils.logging import get_logger

logger = get_logger(__name__)


class EventPublisher(Protocol):
    """Interface for publishing patient events to a message bus.

    Delivery is best-effort and at-most-once.
    """

    async def publish(self, event: PatientCreatedEvent) -> None:
        """Send an event.

        Raises:
            EventPublishError: If the event could not be handed to the bus
        """
        ...


class RedisEventPublisher:
    """Publishes events as JSON on a Redis pub/sub channel."""

    def __init__(self, client: aioredis.Redis, channel: str = "patient", timeout_seconds: float = 2.0):
        """Initialize publisher.

        Args:
            client: Redis client
            channel: Channel the events are published on
            timeout_seconds: Upper bound for a single publish
        """
        self.client = client
        self.channel = channel
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_url(cls, url: str, channel: str = "patient", timeout_seconds: float = 2.0) -> "RedisEventPublisher":
        """Create a publisher connected to ``url``."""
        client = aioredis.Redis.from_url(
            url,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        return cls(client, channel=channel, timeout_seconds=timeout_seconds)

    async def publish(self, event: PatientCreatedEvent) -> None:
        try:
            receivers = await asyncio.wait_for(
                self.client.publish(self.channel, event.model_dump_json()),
                timeout=self.timeout_seconds,
            )
        except (RedisError, TimeoutError, OSError) as e:
            raise EventPublishError(f"Failed to publish {event.event_type} for patient {event.patient_id}: {e}") from e

        logger.info(f"Published {event.event_type} for patient {event.patient_id} to {receivers} subscriber(s)")

    async def aclose(self) -> None:
        """Close the Redis connection pool."""
        await self.client.aclose()


class InMemoryEventPublisher:
    """Records published events in memory.

    Set ``fail_with`` to an exception to simulate a broker outage.
    """

    def __init__(self):
        self.events: list[PatientCreatedEvent] = []
        self.fail_with: Exception | None = None

    async def publish(self, event: PatientCreatedEvent) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.events.append(event)
