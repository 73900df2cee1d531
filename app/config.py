"""Service configuration loaded from the environment."""

import os
from dataclasses import dataclass

MEMORY_DATABASE_URL = "memory"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class ServiceConfig:
    """Configuration for the patient service and its collaborators."""

    service_name: str = "patient-service"
    database_url: str = "sqlite+aiosqlite:///./patients.db"

    # Billing provisioning; unset URL selects the in-memory client
    billing_service_url: str | None = None
    billing_timeout_seconds: float = 5.0

    # Event bus; unset URL selects the in-memory publisher
    event_bus_url: str | None = None
    patient_events_channel: str = "patient"
    event_publish_timeout_seconds: float = 2.0

    log_level: str = "INFO"

    @property
    def uses_memory_store(self) -> bool:
        """Whether the in-memory patient store is selected."""
        return self.database_url == MEMORY_DATABASE_URL

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build configuration from environment variables.

        Raises:
            ValueError: If a numeric setting cannot be parsed
        """
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            billing_service_url=os.getenv("BILLING_SERVICE_URL") or None,
            billing_timeout_seconds=_env_float("BILLING_TIMEOUT_SECONDS", defaults.billing_timeout_seconds),
            event_bus_url=os.getenv("EVENT_BUS_URL") or None,
            patient_events_channel=os.getenv("PATIENT_EVENTS_CHANNEL", defaults.patient_events_channel),
            event_publish_timeout_seconds=_env_float(
                "EVENT_PUBLISH_TIMEOUT_SECONDS", defaults.event_publish_timeout_seconds
            ),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )
