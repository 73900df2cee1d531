"""Tests for data models and configuration."""

import json
import logging
from datetime import date
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.config import ServiceConfig
from app.models.events import PatientCreatedEvent
from app.models.patient import Patient, PatientRequest, PatientResponse
from app.utils.logging import LogConfig, get_logger, setup_logging


class TestPatientRequest:
    """Tests for the patient request body."""

    def test_request_from_json(self):
        """Test request parsing from camelCase JSON."""
        json_data = '{"name": "Alice", "address": "1 Main St", "email": "alice@x.com", "dateOfBirth": "1990-01-01"}'
        request = PatientRequest.model_validate(json.loads(json_data))

        assert request.name == "Alice"
        assert request.address == "1 Main St"
        assert request.email == "alice@x.com"
        assert request.date_of_birth == "1990-01-01"

    def test_request_strips_whitespace(self):
        """Test that surrounding whitespace is removed."""
        request = PatientRequest(name="  Alice ", address=" 1 Main St", email=" alice@x.com ", dateOfBirth="1990-01-01")
        assert request.name == "Alice"
        assert request.address == "1 Main St"
        assert request.email == "alice@x.com"

    def test_request_requires_every_field(self):
        """Test that a partial body is rejected; updates are whole-record."""
        with pytest.raises(ValidationError):
            PatientRequest.model_validate({"name": "Alice"})

    def test_request_rejects_invalid_email(self):
        """Test email validation."""
        for email in ["alice", "alice@", "@x.com", "alice@x", "a b@x.com"]:
            with pytest.raises(ValidationError):
                PatientRequest(name="Alice", address="1 Main St", email=email, dateOfBirth="1990-01-01")

    def test_request_rejects_blank_name(self):
        """Test that whitespace-only names are rejected."""
        with pytest.raises(ValidationError):
            PatientRequest(name="   ", address="1 Main St", email="alice@x.com", dateOfBirth="1990-01-01")

    def test_request_rejects_long_name(self):
        """Test the name length limit."""
        with pytest.raises(ValidationError):
            PatientRequest(name="A" * 101, address="1 Main St", email="alice@x.com", dateOfBirth="1990-01-01")


class TestPatientResponse:
    """Tests for the patient representation."""

    def test_response_serializes_with_camel_case_date(self):
        """Test that the representation uses dateOfBirth as an ISO string."""
        patient = Patient(id="p1", name="Alice", address="1 Main St", email="alice@x.com", date_of_birth=date(1990, 1, 1))

        data = PatientResponse.from_patient(patient).model_dump(mode="json", by_alias=True)

        assert data == {
            "id": "p1",
            "name": "Alice",
            "address": "1 Main St",
            "email": "alice@x.com",
            "dateOfBirth": "1990-01-01",
        }

    def test_patient_is_immutable(self):
        """Test that patient records cannot be mutated in place."""
        patient = Patient(id="p1", name="Alice", address="1 Main St", email="alice@x.com", date_of_birth=date(1990, 1, 1))
        with pytest.raises(AttributeError):
            patient.name = "Bob"  # type: ignore[misc]


class TestPatientCreatedEvent:
    """Tests for the patient created event."""

    def test_event_snapshot(self):
        """Test that the event snapshots id, name and email."""
        patient = Patient(id="p1", name="Alice", address="1 Main St", email="alice@x.com", date_of_birth=date(1990, 1, 1))
        event = PatientCreatedEvent.from_patient(patient)

        assert event.event_type == "PATIENT_CREATED"
        assert event.patient_id == "p1"
        assert event.name == "Alice"
        assert event.email == "alice@x.com"
        assert event.created_time.tzinfo is not None
        assert "address" not in event.model_dump()


class TestServiceConfig:
    """Tests for environment configuration."""

    def test_defaults(self):
        """Test configuration defaults with an empty environment."""
        with patch.dict("os.environ", {}, clear=True):
            config = ServiceConfig.from_env()

        assert config.database_url == "sqlite+aiosqlite:///./patients.db"
        assert config.billing_service_url is None
        assert config.event_bus_url is None
        assert config.patient_events_channel == "patient"
        assert config.billing_timeout_seconds == 5.0
        assert config.uses_memory_store is False

    def test_from_env(self):
        """Test that environment variables override defaults."""
        env = {
            "DATABASE_URL": "memory",
            "BILLING_SERVICE_URL": "http://billing:4001",
            "BILLING_TIMEOUT_SECONDS": "2.5",
            "EVENT_BUS_URL": "redis://redis:6379/0",
            "PATIENT_EVENTS_CHANNEL": "patients.created",
            "EVENT_PUBLISH_TIMEOUT_SECONDS": "0.5",
            "LOG_LEVEL": "DEBUG",
        }
        with patch.dict("os.environ", env, clear=True):
            config = ServiceConfig.from_env()

        assert config.uses_memory_store is True
        assert config.billing_service_url == "http://billing:4001"
        assert config.billing_timeout_seconds == 2.5
        assert config.event_bus_url == "redis://redis:6379/0"
        assert config.patient_events_channel == "patients.created"
        assert config.event_publish_timeout_seconds == 0.5
        assert config.log_level == "DEBUG"

    def test_invalid_number_fails_fast(self):
        """Test that a malformed timeout raises ValueError."""
        with patch.dict("os.environ", {"BILLING_TIMEOUT_SECONDS": "soon"}, clear=True):
            with pytest.raises(ValueError, match="BILLING_TIMEOUT_SECONDS"):
                ServiceConfig.from_env()


class TestLogging:
    """Tests for logging setup."""

    def test_lines_carry_service_name(self, capsys):
        """Test that every log line names the service and the module logger."""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(LogConfig(level="DEBUG", service_name="patient-service"))
            with patch.dict("os.environ", {"LOG_LEVEL": "INFO"}):
                get_logger("app.services.patients").info("Patient p1 persisted")
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        line = capsys.readouterr().out.strip()
        assert line.endswith("patient-service INFO [app.services.patients] Patient p1 persisted")

    def test_logger_level_follows_environment(self):
        """Test that LOG_LEVEL sets the module logger threshold."""
        with patch.dict("os.environ", {"LOG_LEVEL": "warning"}):
            assert get_logger("app.tests.level").level == logging.WARNING
