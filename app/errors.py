"""Error taxonomy shared by the patient service and its collaborators."""


class PatientServiceError(Exception):
    """Base class for patient service errors.

    ``status_code`` is the HTTP status the API layer answers with.
    """

    error = "patient_service_error"
    status_code = 500


class PatientNotFoundError(PatientServiceError):
    """No patient record has the requested id."""

    error = "not_found"
    status_code = 404

    def __init__(self, patient_id: str):
        super().__init__(f"Patient not found with ID: {patient_id}")
        self.patient_id = patient_id


class EmailAlreadyExistsError(PatientServiceError):
    """Another patient record already uses this email."""

    error = "duplicate_email"
    status_code = 409

    def __init__(self, email: str):
        super().__init__(f"A patient with this email already exists: {email}")
        self.email = email


class PatientValidationError(PatientServiceError):
    """Malformed patient input, e.g. an unparsable date of birth."""

    error = "validation_error"
    status_code = 400


class BillingUnavailableError(PatientServiceError):
    """The billing provisioning call failed.

    The remote side may or may not have applied the request.
    """

    error = "upstream_unavailable"
    status_code = 502


class EventPublishError(PatientServiceError):
    """Sending an event to the message bus failed. Never surfaced to callers."""

    error = "publish_failure"
