"""Billing provisioning client interface and implementations."""

from dataclasses import dataclass
from typing import Protocol

import httpx
from cuid2 import cuid_wrapper

from app.errors import BillingUnavailableError
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


@dataclass
class BillingAccount:
    """Acknowledgement returned by the billing service."""

    account_id: str
    status: str


class BillingClient(Protocol):
    """Interface for provisioning billing accounts."""

    async def create_billing_account(self, patient_id: str, name: str, email: str) -> BillingAccount:
        """Ask the billing system to create an account for a patient.

        Args:
            patient_id: The patient's unique identifier
            name: Patient name
            email: Patient email

        Returns:
            Acknowledgement from the billing system

        Raises:
            BillingUnavailableError: If the call failed for any reason
        """
        ...


@dataclass
class BillingClientConfig:
    """Configuration for the HTTP billing client."""

    base_url: str
    timeout_seconds: float = 5.0
    accounts_path: str = "/billing-accounts"


class HttpBillingClient:
    """Billing client that calls the billing service over HTTP.

    A single attempt per call; timeouts live on the underlying httpx client.
    """

    def __init__(self, config: BillingClientConfig, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize the HTTP client.

        Args:
            config: Client configuration
            transport: Optional transport override (used by tests)
        """
        self.config = config
        self.client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    async def create_billing_account(self, patient_id: str, name: str, email: str) -> BillingAccount:
        payload = {"patientId": patient_id, "name": name, "email": email}
        logger.debug(f"Requesting billing account for patient {patient_id}")

        try:
            response = await self.client.post(self.config.accounts_path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BillingUnavailableError(
                f"Billing service returned {e.response.status_code} for patient {patient_id}"
            ) from e
        except httpx.HTTPError as e:
            raise BillingUnavailableError(f"Billing service unreachable for patient {patient_id}: {e}") from e

        account = self._parse_account(response)
        logger.info(f"Billing account {account.account_id} ({account.status}) provisioned for patient {patient_id}")
        return account

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    @staticmethod
    def _parse_account(response: httpx.Response) -> BillingAccount:
        """Read the acknowledgement fields when the body carries them.

        Any 2xx counts as success; an empty or non-object body yields an empty account.
        """
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return BillingAccount(account_id="", status="")
        return BillingAccount(account_id=str(data.get("accountId", "")), status=str(data.get("status", "")))


class InMemoryBillingClient:
    """In-memory billing client for local runs and tests.

    Set ``fail_with`` to an exception to simulate a billing outage.
    """

    def __init__(self):
        self.accounts: dict[str, BillingAccount] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.fail_with: Exception | None = None

    async def create_billing_account(self, patient_id: str, name: str, email: str) -> BillingAccount:
        self.calls.append((patient_id, name, email))
        if self.fail_with is not None:
            raise self.fail_with

        account = BillingAccount(account_id=cuid(), status="ACTIVE")
        self.accounts[patient_id] = account
        return account
