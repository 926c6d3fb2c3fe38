"""Shared plumbing for per-platform sync implementations.

Every platform sync follows the same shape:

1. Decrypt the integration's credentials and check the required fields.
2. Obtain an access token (refresh-token exchange, client credentials, or a
   static API key).
3. Fetch one bounded page of remote records.
4. Create a local record for each remote record not already imported.
   Imported records carry a marker token (``"<Label>:<remote id>"``) in
   their description; that marker is the idempotency key. Rows written
   before markers existed are recognised by their bare remote reference.
5. Stamp ``last_synced`` on the integration.

Any auth or network failure raises and aborts the sync for that tenant.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Protocol

import httpx
import structlog

from ops_hub.models import Integration
from ops_hub.storage import Storage
from ops_hub.vault import CredentialVault

logger = structlog.get_logger(__name__)

MAX_RECORDS = 100


class Platform(str, Enum):
    """Third-party platforms with a sync implementation."""

    QUICKBOOKS = "quickbooks"
    STRIPE = "stripe"
    PAYPAL = "paypal"
    ASANA = "asana"
    MONDAY = "monday"
    XERO = "xero"


class IntegrationError(Exception):
    """Base exception for integration sync errors."""

    def __init__(
        self,
        message: str,
        platform: Platform | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.platform = platform
        self.status_code = status_code


class MissingCredentialsError(IntegrationError):
    """Credentials are absent, undecryptable or incomplete."""

    pass


class ReauthorizationRequired(IntegrationError):
    """The platform refused the token exchange; the tenant must reconnect."""

    pass


class PlatformAPIError(IntegrationError):
    """A remote API call failed."""

    pass


@dataclass
class SyncResult:
    success: bool
    counts: dict[str, int] = field(default_factory=dict)
    message: str | None = None


class _Described(Protocol):
    description: str | None


def marker(label: str, remote_id: Any) -> str:
    """Build the marker token embedded in an imported record's description."""
    return f"{label}:{remote_id}"


def has_marker(text: str | None, token: str) -> bool:
    """True when ``token`` appears in ``text`` as a whole token.

    ``Asana:12`` does not match inside ``Asana:123``.
    """
    if not text:
        return False
    return re.search(rf"(?<![\w-]){re.escape(token)}(?![\w-])", text) is not None


def has_label(text: str | None, label: str) -> bool:
    """True when ``text`` carries any marker with ``label``."""
    if not text:
        return False
    return re.search(rf"(?<![\w-]){re.escape(label)}:\S", text) is not None


def to_cents(value: Any) -> int:
    """Convert a decimal currency amount (number or string) to integer cents."""
    amount = Decimal(str(value or 0)) * 100
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_date(value: str | None) -> datetime | None:
    """Parse an ISO date or datetime string into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(value[:10]), datetime.min.time())
        except ValueError:
            return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class PlatformSync(ABC):
    """Base class for one platform's sync.

    Subclasses set ``platform``, ``label`` and ``required_fields`` and
    implement ``_sync``.
    """

    platform: Platform
    label: str
    required_fields: tuple[str, ...] = ()

    def __init__(
        self,
        storage: Storage,
        vault: CredentialVault,
        client: httpx.AsyncClient,
    ):
        self._storage = storage
        self._vault = vault
        self._client = client
        self._logger = logger.bind(platform=self.platform.value)

    async def sync(self, integration: Integration) -> SyncResult:
        """Run one sync pass for ``integration``.

        Raises:
            IntegrationError: Missing credentials, failed auth or a failed
                remote call.
        """
        credentials = self._load_credentials(integration)
        result = await self._sync(integration, credentials)
        await self._mark_synced(integration)
        return result

    @abstractmethod
    async def _sync(self, integration: Integration, credentials: dict[str, Any]) -> SyncResult:
        """Fetch and import remote records."""
        pass

    # === Credentials & auth ===

    def _load_credentials(self, integration: Integration) -> dict[str, Any]:
        if not integration.credentials:
            raise MissingCredentialsError(
                f"No credentials found for {self.label} integration", platform=self.platform
            )

        credentials = self._vault.decrypt_credentials(integration.credentials)
        missing = [name for name in self.required_fields if not credentials.get(name)]
        if missing:
            raise MissingCredentialsError(
                f"Missing required {self.label} credentials: {', '.join(missing)}",
                platform=self.platform,
            )
        return credentials

    async def _exchange_token(
        self,
        url: str,
        client_id: str,
        client_secret: str,
        data: dict[str, str],
    ) -> str:
        """Exchange client credentials (Basic auth) for a bearer token."""
        try:
            response = await self._client.post(
                url,
                data=data,
                auth=(client_id, client_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as e:
            raise PlatformAPIError(
                f"{self.label} auth request failed: {e}", platform=self.platform
            ) from e

        if response.status_code >= 400:
            raise ReauthorizationRequired(
                f"{self.label} auth failed: {response.status_code}. "
                "Credentials may be expired - re-authorize in Workflows.",
                platform=self.platform,
                status_code=response.status_code,
            )

        body = self._decode(response)
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise ReauthorizationRequired(
                f"{self.label} auth returned no access token - re-authorize in Workflows.",
                platform=self.platform,
            )
        return str(token)

    # === Requests ===

    async def _request(
        self,
        method: str,
        url: str,
        optional: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Make a remote API call and return the decoded JSON body.

        With ``optional=True`` an error status is logged and ``None`` is
        returned instead of raising. Network errors always raise.
        """
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise PlatformAPIError(
                f"{self.label} request failed: {e}", platform=self.platform
            ) from e

        if response.status_code >= 400:
            if optional:
                self._logger.warning(
                    "optional_request_failed", url=url, status_code=response.status_code
                )
                return None
            raise PlatformAPIError(
                f"{self.label} API failed: {response.status_code}",
                platform=self.platform,
                status_code=response.status_code,
            )

        return self._decode(response) if response.content else {}

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise PlatformAPIError(
                f"{self.label} returned a non-JSON response ({response.status_code})",
                platform=self.platform,
                status_code=response.status_code,
            ) from e

    # === Persistence ===

    @staticmethod
    def _already_imported(
        records: Iterable[_Described],
        token: str,
        source: str | None = None,
        legacy: str | None = None,
    ) -> bool:
        """Linear scan for an existing record carrying ``token``.

        Rows imported before marker tokens existed only carry the bare remote
        reference (``"Stripe payment ch_1 - ..."``). ``legacy`` is matched
        against those rows only; a row that already has a marker with the
        same label is judged by its marker alone.
        """
        label = token.partition(":")[0]
        for record in records:
            if source is not None and getattr(record, "source", None) != source:
                continue
            if has_marker(record.description, token):
                return True
            if (
                legacy
                and not has_label(record.description, label)
                and has_marker(record.description, legacy)
            ):
                return True
        return False

    async def _mark_synced(self, integration: Integration) -> None:
        await self._storage.update_integration(integration.id, last_synced=datetime.now(UTC))
