"""Outbound email transports."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)


class EmailDeliveryError(Exception):
    """The provider rejected or failed to accept a message."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


@dataclass(frozen=True)
class EmailMessage:
    sender: str
    to: str
    subject: str
    html: str
    text: str


class EmailTransport(ABC):
    """Sends one message. ``send`` may raise; callers decide what to do."""

    @abstractmethod
    async def send(self, message: EmailMessage) -> None: ...


class ResendTransport(EmailTransport):
    """Delivers mail through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.resend.com",
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, message: EmailMessage) -> None:
        if not self._api_key:
            raise EmailDeliveryError("RESEND_API_KEY is not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/emails",
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={
                    "from": message.sender,
                    "to": [message.to],
                    "subject": message.subject,
                    "html": message.html,
                    "text": message.text,
                },
            )
        except httpx.RequestError as e:
            raise EmailDeliveryError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            try:
                details = response.json() if response.content else {}
            except ValueError:
                details = {"raw": response.text[:500]}
            raise EmailDeliveryError(
                f"Email provider error: {response.status_code}",
                status_code=response.status_code,
                details=details,
            )

        logger.debug("email_accepted", to=message.to, subject=message.subject)


class RecordingTransport(EmailTransport):
    """Keeps messages in memory instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> None:
        self.sent.append(message)
        logger.info("email_recorded", to=message.to, subject=message.subject)
