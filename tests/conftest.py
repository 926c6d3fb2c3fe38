"""Pytest configuration and fixtures."""

import asyncio
import os
from datetime import UTC, datetime, timedelta

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")
os.environ.setdefault("APP_NAME", "Ops Hub")
os.environ.setdefault("LOG_FORMAT", "console")

from ops_hub.config.settings import Settings, get_settings  # noqa: E402
from ops_hub.models import (  # noqa: E402
    Invoice,
    InvoiceStatus,
    Transaction,
    TransactionType,
    User,
    UserRole,
)
from ops_hub.notifications import Notifier, RecordingTransport  # noqa: E402
from ops_hub.storage import MemoryStorage  # noqa: E402
from ops_hub.vault import CredentialVault  # noqa: E402


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """A clock and sleep pair that only moves when told to.

    ``sleep`` parks the caller on a future that ``advance`` resolves once
    simulated time reaches its deadline.
    """

    def __init__(self, start: datetime):
        self.now = start
        self._sleepers: list[tuple[datetime, asyncio.Future[None]]] = []

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, seconds: float) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now + timedelta(seconds=seconds), future))
        await future

    async def advance(self, seconds: float) -> None:
        target = self.now + timedelta(seconds=seconds)
        await settle()
        while True:
            self._sleepers = [s for s in self._sleepers if not s[1].done()]
            due = sorted((s for s in self._sleepers if s[0] <= target), key=lambda s: s[0])
            if not due:
                break
            deadline, future = due[0]
            self._sleepers.remove((deadline, future))
            self.now = deadline
            future.set_result(None)
            await settle()
        self.now = target

    @property
    def sleeping(self) -> int:
        return sum(1 for _, future in self._sleepers if not future.done())


@pytest.fixture
def settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def vault() -> CredentialVault:
    return CredentialVault("test-encryption-key")


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notifier(storage, transport, settings) -> Notifier:
    return Notifier(storage, transport, settings)


@pytest.fixture
def clock() -> ManualClock:
    # Tuesday
    return ManualClock(datetime(2024, 1, 2, 10, 0, tzinfo=UTC))


async def add_tenant(
    storage: MemoryStorage,
    username: str = "acme",
    email: str | None = "owner@acme.test",
    **kwargs,
) -> User:
    """Create a client user."""
    kwargs.setdefault("business_name", f"{username.title()} LLC")
    return await storage.create_user(
        User(username=username, email=email, role=UserRole.CLIENT, **kwargs)
    )


async def add_transaction(
    storage: MemoryStorage,
    user: User,
    type: TransactionType,
    amount: int,
    date: datetime | None = None,
) -> Transaction:
    return await storage.create_transaction(
        Transaction(
            user_id=user.id,
            type=type,
            amount=amount,
            date=date or datetime.now(UTC),
        )
    )


async def add_invoice(
    storage: MemoryStorage,
    user: User,
    amount: int,
    status: InvoiceStatus = InvoiceStatus.DUE,
    client: str = "Globex",
    due_date: datetime | None = None,
) -> Invoice:
    return await storage.create_invoice(
        Invoice(
            user_id=user.id,
            amount=amount,
            status=status,
            client=client,
            due_date=due_date or datetime(2024, 1, 15, tzinfo=UTC),
        )
    )
