"""Records shared between the automation core and the persistence layer.

Amounts are integer cents throughout.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4


def _new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class UserRole(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"


class NotificationCategory(str, Enum):
    """Email categories a tenant can opt out of."""

    WEEKLY_REPORTS = "weekly_reports"
    LOW_CASH_ALERTS = "low_cash_alerts"
    OVERDUE_INVOICES = "overdue_invoices"
    INTEGRATION_FAILURES = "integration_failures"


class TransactionType(str, Enum):
    PAYMENT = "payment"
    EXPENSE = "expense"


class InvoiceStatus(str, Enum):
    DUE = "due"
    PAID = "paid"
    OVERDUE = "overdue"


def default_email_preferences() -> dict[str, bool]:
    """All notification categories enabled."""
    return {category.value: True for category in NotificationCategory}


@dataclass
class User:
    """A dashboard account. Accounts with the client role are tenants."""

    username: str
    email: str | None = None
    role: UserRole = UserRole.CLIENT
    is_active: bool = True
    business_name: str | None = None
    email_preferences: dict[str, bool] | None = field(default_factory=default_email_preferences)
    id: str = field(default_factory=_new_id)

    @property
    def display_name(self) -> str:
        return self.business_name or self.username

    @property
    def is_active_client(self) -> bool:
        return self.role == UserRole.CLIENT and self.is_active

    def wants(self, category: NotificationCategory) -> bool:
        """Unset preferences count as enabled; only an explicit False opts out."""
        return (self.email_preferences or {}).get(category.value) is not False


@dataclass
class Transaction:
    user_id: str
    type: TransactionType
    amount: int
    description: str | None = None
    category: str | None = None
    source: str = "manual"
    date: datetime = field(default_factory=_now)
    id: str = field(default_factory=_new_id)


@dataclass
class Invoice:
    user_id: str
    amount: int
    due_date: datetime
    status: InvoiceStatus = InvoiceStatus.DUE
    client: str | None = None
    description: str | None = None
    source: str = "manual"
    id: str = field(default_factory=_new_id)


@dataclass
class Integration:
    """A tenant's connection to one third-party platform.

    ``credentials`` holds a vault envelope, never plaintext.
    """

    user_id: str
    platform: str
    is_connected: bool = True
    credentials: str | None = None
    last_synced: datetime | None = None
    id: str = field(default_factory=_new_id)


@dataclass
class Task:
    user_id: str
    title: str
    description: str | None = None
    type: str = "task"
    priority: str = "medium"
    status: str = "pending"
    created_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=_new_id)
