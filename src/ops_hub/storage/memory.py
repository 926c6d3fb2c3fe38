"""In-memory storage, used for tests, demos and dry runs."""

import copy
import json
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from ops_hub.models import (
    Integration,
    Invoice,
    InvoiceStatus,
    Task,
    Transaction,
    TransactionType,
    User,
    UserRole,
)
from ops_hub.storage.base import Storage

logger = structlog.get_logger(__name__)


def _parse_datetime(value: str | None) -> datetime | None:
    """Naive timestamps are taken as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class MemoryStorage(Storage):
    """Dict-backed storage. Records are copied in and out.

    Users are deep-copied so their preference dicts are never shared.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._transactions: dict[str, Transaction] = {}
        self._invoices: dict[str, Invoice] = {}
        self._integrations: dict[str, Integration] = {}
        self._tasks: dict[str, Task] = {}

    @classmethod
    def from_seed(cls, path: str | Path) -> "MemoryStorage":
        """Load users, ledger rows, integrations and tasks from a JSON file.

        Keys mirror the record field names; datetimes are ISO 8601 strings.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        storage = cls()

        for row in data.get("users", []):
            row = dict(row)
            row["role"] = UserRole(row.get("role", UserRole.CLIENT.value))
            user = User(**row)
            storage._users[user.id] = user

        for row in data.get("transactions", []):
            row = dict(row)
            row["type"] = TransactionType(row["type"])
            if "date" in row:
                row["date"] = _parse_datetime(row["date"])
            tx = Transaction(**row)
            storage._transactions[tx.id] = tx

        for row in data.get("invoices", []):
            row = dict(row)
            row["due_date"] = _parse_datetime(row["due_date"])
            row["status"] = InvoiceStatus(row.get("status", InvoiceStatus.DUE.value))
            invoice = Invoice(**row)
            storage._invoices[invoice.id] = invoice

        for row in data.get("integrations", []):
            row = dict(row)
            row["last_synced"] = _parse_datetime(row.get("last_synced"))
            integration = Integration(**row)
            storage._integrations[integration.id] = integration

        for row in data.get("tasks", []):
            row = dict(row)
            if "created_at" in row:
                row["created_at"] = _parse_datetime(row["created_at"])
            task = Task(**row)
            storage._tasks[task.id] = task

        logger.info(
            "seed_loaded",
            path=str(path),
            users=len(storage._users),
            transactions=len(storage._transactions),
            invoices=len(storage._invoices),
            integrations=len(storage._integrations),
        )
        return storage

    # === Users ===

    async def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def get_all_users(self) -> list[User]:
        return [copy.deepcopy(u) for u in self._users.values()]

    async def create_user(self, user: User) -> User:
        self._users[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    async def update_user(self, user_id: str, **changes: Any) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        updated = replace(user, **copy.deepcopy(changes))
        self._users[user_id] = updated
        return copy.deepcopy(updated)

    # === Ledger ===

    async def get_transactions(self, user_id: str) -> list[Transaction]:
        rows = [replace(t) for t in self._transactions.values() if t.user_id == user_id]
        return sorted(rows, key=lambda t: t.date, reverse=True)

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        self._transactions[transaction.id] = replace(transaction)
        return replace(transaction)

    async def get_invoices(self, user_id: str) -> list[Invoice]:
        rows = [replace(i) for i in self._invoices.values() if i.user_id == user_id]
        return sorted(rows, key=lambda i: i.due_date)

    async def create_invoice(self, invoice: Invoice) -> Invoice:
        self._invoices[invoice.id] = replace(invoice)
        return replace(invoice)

    # === Integrations ===

    async def get_integrations(self, user_id: str) -> list[Integration]:
        return [replace(i) for i in self._integrations.values() if i.user_id == user_id]

    async def get_integration(self, integration_id: str) -> Integration | None:
        integration = self._integrations.get(integration_id)
        return replace(integration) if integration else None

    async def create_integration(self, integration: Integration) -> Integration:
        self._integrations[integration.id] = replace(integration)
        return replace(integration)

    async def update_integration(
        self, integration_id: str, **changes: Any
    ) -> Integration | None:
        integration = self._integrations.get(integration_id)
        if integration is None:
            return None
        updated = replace(integration, **changes)
        self._integrations[integration_id] = updated
        return replace(updated)

    # === Tasks ===

    async def get_tasks(self, user_id: str) -> list[Task]:
        return [replace(t) for t in self._tasks.values() if t.user_id == user_id]

    async def create_task(self, task: Task) -> Task:
        self._tasks[task.id] = replace(task)
        return replace(task)
