"""Abstract persistence interface.

The relational store behind the dashboard owns these records; the automation
core only needs CRUD by id and filtering by tenant.
"""

from abc import ABC, abstractmethod
from typing import Any

from ops_hub.models import Integration, Invoice, Task, Transaction, User


class Storage(ABC):
    """Key-by-id persistence used by sweeps, syncs and the notifier.

    Every call is a suspension point. Writes are single-row; there are no
    multi-row transactions.
    """

    # === Users ===

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def get_all_users(self) -> list[User]: ...

    @abstractmethod
    async def create_user(self, user: User) -> User: ...

    @abstractmethod
    async def update_user(self, user_id: str, **changes: Any) -> User | None: ...

    # === Ledger ===

    @abstractmethod
    async def get_transactions(self, user_id: str) -> list[Transaction]: ...

    @abstractmethod
    async def create_transaction(self, transaction: Transaction) -> Transaction: ...

    @abstractmethod
    async def get_invoices(self, user_id: str) -> list[Invoice]: ...

    @abstractmethod
    async def create_invoice(self, invoice: Invoice) -> Invoice: ...

    # === Integrations ===

    @abstractmethod
    async def get_integrations(self, user_id: str) -> list[Integration]: ...

    @abstractmethod
    async def get_integration(self, integration_id: str) -> Integration | None: ...

    @abstractmethod
    async def create_integration(self, integration: Integration) -> Integration: ...

    @abstractmethod
    async def update_integration(
        self, integration_id: str, **changes: Any
    ) -> Integration | None: ...

    # === Tasks ===

    @abstractmethod
    async def get_tasks(self, user_id: str) -> list[Task]: ...

    @abstractmethod
    async def create_task(self, task: Task) -> Task: ...
