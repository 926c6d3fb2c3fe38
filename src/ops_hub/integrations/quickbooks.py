"""QuickBooks Online: invoices and received payments."""

from datetime import UTC, datetime
from typing import Any

from ops_hub.integrations.base import (
    MAX_RECORDS,
    Platform,
    PlatformSync,
    ReauthorizationRequired,
    SyncResult,
    marker,
    parse_date,
    to_cents,
)
from ops_hub.models import Integration, Invoice, InvoiceStatus, Transaction, TransactionType

TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
API_BASE = "https://quickbooks.api.intuit.com/v3/company"


class QuickBooksSync(PlatformSync):
    platform = Platform.QUICKBOOKS
    label = "QuickBooks"
    required_fields = ("clientId", "clientSecret", "realmId")

    async def _sync(self, integration: Integration, credentials: dict[str, Any]) -> SyncResult:
        # QuickBooks only supports the authorization-code flow, so a refresh
        # token from the OAuth setup is mandatory.
        refresh_token = credentials.get("refreshToken")
        if not refresh_token:
            raise ReauthorizationRequired(
                "QuickBooks requires OAuth2 authorization with a refresh token. "
                "Complete OAuth setup in Workflows.",
                platform=self.platform,
            )

        access_token = await self._exchange_token(
            TOKEN_URL,
            credentials["clientId"],
            credentials["clientSecret"],
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
        query_url = f"{API_BASE}/{credentials['realmId']}/query"

        invoices_data = await self._request(
            "GET",
            query_url,
            params={"query": self._query("Invoice")},
            headers=headers,
        )
        remote_invoices = invoices_data.get("QueryResponse", {}).get("Invoice", [])[:MAX_RECORDS]
        imported_invoices = await self._import_invoices(integration, remote_invoices)

        # Payments are best-effort: a failed query does not fail the sync.
        payments_data = await self._request(
            "GET",
            query_url,
            optional=True,
            params={"query": self._query("Payment")},
            headers=headers,
        )
        remote_payments: list[dict[str, Any]] = []
        if payments_data:
            remote_payments = payments_data.get("QueryResponse", {}).get("Payment", [])[:MAX_RECORDS]
        imported_payments = await self._import_payments(integration, remote_payments)

        return SyncResult(
            success=True,
            counts={
                "invoices": len(remote_invoices),
                "payments": len(remote_payments),
                "imported": imported_invoices + imported_payments,
            },
        )

    @staticmethod
    def _query(entity: str) -> str:
        return (
            f"SELECT * FROM {entity} ORDERBY MetaData.LastUpdatedTime DESC "
            f"MAXRESULTS {MAX_RECORDS}"
        )

    async def _import_invoices(
        self, integration: Integration, remote_invoices: list[dict[str, Any]]
    ) -> int:
        existing = await self._storage.get_invoices(integration.user_id)
        created = 0

        for qb_invoice in remote_invoices:
            token = marker("QBInvoice", qb_invoice["Id"])
            doc_number = qb_invoice.get("DocNumber")
            legacy = f"#{doc_number}" if doc_number else None
            if self._already_imported(
                existing, token, source=self.platform.value, legacy=legacy
            ):
                continue

            balance = to_cents(qb_invoice.get("Balance"))
            invoice = await self._storage.create_invoice(
                Invoice(
                    user_id=integration.user_id,
                    amount=to_cents(qb_invoice.get("TotalAmt")),
                    due_date=parse_date(qb_invoice.get("DueDate")) or datetime.now(UTC),
                    status=InvoiceStatus.DUE if balance > 0 else InvoiceStatus.PAID,
                    client=(qb_invoice.get("CustomerRef") or {}).get("name") or "Unknown Client",
                    description=(
                        f"QuickBooks Invoice #{doc_number or qb_invoice['Id']}"
                        f" ({token})"
                    ),
                    source=self.platform.value,
                )
            )
            existing.append(invoice)
            created += 1

        return created

    async def _import_payments(
        self, integration: Integration, remote_payments: list[dict[str, Any]]
    ) -> int:
        existing = await self._storage.get_transactions(integration.user_id)
        created = 0

        for qb_payment in remote_payments:
            token = marker("QBPayment", qb_payment["Id"])
            reference = qb_payment.get("PaymentRefNum") or qb_payment["Id"]
            if self._already_imported(
                existing, token, source=self.platform.value, legacy=f"#{reference}"
            ):
                continue

            transaction = await self._storage.create_transaction(
                Transaction(
                    user_id=integration.user_id,
                    type=TransactionType.PAYMENT,
                    amount=to_cents(qb_payment.get("TotalAmt")),
                    description=f"QuickBooks Payment #{reference} ({token})",
                    category="payment",
                    source=self.platform.value,
                    date=parse_date(qb_payment.get("TxnDate")) or datetime.now(UTC),
                )
            )
            existing.append(transaction)
            created += 1

        return created
