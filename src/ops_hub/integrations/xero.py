"""Xero: accounts-receivable invoices."""

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
from ops_hub.models import Integration, Invoice, InvoiceStatus

TOKEN_URL = "https://identity.xero.com/connect/token"
API_BASE = "https://api.xero.com/api.xro/2.0"

# Drafts, submitted, voided and deleted invoices are not imported.
STATUS_MAP = {
    "AUTHORISED": InvoiceStatus.DUE,
    "PAID": InvoiceStatus.PAID,
}


class XeroSync(PlatformSync):
    platform = Platform.XERO
    label = "Xero"
    required_fields = ("clientId", "clientSecret", "tenantId")

    async def _sync(self, integration: Integration, credentials: dict[str, Any]) -> SyncResult:
        refresh_token = credentials.get("refreshToken")
        if not refresh_token:
            raise ReauthorizationRequired(
                "Xero requires OAuth2 authorization with a refresh token. "
                "Complete OAuth setup in Workflows.",
                platform=self.platform,
            )

        access_token = await self._exchange_token(
            TOKEN_URL,
            credentials["clientId"],
            credentials["clientSecret"],
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )

        data = await self._request(
            "GET",
            f"{API_BASE}/Invoices",
            params={"where": 'Type=="ACCREC"', "order": "UpdatedDateUTC DESC", "page": 1},
            headers={
                "Authorization": f"Bearer {access_token}",
                "xero-tenant-id": credentials["tenantId"],
                "Accept": "application/json",
            },
        )
        remote_invoices = data.get("Invoices", [])[:MAX_RECORDS]

        existing = await self._storage.get_invoices(integration.user_id)
        imported = 0

        for xero_invoice in remote_invoices:
            status = STATUS_MAP.get(xero_invoice.get("Status", ""))
            if status is None:
                continue

            token = marker("XeroInvoice", xero_invoice["InvoiceID"])
            if self._already_imported(existing, token, source=self.platform.value):
                continue

            number = xero_invoice.get("InvoiceNumber") or xero_invoice["InvoiceID"]
            invoice = await self._storage.create_invoice(
                Invoice(
                    user_id=integration.user_id,
                    amount=to_cents(xero_invoice.get("Total")),
                    due_date=parse_date(xero_invoice.get("DueDateString")) or datetime.now(UTC),
                    status=status,
                    client=(xero_invoice.get("Contact") or {}).get("Name") or "Unknown Client",
                    description=f"Xero Invoice {number} ({token})",
                    source=self.platform.value,
                )
            )
            existing.append(invoice)
            imported += 1

        return SyncResult(
            success=True,
            counts={"invoices": len(remote_invoices), "imported": imported},
        )
