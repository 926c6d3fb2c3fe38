"""PayPal: completed transactions from the last 30 days."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from ops_hub.integrations.base import (
    MAX_RECORDS,
    Platform,
    PlatformSync,
    SyncResult,
    marker,
    parse_date,
    to_cents,
)
from ops_hub.models import Integration, Transaction, TransactionType

API_BASE = "https://api-m.paypal.com"
LOOKBACK = timedelta(days=30)
STATUS_SUCCESS = "S"


class PayPalSync(PlatformSync):
    platform = Platform.PAYPAL
    label = "PayPal"
    required_fields = ("clientId", "clientSecret")

    async def _sync(self, integration: Integration, credentials: dict[str, Any]) -> SyncResult:
        access_token = await self._exchange_token(
            f"{API_BASE}/v1/oauth2/token",
            credentials["clientId"],
            credentials["clientSecret"],
            data={"grant_type": "client_credentials"},
        )

        end = datetime.now(UTC)
        start = end - LOOKBACK
        data = await self._request(
            "GET",
            f"{API_BASE}/v1/reporting/transactions",
            params={
                "start_date": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "end_date": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "fields": "all",
                "page_size": MAX_RECORDS,
            },
            headers={"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"},
        )
        details = data.get("transaction_details", [])[:MAX_RECORDS]

        existing = await self._storage.get_transactions(integration.user_id)
        imported = 0

        for detail in details:
            info = detail.get("transaction_info") or {}
            if info.get("transaction_status") != STATUS_SUCCESS:
                continue

            token = marker("PayPal", info["transaction_id"])
            if self._already_imported(
                existing, token, source=self.platform.value, legacy=info["transaction_id"]
            ):
                continue

            value = Decimal(str((info.get("transaction_amount") or {}).get("value") or 0))
            payer_name = (detail.get("payer_info") or {}).get("payer_name") or {}
            payer = payer_name.get("alternate_full_name")
            transaction = await self._storage.create_transaction(
                Transaction(
                    user_id=integration.user_id,
                    type=TransactionType.EXPENSE if value < 0 else TransactionType.PAYMENT,
                    amount=abs(to_cents(value)),
                    description=f"PayPal {payer or 'Payment'} ({token})",
                    category="expense" if value < 0 else "payment",
                    source=self.platform.value,
                    date=parse_date(info.get("transaction_initiation_date")) or end,
                )
            )
            existing.append(transaction)
            imported += 1

        return SyncResult(
            success=True,
            counts={"transactions": len(details), "imported": imported},
        )
