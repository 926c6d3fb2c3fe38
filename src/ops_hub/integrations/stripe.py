"""Stripe: succeeded charges become payments."""

from datetime import UTC, datetime
from typing import Any

from ops_hub.integrations.base import MAX_RECORDS, Platform, PlatformSync, SyncResult, marker
from ops_hub.models import Integration, Transaction, TransactionType

API_BASE = "https://api.stripe.com/v1"


class StripeSync(PlatformSync):
    platform = Platform.STRIPE
    label = "Stripe"
    required_fields = ("apiKey",)

    async def _sync(self, integration: Integration, credentials: dict[str, Any]) -> SyncResult:
        headers = {"Authorization": f"Bearer {credentials['apiKey']}"}

        charges_data = await self._request(
            "GET", f"{API_BASE}/charges", params={"limit": MAX_RECORDS}, headers=headers
        )
        charges = charges_data.get("data", [])

        existing = await self._storage.get_transactions(integration.user_id)
        imported = 0

        for charge in charges:
            if charge.get("status") != "succeeded":
                continue

            token = marker("Stripe", charge["id"])
            if self._already_imported(
                existing, token, source=self.platform.value, legacy=charge["id"]
            ):
                continue

            created_at = charge.get("created")
            transaction = await self._storage.create_transaction(
                Transaction(
                    user_id=integration.user_id,
                    type=TransactionType.PAYMENT,
                    amount=int(charge.get("amount") or 0),  # already in cents
                    description=(
                        f"Stripe payment - {charge.get('description') or 'Payment received'}"
                        f" ({token})"
                    ),
                    category="payment",
                    source=self.platform.value,
                    date=(
                        datetime.fromtimestamp(created_at, tz=UTC)
                        if created_at
                        else datetime.now(UTC)
                    ),
                )
            )
            existing.append(transaction)
            imported += 1

        customers_data = await self._request(
            "GET",
            f"{API_BASE}/customers",
            optional=True,
            params={"limit": MAX_RECORDS},
            headers=headers,
        )
        customer_count = len(customers_data.get("data", [])) if customers_data else 0

        return SyncResult(
            success=True,
            counts={"charges": len(charges), "imported": imported, "customers": customer_count},
        )
