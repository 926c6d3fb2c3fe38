"""Platform lookup for integration syncs."""

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from ops_hub.integrations.asana import AsanaSync
from ops_hub.integrations.base import Platform, PlatformSync, SyncResult
from ops_hub.integrations.monday import MondaySync
from ops_hub.integrations.paypal import PayPalSync
from ops_hub.integrations.quickbooks import QuickBooksSync
from ops_hub.integrations.stripe import StripeSync
from ops_hub.integrations.xero import XeroSync
from ops_hub.models import Integration
from ops_hub.storage import Storage
from ops_hub.vault import CredentialVault

logger = structlog.get_logger(__name__)

PLATFORM_SYNCS: dict[Platform, type[PlatformSync]] = {
    Platform.QUICKBOOKS: QuickBooksSync,
    Platform.STRIPE: StripeSync,
    Platform.PAYPAL: PayPalSync,
    Platform.ASANA: AsanaSync,
    Platform.MONDAY: MondaySync,
    Platform.XERO: XeroSync,
}


class SyncDispatcher:
    """Routes an integration to its platform's sync.

    Every ``Platform`` member must have a sync; a gap is a construction-time
    error rather than a silent runtime miss.
    """

    def __init__(
        self,
        storage: Storage,
        vault: CredentialVault,
        client: httpx.AsyncClient,
        syncs: Mapping[Platform, PlatformSync] | None = None,
    ):
        if syncs is None:
            syncs = {
                platform: sync_cls(storage, vault, client)
                for platform, sync_cls in PLATFORM_SYNCS.items()
            }
        missing = [p.value for p in Platform if p not in syncs]
        if missing:
            raise ValueError(f"No sync registered for platforms: {', '.join(missing)}")
        self._syncs = dict(syncs)

    @property
    def platforms(self) -> list[Platform]:
        return list(self._syncs)

    async def sync(self, integration: Integration) -> SyncResult:
        """Sync one integration.

        Unknown platforms return an unsuccessful result; sync errors raise.
        """
        log = logger.bind(platform=integration.platform, tenant_id=integration.user_id)

        try:
            platform = Platform(integration.platform.lower())
        except ValueError:
            log.warning("unsupported_platform")
            return SyncResult(success=False, message="Unsupported platform")

        log.info("sync_started")
        result = await self._syncs[platform].sync(integration)
        log.info("sync_completed", **result.counts)
        return result


async def connect_integration(
    storage: Storage,
    vault: CredentialVault,
    user_id: str,
    platform: str,
    credentials: dict[str, Any],
) -> Integration:
    """Store (or reconnect) a tenant's integration with encrypted credentials.

    There is one integration per tenant and platform; reconnecting replaces
    the stored credentials and marks it connected again.
    """
    platform_value = Platform(platform.lower()).value
    envelope = vault.encrypt_credentials(credentials)

    for integration in await storage.get_integrations(user_id):
        if integration.platform.lower() == platform_value:
            updated = await storage.update_integration(
                integration.id, credentials=envelope, is_connected=True
            )
            if updated is not None:
                logger.info("integration_reconnected", platform=platform_value, tenant_id=user_id)
                return updated

    integration = await storage.create_integration(
        Integration(user_id=user_id, platform=platform_value, credentials=envelope)
    )
    logger.info("integration_connected", platform=platform_value, tenant_id=user_id)
    return integration
