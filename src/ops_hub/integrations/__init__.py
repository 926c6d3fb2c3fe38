"""Third-party platform syncs."""

from ops_hub.integrations.base import (
    IntegrationError,
    MissingCredentialsError,
    Platform,
    PlatformAPIError,
    PlatformSync,
    ReauthorizationRequired,
    SyncResult,
    has_marker,
    marker,
)
from ops_hub.integrations.dispatcher import (
    PLATFORM_SYNCS,
    SyncDispatcher,
    connect_integration,
)

__all__ = [
    # Dispatch
    "SyncDispatcher",
    "PLATFORM_SYNCS",
    "connect_integration",
    # Base
    "Platform",
    "PlatformSync",
    "SyncResult",
    "marker",
    "has_marker",
    # Errors
    "IntegrationError",
    "MissingCredentialsError",
    "ReauthorizationRequired",
    "PlatformAPIError",
]
