"""Ops Hub - scheduled automation core for a multi-tenant bookkeeping dashboard."""

__version__ = "0.1.0"

from ops_hub.automation import Automations, SweepReport, register_default_jobs
from ops_hub.config import configure_logging, get_settings
from ops_hub.events import EventRecorder, EventType, OpsEvent
from ops_hub.integrations import Platform, SyncDispatcher, SyncResult, connect_integration
from ops_hub.notifications import Notifier, RecordingTransport, ResendTransport
from ops_hub.scheduler import AnchoredJob, IntervalJob, JobState, Scheduler
from ops_hub.storage import MemoryStorage, Storage
from ops_hub.vault import CredentialVault, InsecureKeyError, VaultError

__all__ = [
    # Version
    "__version__",
    # Automations & Scheduler
    "Automations",
    "SweepReport",
    "register_default_jobs",
    "Scheduler",
    "IntervalJob",
    "AnchoredJob",
    "JobState",
    # Integrations
    "Platform",
    "SyncDispatcher",
    "SyncResult",
    "connect_integration",
    # Notifications
    "Notifier",
    "ResendTransport",
    "RecordingTransport",
    # Storage & Vault
    "Storage",
    "MemoryStorage",
    "CredentialVault",
    "VaultError",
    "InsecureKeyError",
    # Events
    "EventRecorder",
    "EventType",
    "OpsEvent",
    # Config
    "get_settings",
    "configure_logging",
]
