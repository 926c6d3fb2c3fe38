"""Failure events recorded by sweeps, syncs and the notifier."""

from ops_hub.events.recorder import EventRecorder
from ops_hub.events.types import (
    EventType,
    FailureEvent,
    OpsEvent,
    job_failed,
    notification_failed,
    sync_failed,
    tenant_failed,
)

__all__ = [
    "EventRecorder",
    "EventType",
    "OpsEvent",
    "FailureEvent",
    "job_failed",
    "tenant_failed",
    "sync_failed",
    "notification_failed",
]
