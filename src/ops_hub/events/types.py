"""Event type definitions for swallowed failures.

Sweeps, syncs and the notifier never let an error escape; these events are
how such failures stay observable.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventType(str, Enum):
    """Types of events recorded by the automation core."""

    JOB_FAILED = "job.failed"
    SWEEP_TENANT_FAILED = "sweep.tenant_failed"
    SYNC_FAILED = "sync.failed"
    NOTIFICATION_FAILED = "notification.failed"


@dataclass
class OpsEvent:
    """Base event structure."""

    event_type: EventType
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    event_id: UUID = field(default_factory=uuid4)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to a JSON-friendly dictionary."""
        return {
            "id": str(self.event_id),
            "type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


@dataclass
class FailureEvent(OpsEvent):
    """A failure scoped to one tenant and/or one job run."""

    tenant_id: str | None = None
    source: str = ""  # job id, platform or notification category
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["failure"] = {
            "tenant_id": self.tenant_id,
            "source": self.source,
            "error": self.error,
        }
        return base


def job_failed(job_id: str, error: str) -> FailureEvent:
    """Create a job failed event."""
    return FailureEvent(event_type=EventType.JOB_FAILED, source=job_id, error=error)


def tenant_failed(job_id: str, tenant_id: str, error: str) -> FailureEvent:
    """Create a sweep tenant failure event."""
    return FailureEvent(
        event_type=EventType.SWEEP_TENANT_FAILED,
        tenant_id=tenant_id,
        source=job_id,
        error=error,
    )


def sync_failed(
    tenant_id: str, platform: str, error: str, reauthorize: bool = False
) -> FailureEvent:
    """Create an integration sync failure event."""
    return FailureEvent(
        event_type=EventType.SYNC_FAILED,
        tenant_id=tenant_id,
        source=platform,
        error=error,
        data={"reauthorize": reauthorize},
    )


def notification_failed(tenant_id: str, category: str, error: str) -> FailureEvent:
    """Create a notification delivery failure event."""
    return FailureEvent(
        event_type=EventType.NOTIFICATION_FAILED,
        tenant_id=tenant_id,
        source=category,
        error=error,
    )
