"""Tenant email notifications: templates, transports and the notifier."""

from ops_hub.notifications.notifier import Notifier
from ops_hub.notifications.templates import (
    EmailTemplate,
    IntegrationFailure,
    LowCashAlert,
    OverdueInvoice,
    WeeklyReport,
    format_currency,
    render,
)
from ops_hub.notifications.transport import (
    EmailDeliveryError,
    EmailMessage,
    EmailTransport,
    RecordingTransport,
    ResendTransport,
)

__all__ = [
    "Notifier",
    # Templates
    "EmailTemplate",
    "WeeklyReport",
    "LowCashAlert",
    "OverdueInvoice",
    "IntegrationFailure",
    "format_currency",
    "render",
    # Transports
    "EmailTransport",
    "EmailMessage",
    "EmailDeliveryError",
    "ResendTransport",
    "RecordingTransport",
]
