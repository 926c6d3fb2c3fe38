"""Preference-gated tenant email notifications.

Delivery is at-most-once. A failure while loading the tenant, rendering or
sending is logged and recorded as an event, never retried and never raised
to the caller.
"""

from collections.abc import Sequence
from typing import Any

import structlog

from ops_hub.config.settings import Settings
from ops_hub.events import EventRecorder, notification_failed
from ops_hub.models import NotificationCategory
from ops_hub.notifications.templates import (
    IntegrationFailure,
    LowCashAlert,
    OverdueInvoice,
    WeeklyReport,
    render,
)
from ops_hub.notifications.transport import EmailMessage, EmailTransport
from ops_hub.storage import Storage

logger = structlog.get_logger(__name__)


class Notifier:
    """Sends one category of email to one tenant per call."""

    def __init__(
        self,
        storage: Storage,
        transport: EmailTransport,
        settings: Settings,
        events: EventRecorder | None = None,
    ):
        self._storage = storage
        self._transport = transport
        self._settings = settings
        self._events = events or EventRecorder()

    async def send_weekly_report(self, user_id: str, report: WeeklyReport) -> None:
        await self._deliver(
            NotificationCategory.WEEKLY_REPORTS,
            user_id,
            report,
            sender=self._settings.reports_from_email,
        )

    async def send_low_cash_alert(self, user_id: str, current_cash: int, threshold: int) -> None:
        await self._deliver(
            NotificationCategory.LOW_CASH_ALERTS,
            user_id,
            LowCashAlert(current_cash=current_cash, threshold=threshold),
            sender=self._settings.alerts_from_email,
        )

    async def send_overdue_invoice_reminder(
        self, user_id: str, invoices: Sequence[OverdueInvoice]
    ) -> None:
        await self._deliver(
            NotificationCategory.OVERDUE_INVOICES,
            user_id,
            list(invoices),
            sender=self._settings.alerts_from_email,
        )

    async def send_integration_failure_alert(self, user_id: str, platform: str) -> None:
        await self._deliver(
            NotificationCategory.INTEGRATION_FAILURES,
            user_id,
            IntegrationFailure(platform=platform),
            sender=self._settings.alerts_from_email,
        )

    async def _deliver(
        self,
        category: NotificationCategory,
        user_id: str,
        payload: Any,
        sender: str,
    ) -> None:
        log = logger.bind(tenant_id=user_id, category=category.value)

        try:
            user = await self._storage.get_user(user_id)
            if user is None or not user.email:
                log.debug("notification_skipped", reason="no_email")
                return
            if not user.is_active:
                log.debug("notification_skipped", reason="inactive")
                return
            if not user.wants(category):
                log.debug("notification_skipped", reason="opted_out")
                return

            template = render(category, user, payload)
            await self._transport.send(
                EmailMessage(
                    sender=sender,
                    to=user.email,
                    subject=template.subject,
                    html=template.html,
                    text=template.text,
                )
            )
        except Exception as e:
            log.error("notification_failed", error=str(e))
            self._events.record(notification_failed(user_id, category.value, str(e)))
            return

        log.info("notification_sent", username=user.username)
