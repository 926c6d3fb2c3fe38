"""Recurring sweeps over every active tenant.

Each sweep loads the tenant list, then processes tenants one at a time.
A failure for one tenant is logged and recorded as an event; the sweep moves
on to the next tenant.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog

from ops_hub.config.settings import Settings
from ops_hub.events import EventRecorder, sync_failed, tenant_failed
from ops_hub.integrations import IntegrationError, ReauthorizationRequired, SyncDispatcher
from ops_hub.models import InvoiceStatus, Transaction, TransactionType, User
from ops_hub.notifications import Notifier, OverdueInvoice, WeeklyReport
from ops_hub.scheduler import AnchoredJob, IntervalJob, Scheduler
from ops_hub.storage import Storage

logger = structlog.get_logger(__name__)

REPORT_WINDOW = timedelta(days=7)

SYNC_JOB = "sync-integrations"
LOW_CASH_JOB = "check-low-cash"
WEEKLY_REPORT_JOB = "generate-weekly-reports"
OVERDUE_JOB = "check-overdue-invoices"


@dataclass
class SweepReport:
    """Outcome of one sweep across all active tenants."""

    job: str
    processed: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def cash_totals(transactions: list[Transaction]) -> tuple[int, int]:
    """Sum payments and expenses, in cents."""
    cash_in = sum(t.amount for t in transactions if t.type == TransactionType.PAYMENT)
    cash_out = sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)
    return cash_in, cash_out


class Automations:
    """The four scheduled sweeps.

    Usage:
        automations = Automations(storage, notifier, dispatcher, settings)
        report = await automations.check_low_cash()
    """

    def __init__(
        self,
        storage: Storage,
        notifier: Notifier,
        dispatcher: SyncDispatcher,
        settings: Settings,
        events: EventRecorder | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._storage = storage
        self._notifier = notifier
        self._dispatcher = dispatcher
        self._settings = settings
        self._events = events or EventRecorder()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._logger = logger.bind(component="automations")

    async def active_tenants(self) -> list[User]:
        """Users with the client role that are still active."""
        return [user for user in await self._storage.get_all_users() if user.is_active_client]

    # === Sweeps ===

    async def sync_integrations(self) -> SweepReport:
        return await self._sweep(SYNC_JOB, self._sync_tenant)

    async def check_low_cash(self) -> SweepReport:
        return await self._sweep(LOW_CASH_JOB, self._check_tenant_cash)

    async def send_weekly_reports(self) -> SweepReport:
        return await self._sweep(WEEKLY_REPORT_JOB, self._send_tenant_report)

    async def check_overdue_invoices(self) -> SweepReport:
        return await self._sweep(OVERDUE_JOB, self._check_tenant_overdue)

    async def _sweep(self, job: str, action: Callable[[User], Awaitable[None]]) -> SweepReport:
        report = SweepReport(job=job)
        log = self._logger.bind(job=job)

        tenants = await self.active_tenants()
        log.info("sweep_started", tenants=len(tenants))

        for tenant in tenants:
            try:
                await action(tenant)
            except Exception as e:
                report.failed.append(tenant.id)
                log.exception("tenant_failed", tenant_id=tenant.id, error=str(e))
                self._events.record(tenant_failed(job, tenant.id, str(e)))
            else:
                report.processed += 1

        log.info("sweep_completed", processed=report.processed, failed=len(report.failed))
        return report

    # === Per-tenant actions ===

    async def _sync_tenant(self, tenant: User) -> None:
        integrations = await self._storage.get_integrations(tenant.id)

        for integration in integrations:
            if not integration.is_connected:
                continue

            log = self._logger.bind(
                job=SYNC_JOB, tenant_id=tenant.id, platform=integration.platform
            )
            try:
                result = await self._dispatcher.sync(integration)
            except ReauthorizationRequired as e:
                log.warning("integration_needs_reauthorization", error=str(e))
                await self._storage.update_integration(integration.id, is_connected=False)
                self._events.record(
                    sync_failed(tenant.id, integration.platform, str(e), reauthorize=True)
                )
                await self._notifier.send_integration_failure_alert(
                    tenant.id, integration.platform
                )
                continue
            except IntegrationError as e:
                # Left connected; the next sweep retries.
                log.warning("integration_sync_failed", error=str(e), status_code=e.status_code)
                self._events.record(sync_failed(tenant.id, integration.platform, str(e)))
                continue
            except Exception as e:
                # Malformed remote records, e.g. a row without its id.
                log.exception("integration_sync_error", error=str(e))
                self._events.record(sync_failed(tenant.id, integration.platform, repr(e)))
                continue

            if not result.success:
                log.warning("integration_sync_skipped", message=result.message)

    async def _check_tenant_cash(self, tenant: User) -> None:
        transactions = await self._storage.get_transactions(tenant.id)
        cash_in, cash_out = cash_totals(transactions)
        current_cash = cash_in - cash_out
        threshold = self._settings.low_cash_threshold

        if current_cash < threshold:
            self._logger.info(
                "low_cash_detected",
                tenant_id=tenant.id,
                current_cash=current_cash,
                threshold=threshold,
            )
            await self._notifier.send_low_cash_alert(tenant.id, current_cash, threshold)

    async def _send_tenant_report(self, tenant: User) -> None:
        transactions = await self._storage.get_transactions(tenant.id)
        invoices = await self._storage.get_invoices(tenant.id)

        since = self._clock() - REPORT_WINDOW
        week_in, week_out = cash_totals([t for t in transactions if t.date >= since])
        total_in, total_out = cash_totals(transactions)

        report = WeeklyReport(
            cash_in=week_in,
            cash_out=week_out,
            available_cash=total_in - total_out,
            invoices_due=sum(1 for i in invoices if i.status == InvoiceStatus.DUE),
            overdue_invoices=sum(1 for i in invoices if i.status == InvoiceStatus.OVERDUE),
        )
        await self._notifier.send_weekly_report(tenant.id, report)

    async def _check_tenant_overdue(self, tenant: User) -> None:
        invoices = await self._storage.get_invoices(tenant.id)
        overdue = [
            OverdueInvoice(
                client=invoice.client or "Unknown Client",
                amount=invoice.amount,
                due_date=invoice.due_date,
            )
            for invoice in invoices
            if invoice.status == InvoiceStatus.OVERDUE
        ]
        if not overdue:
            return

        self._logger.info("overdue_invoices_found", tenant_id=tenant.id, count=len(overdue))
        await self._notifier.send_overdue_invoice_reminder(tenant.id, overdue)


def register_default_jobs(
    scheduler: Scheduler,
    automations: Automations,
    settings: Settings,
) -> list[str]:
    """Register the four standard sweeps. Returns the registered job ids."""
    jobs = [
        IntervalJob(
            id=SYNC_JOB,
            name="Integration sync",
            handler=automations.sync_integrations,
            interval=settings.sync_interval_minutes * 60,
        ),
        IntervalJob(
            id=LOW_CASH_JOB,
            name="Low cash check",
            handler=automations.check_low_cash,
            interval=settings.low_cash_interval_minutes * 60,
        ),
        AnchoredJob(
            id=WEEKLY_REPORT_JOB,
            name="Weekly financial reports",
            handler=automations.send_weekly_reports,
            hour=settings.weekly_report_hour,
            weekday=settings.weekly_report_weekday,
        ),
        AnchoredJob(
            id=OVERDUE_JOB,
            name="Overdue invoice reminders",
            handler=automations.check_overdue_invoices,
            hour=settings.overdue_check_hour,
        ),
    ]
    for job in jobs:
        scheduler.register_task(job)
    return [job.id for job in jobs]
