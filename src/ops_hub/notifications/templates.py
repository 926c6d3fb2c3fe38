"""Email templates, one per notification category.

Every function here is pure: it maps a tenant and a payload to a subject,
an HTML body and a plain-text body.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from ops_hub.config import get_settings
from ops_hub.models import NotificationCategory, User


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class WeeklyReport:
    cash_in: int
    cash_out: int
    available_cash: int
    invoices_due: int
    overdue_invoices: int


@dataclass(frozen=True)
class LowCashAlert:
    current_cash: int
    threshold: int


@dataclass(frozen=True)
class OverdueInvoice:
    client: str
    amount: int
    due_date: datetime


@dataclass(frozen=True)
class IntegrationFailure:
    platform: str


def format_currency(cents: int) -> str:
    """Format integer cents as dollars, e.g. 123456 -> ``$1,234.56``."""
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"


def pluralize(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def format_short_date(value: datetime) -> str:
    return f"{value.month}/{value.day}/{value.year}"


_env = Environment(
    loader=PackageLoader("ops_hub.notifications", "templates"),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["currency"] = format_currency
_env.filters["pluralize"] = pluralize
_env.filters["shortdate"] = format_short_date


def _render_pair(name: str, **context: Any) -> tuple[str, str]:
    context.setdefault("app_name", get_settings().app_name)
    html = _env.get_template(f"{name}.html").render(**context)
    text = _env.get_template(f"{name}.txt").render(**context).strip()
    return html, text


def weekly_report_template(user: User, report: WeeklyReport) -> EmailTemplate:
    html, text = _render_pair(
        "weekly_report", business_name=user.display_name, report=report
    )
    return EmailTemplate(
        subject=f"Weekly Financial Summary - {user.display_name}",
        html=html,
        text=text,
    )


def low_cash_alert_template(user: User, alert: LowCashAlert) -> EmailTemplate:
    html, text = _render_pair(
        "low_cash_alert", business_name=user.display_name, alert=alert
    )
    return EmailTemplate(
        subject=f"Low Cash Alert - {user.display_name}",
        html=html,
        text=text,
    )


def overdue_invoice_template(
    user: User, invoices: Sequence[OverdueInvoice]
) -> EmailTemplate:
    total = sum(invoice.amount for invoice in invoices)
    html, text = _render_pair(
        "overdue_invoices",
        business_name=user.display_name,
        invoices=list(invoices),
        total=total,
    )
    return EmailTemplate(
        subject=f"{pluralize(len(invoices), 'Overdue Invoice')} - {user.display_name}",
        html=html,
        text=text,
    )


def integration_failure_template(user: User, failure: IntegrationFailure) -> EmailTemplate:
    html, text = _render_pair(
        "integration_failure", business_name=user.display_name, platform=failure.platform
    )
    return EmailTemplate(
        subject=f"Integration Issue: {failure.platform} - {user.display_name}",
        html=html,
        text=text,
    )


def render(category: NotificationCategory, user: User, payload: Any) -> EmailTemplate:
    """Render the template for ``category``."""
    if category == NotificationCategory.WEEKLY_REPORTS:
        return weekly_report_template(user, payload)
    elif category == NotificationCategory.LOW_CASH_ALERTS:
        return low_cash_alert_template(user, payload)
    elif category == NotificationCategory.OVERDUE_INVOICES:
        return overdue_invoice_template(user, payload)
    elif category == NotificationCategory.INTEGRATION_FAILURES:
        return integration_failure_template(user, payload)
    raise ValueError(f"Unknown notification category: {category}")
