"""Performance report rendering and e-mail delivery via SendGrid."""

import asyncio
import html
import logging
from datetime import tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from wealth_tracker import config
from wealth_tracker.services.performance_types import PerformanceReport

logger = logging.getLogger(__name__)

_CURRENCY_SYMBOLS = {
    "AUD": "$",
    "CAD": "$",
    "NZD": "$",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def _money(value: float, currency: str) -> str:
    sign = "-" if value < 0 else ""
    symbol = _CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    return f"{sign}{symbol}{abs(value):,.2f}"


def _signed_money(value: float, currency: str) -> str:
    money = _money(value, currency)
    return money if value < 0 else f"+{money}"


def _signed_pct(value: float) -> str:
    return f"{value:+.2f}%"


def _report_date(report: PerformanceReport, tz: tzinfo | None) -> str:
    dt = report.generated_at.astimezone(tz) if tz else report.generated_at
    return f"{dt:%A}, {dt.day} {dt:%B %Y}"


def format_email(report: PerformanceReport, tz: tzinfo | None = None) -> tuple[str, str]:
    """Render the report as an e-mail subject and HTML body."""
    subject = f"📊 Portfolio Update: {_report_date(report, tz)}"
    ccy = report.base_currency

    parts = ["<h2>📈 Daily Stock Summary</h2><hr>"]
    for h in report.holdings:
        up = h.daily_change >= 0
        color = "green" if up else "red"
        weight = f" &middot; {h.weight:.1f}% of portfolio" if h.weight is not None else ""
        parts.append(
            f"""
        <h3>{"📈" if up else "📉"} {html.escape(h.symbol)} ({html.escape(h.name)})</h3>
        <p><strong>Price:</strong> <span style="color:{color};">{_money(h.current_price, ccy)} ({_signed_pct(h.change_percent)})</span><br>
        <strong>Value:</strong> <span style="color:{color};">{_money(h.current_value, ccy)} ({_signed_money(h.daily_change, ccy)})</span>{weight}<br>
        <strong>Overall:</strong> {_signed_money(h.overall_change, ccy)} ({_signed_pct(h.overall_change_percent)})</p>
        """
        )

    up = report.total_daily_change >= 0
    color = "green" if up else "red"
    overall_color = "green" if report.total_overall_change >= 0 else "red"
    parts.append(
        f"""
      <hr>
      <h2>📊 Portfolio Summary ({html.escape(report.base_currency)})</h2>
      <p><strong>Total Value:</strong> {_money(report.total_current_value, ccy)}<br>
      <strong>Daily Change:</strong> <span style="color:{color};">{"📈" if up else "📉"} {_signed_money(report.total_daily_change, ccy)} ({_signed_pct(report.total_daily_change_percent)})</span><br>
      <strong>Overall Gain/Loss:</strong> <span style="color:{overall_color};">{_signed_money(report.total_overall_change, ccy)} ({_signed_pct(report.total_overall_change_percent)})</span></p>
    """
    )
    return subject, "".join(parts)


def format_text(report: PerformanceReport, tz: tzinfo | None = None) -> str:
    """Render the report as plain text (SMS-sized lines)."""
    ccy = report.base_currency
    lines = [f"📊 Portfolio Update: {_report_date(report, tz)}", ""]
    for h in report.holdings:
        lines.append(
            f"{h.symbol}: {_money(h.current_price, ccy)} ({_signed_pct(h.change_percent)})"
        )
        lines.append(
            f"       Value: {_money(h.current_value, ccy)} "
            f"({_signed_money(h.daily_change, ccy)})"
        )
        lines.append("")

    marker = "🔺" if report.total_daily_change >= 0 else "🔻"
    lines.append(f"🧾 Total Portfolio Value: {_money(report.total_current_value, ccy)}")
    lines.append(
        f"{marker} Daily Change: {_signed_money(report.total_daily_change, ccy)} "
        f"({_signed_pct(report.total_daily_change_percent)})"
    )
    lines.append(
        f"Overall: {_signed_money(report.total_overall_change, ccy)} "
        f"({_signed_pct(report.total_overall_change_percent)})"
    )
    return "\n".join(lines) + "\n"


class EmailNotifier:
    """Sends performance reports by e-mail.

    Without an API key and both addresses (or with use_mock set) the message
    is logged instead of sent.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str,
        to_email: str,
        use_mock: bool = False,
        tz: tzinfo | None = None,
    ):
        self.from_email = from_email
        self.to_email = to_email
        self.tz = tz
        self._client: SendGridAPIClient | None = None
        if not use_mock and api_key and from_email and to_email:
            self._client = SendGridAPIClient(api_key)
            logger.info("SendGrid client initialized")
        else:
            logger.info("Email credentials not configured; email will be simulated")

    @property
    def simulated(self) -> bool:
        return self._client is None

    def _send(self, message: Mail) -> int:
        response = self._client.send(message)
        return response.status_code

    async def send_performance_update(self, report: PerformanceReport) -> dict[str, Any]:
        subject, html_content = format_email(report, self.tz)
        text_content = format_text(report, self.tz)

        if self._client is None:
            logger.info(f"Email not sent (simulated). Message would have been:\n{text_content}")
            return {"status": "simulated", "subject": subject}

        message = Mail(
            from_email=self.from_email,
            to_emails=self.to_email,
            subject=subject,
            html_content=html_content,
            plain_text_content=text_content,
        )
        try:
            status_code = await asyncio.to_thread(self._send, message)
        except Exception as e:
            logger.exception(f"Failed to send email to {self.to_email}")
            return {"status": "error", "error": str(e), "subject": subject}

        logger.info(f"Email sent to {self.to_email}, status: {status_code}")
        if status_code not in (200, 201, 202):
            return {"status": "error", "error": f"HTTP {status_code}", "subject": subject}
        return {"status": "sent", "subject": subject}


def build_notifier() -> EmailNotifier:
    """Create the notifier from application configuration."""
    return EmailNotifier(
        api_key=config.SENDGRID_API_KEY,
        from_email=config.EMAIL_FROM,
        to_email=config.EMAIL_TO,
        use_mock=config.USE_MOCK_EMAIL,
        tz=ZoneInfo(config.SCHEDULE_TIMEZONE),
    )
