"""Tests for report formatting and e-mail delivery."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

import pytest

from wealth_tracker.services.notification import EmailNotifier, format_email, format_text
from wealth_tracker.services.performance_types import HoldingResult, PerformanceReport


def _holding(symbol, name, current_value, daily_change, weight):
    return HoldingResult(
        symbol=symbol,
        name=name,
        quantity=10,
        currency="AUD",
        exchange_rate=1.0,
        current_price=current_value / 10,
        change=daily_change / 10,
        change_percent=daily_change / (current_value - daily_change) * 100,
        current_value=current_value,
        previous_value=current_value - daily_change,
        daily_change=daily_change,
        cost_basis_value=current_value - 50,
        overall_change=50,
        overall_change_percent=50 / (current_value - 50) * 100,
        weight=weight,
    )


@pytest.fixture
def report():
    return PerformanceReport(
        base_currency="AUD",
        holdings=(
            _holding("CBA.AX", "CommBank", 1100.0, 20.0, 55.0),
            _holding("BHP.AX", "BHP <Group>", 900.0, -30.0, 45.0),
        ),
        total_current_value=2000.0,
        total_previous_value=2010.0,
        total_daily_change=-10.0,
        total_daily_change_percent=-10 / 2010 * 100,
        total_cost_basis_value=1900.0,
        total_overall_change=100.0,
        total_overall_change_percent=100 / 1900 * 100,
        generated_at=datetime(2026, 3, 2, 21, 30, tzinfo=timezone.utc),
    )


class TestFormatEmail:
    def test_subject_uses_local_date(self, report):
        subject, _ = format_email(report, ZoneInfo("Australia/Sydney"))
        # 21:30 UTC on 2 March is the morning of 3 March in Sydney
        assert subject == "📊 Portfolio Update: Tuesday, 3 March 2026"

    def test_subject_without_timezone(self, report):
        subject, _ = format_email(report)
        assert subject.endswith("Monday, 2 March 2026")

    def test_holding_blocks(self, report):
        _, body = format_email(report)
        assert "📈 CBA.AX (CommBank)" in body
        assert "📉 BHP.AX" in body
        assert "$1,100.00 (+$20.00)" in body
        assert "$900.00 (-$30.00)" in body
        assert "55.0% of portfolio" in body

    def test_names_escaped(self, report):
        _, body = format_email(report)
        assert "BHP &lt;Group&gt;" in body
        assert "<Group>" not in body

    def test_summary(self, report):
        _, body = format_email(report)
        assert "Portfolio Summary (AUD)" in body
        assert "$2,000.00" in body
        assert "-$10.00 (-0.50%)" in body
        assert "+$100.00 (+5.26%)" in body

    def test_summary_in_report_currency(self, report):
        _, body = format_email(report.model_copy(update={"base_currency": "EUR"}))
        assert "Portfolio Summary (EUR)" in body
        assert "€2,000.00" in body
        assert "-€10.00 (-0.50%)" in body
        assert "$" not in body


class TestFormatText:
    def test_layout(self, report):
        text = format_text(report)
        assert text.startswith("📊 Portfolio Update: Monday, 2 March 2026\n\n")
        assert "CBA.AX: $110.00 (+1.85%)\n" in text
        assert "       Value: $900.00 (-$30.00)\n" in text
        assert "🧾 Total Portfolio Value: $2,000.00\n" in text
        assert "🔻 Daily Change: -$10.00 (-0.50%)\n" in text

    def test_unknown_currency_uses_code(self, report):
        text = format_text(report.model_copy(update={"base_currency": "CHF"}))
        assert "🧾 Total Portfolio Value: CHF 2,000.00\n" in text
        assert "Daily Change: -CHF 10.00" in text


class TestEmailNotifier:
    @pytest.mark.asyncio
    async def test_simulated_without_credentials(self, report):
        notifier = EmailNotifier(api_key="", from_email="a@example.com", to_email="b@example.com")
        assert notifier.simulated
        result = await notifier.send_performance_update(report)
        assert result["status"] == "simulated"
        assert result["subject"].startswith("📊 Portfolio Update")

    @pytest.mark.asyncio
    async def test_mock_mode_never_builds_client(self, report):
        with patch("wealth_tracker.services.notification.SendGridAPIClient") as client_cls:
            notifier = EmailNotifier("key", "a@example.com", "b@example.com", use_mock=True)
            result = await notifier.send_performance_update(report)
        client_cls.assert_not_called()
        assert result["status"] == "simulated"

    @pytest.mark.asyncio
    async def test_sends_via_sendgrid(self, report):
        client = MagicMock()
        client.send.return_value = MagicMock(status_code=202)
        with (
            patch(
                "wealth_tracker.services.notification.SendGridAPIClient",
                return_value=client,
            ),
            patch("wealth_tracker.services.notification.Mail") as mail_cls,
        ):
            notifier = EmailNotifier("key", "a@example.com", "b@example.com")
            result = await notifier.send_performance_update(report)

        assert result["status"] == "sent"
        client.send.assert_called_once_with(mail_cls.return_value)
        kwargs = mail_cls.call_args.kwargs
        assert kwargs["to_emails"] == "b@example.com"
        assert "Daily Stock Summary" in kwargs["html_content"]
        assert "Total Portfolio Value" in kwargs["plain_text_content"]

    @pytest.mark.asyncio
    async def test_transport_error_reported(self, report):
        client = MagicMock()
        client.send.side_effect = RuntimeError("unauthorized")
        with patch(
            "wealth_tracker.services.notification.SendGridAPIClient",
            return_value=client,
        ):
            notifier = EmailNotifier("key", "a@example.com", "b@example.com")
            result = await notifier.send_performance_update(report)
        assert result["status"] == "error"
        assert "unauthorized" in result["error"]

    @pytest.mark.asyncio
    async def test_unexpected_status_reported(self, report):
        client = MagicMock()
        client.send.return_value = MagicMock(status_code=500)
        with patch(
            "wealth_tracker.services.notification.SendGridAPIClient",
            return_value=client,
        ):
            notifier = EmailNotifier("key", "a@example.com", "b@example.com")
            result = await notifier.send_performance_update(report)
        assert result == {"status": "error", "error": "HTTP 500", "subject": result["subject"]}
