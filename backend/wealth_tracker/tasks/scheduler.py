"""Background scheduler for the periodic portfolio report."""

import logging
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from wealth_tracker.config import DEFAULT_PORTFOLIO_ID, SCHEDULE_CRON, SCHEDULE_TIMEZONE
from wealth_tracker.models.database import async_session_factory
from wealth_tracker.services.errors import PerformanceError
from wealth_tracker.services.notification import EmailNotifier, build_notifier
from wealth_tracker.services.performance import PerformanceEngine, build_performance_engine
from wealth_tracker.services.portfolio import (
    InvalidHoldingError,
    PortfolioNotFoundError,
    portfolio_service,
)

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def send_portfolio_update(
    portfolio_id: int | None = None,
    engine: PerformanceEngine | None = None,
    notifier: EmailNotifier | None = None,
    session_factory=async_session_factory,
) -> dict[str, Any]:
    """Compute the portfolio's performance and send it out.

    Failures are logged and reported in the returned status rather than
    raised, so one bad run does not stop the schedule.
    """
    portfolio_id = portfolio_id or DEFAULT_PORTFOLIO_ID
    engine = engine or build_performance_engine()
    notifier = notifier or build_notifier()

    logger.info("Starting portfolio update")
    try:
        async with session_factory() as session:
            snapshot = await portfolio_service.load_holdings(session, portfolio_id)

        report = await engine.compute_performance(
            snapshot.holdings, snapshot.base_currency
        )
        result = await notifier.send_performance_update(report)
    except (PerformanceError, PortfolioNotFoundError, InvalidHoldingError) as e:
        logger.error(f"Portfolio update failed: {e}")
        return {"status": "error", "error": str(e)}

    logger.info(f"Portfolio update for '{snapshot.name}' completed: {result['status']}")
    return {"status": "success", "notification": result}


def start_scheduler():
    """Start the background scheduler."""
    trigger = CronTrigger.from_crontab(SCHEDULE_CRON, timezone=SCHEDULE_TIMEZONE)
    scheduler.add_job(
        send_portfolio_update,
        trigger=trigger,
        id="send_portfolio_update",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started with cron '{SCHEDULE_CRON}' ({SCHEDULE_TIMEZONE})")


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
