"""Command-line entry point: run the report once or on a schedule."""

import argparse
import asyncio
import json
import logging
from pathlib import Path

from wealth_tracker import config
from wealth_tracker.models.database import async_session_factory, init_db
from wealth_tracker.services.portfolio import InvalidHoldingError, portfolio_service
from wealth_tracker.tasks.scheduler import send_portfolio_update, start_scheduler, stop_scheduler

logger = logging.getLogger("wealth_tracker")


def configure_logging():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wealth-tracker",
        description="Compute portfolio performance and e-mail a report.",
    )
    parser.add_argument(
        "--run-now", action="store_true", help="send one report immediately and exit"
    )
    parser.add_argument(
        "--import",
        dest="import_path",
        type=Path,
        nargs="?",
        const=config.PORTFOLIO_PATH,
        metavar="PATH",
        help="create a portfolio from a portfolio.json file (default: PORTFOLIO_PATH)",
    )
    parser.add_argument("--name", default="My Portfolio", help="name for an imported portfolio")
    parser.add_argument("--portfolio-id", type=int, default=None)
    return parser.parse_args(argv)


async def _run_scheduled():
    start_scheduler()
    logger.info("Application running. Press Ctrl+C to exit.")
    try:
        await asyncio.Event().wait()
    finally:
        stop_scheduler()


async def run(args: argparse.Namespace) -> int:
    await init_db()
    portfolio_id = args.portfolio_id

    if args.import_path:
        async with async_session_factory() as session:
            try:
                portfolio = await portfolio_service.import_json(
                    session, args.import_path, args.name, config.BASE_CURRENCY
                )
            except InvalidHoldingError as e:
                logger.error(f"Import from {args.import_path} failed: {e}")
                return 1
        portfolio_id = portfolio.id

    if args.run_now:
        logger.info("Running portfolio update immediately")
        result = await send_portfolio_update(portfolio_id)
        print(json.dumps(result, indent=2, default=str))
        return 0 if result["status"] == "success" else 1

    if args.import_path:
        return 0

    await _run_scheduled()
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
