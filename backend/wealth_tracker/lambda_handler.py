"""AWS Lambda entry point, triggered by an EventBridge schedule."""

import asyncio
import json
import logging

from wealth_tracker.cli import configure_logging
from wealth_tracker.models.database import init_db
from wealth_tracker.tasks.scheduler import send_portfolio_update

logger = logging.getLogger(__name__)


async def _update() -> dict:
    await init_db()
    return await send_portfolio_update()


def handler(event, context):
    configure_logging()
    logger.info(f"Lambda invoked with event: {json.dumps(event, default=str)}")

    try:
        result = asyncio.run(_update())
    except Exception as e:
        logger.exception("Portfolio update crashed")
        return {"statusCode": 500, "body": json.dumps({"error": str(e)})}

    status_code = 200 if result["status"] == "success" else 500
    return {"statusCode": status_code, "body": json.dumps(result, default=str)}
