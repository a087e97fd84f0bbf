"""Application configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


BASE_DIR = Path(__file__).resolve().parent.parent
DB_PATH = BASE_DIR / "data" / "wealth_tracker.db"
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{DB_PATH}"

# Reporting currency; every report figure is expressed in it
BASE_CURRENCY = os.getenv("CURRENCY", "AUD").strip().upper()

# Market data settings
USE_MOCK_DATA = _env_flag("USE_MOCK_DATA")
QUOTE_TIMEOUT = float(os.getenv("QUOTE_TIMEOUT", "30"))  # seconds per batch

# Holdings
DEFAULT_PORTFOLIO_ID = int(os.getenv("DEFAULT_PORTFOLIO_ID", "0")) or None
PORTFOLIO_PATH = Path(os.getenv("PORTFOLIO_PATH", str(BASE_DIR / "portfolio.json")))

# E-mail delivery (SendGrid)
USE_MOCK_EMAIL = _env_flag("USE_MOCK_EMAIL")
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "")
EMAIL_TO = os.getenv("EMAIL_TO", "")

# Cron schedule, 8:00 on weekdays. APScheduler numbers weekdays from mon=0, so prefer names
SCHEDULE_CRON = os.getenv("SCHEDULE_CRON", "0 8 * * mon-fri")
SCHEDULE_TIMEZONE = os.getenv("SCHEDULE_TIMEZONE", "Australia/Sydney")
SCHEDULER_ENABLED = _env_flag("SCHEDULER_ENABLED", "true")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Ensure data directory exists (only needed for local SQLite, skip if DATABASE_URL is overridden)
if not os.getenv("DATABASE_URL"):
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
