"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the notification engine.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    # Try multiple possible locations for .env file
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # .env (repository root)
        pathlib.Path.cwd() / ".env",  # .env in current directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _get_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment ("1", "true", "yes", "on")."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _get_list(name: str) -> list[str]:
    """Read a comma-separated list from the environment."""
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


# Configuration constants with defaults
# Each value can be overridden through the environment or a .env file
def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "sqlite:///./notification_engine.db"
    )

DATABASE_URL = get_database_url()

# Wall-clock timezone used for schedules, quiet hours and template dates
ENGINE_TIMEZONE = os.getenv("ENGINE_TIMEZONE", "UTC")

# Signature used by the {{adminName}} placeholder
ADMIN_DISPLAY_NAME = os.getenv("ADMIN_DISPLAY_NAME", "Your Results Pro Team")

# Daily digest (HH:MM, engine timezone)
DAILY_DIGEST_TIME = os.getenv("DAILY_DIGEST_TIME", "08:00")

# Escalation
ESCALATION_DEDUPE_ENABLED = _get_bool("ESCALATION_DEDUPE_ENABLED", True)
ESCALATION_WATCH_WINDOW_HOURS = int(os.getenv("ESCALATION_WATCH_WINDOW_HOURS", "24"))
ESCALATION_SUPERVISOR_IDS = _get_list("ESCALATION_SUPERVISOR_IDS") or ["admin_supervisor_id"]

# Channel transports: NOTIFICATION_WEBHOOK_URL_<CHANNEL> switches a channel from
# the logging sender to an HTTP webhook sender
NOTIFICATION_WEBHOOK_URLS = {
    channel: url
    for channel, url in (
        ("browser", os.getenv("NOTIFICATION_WEBHOOK_URL_BROWSER", "")),
        ("email", os.getenv("NOTIFICATION_WEBHOOK_URL_EMAIL", "")),
        ("sms", os.getenv("NOTIFICATION_WEBHOOK_URL_SMS", "")),
        ("push", os.getenv("NOTIFICATION_WEBHOOK_URL_PUSH", "")),
    )
    if url
}
WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))
