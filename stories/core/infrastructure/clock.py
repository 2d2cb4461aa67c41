"""Wall-clock access in the configured timezone."""

from datetime import datetime
from zoneinfo import ZoneInfo

from stories.core.config import settings


def now_local() -> datetime:
    """Current aware datetime in settings.TIMEZONE."""
    return datetime.now(ZoneInfo(settings.TIMEZONE))
