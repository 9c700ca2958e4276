from datetime import datetime

import pytz

from ..config import settings


def get_local_time() -> datetime:
    """Current time in the configured restaurant timezone."""
    return datetime.now(pytz.UTC).astimezone(pytz.timezone(settings.TIMEZONE))
