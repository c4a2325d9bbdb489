import os
from datetime import datetime
from pytz import timezone

# Service timezone, overridable for deployments outside Central Europe
SERVICE_TZ = timezone(os.getenv("WINMIX_TIMEZONE", "Europe/Budapest"))


def get_current_time() -> datetime:
    """Get current time in the service timezone."""
    return datetime.now(SERVICE_TZ)

