from datetime import datetime
from zoneinfo import ZoneInfo

from ...application.ports.clock import Clock


class SystemClock(Clock):
    def __init__(self, timezone: str) -> None:
        self._zone = ZoneInfo(timezone)

    def now(self) -> datetime:
        # Appointments store clinic wall-clock time, so compare in the same frame
        return datetime.now(self._zone).replace(tzinfo=None, microsecond=0)
