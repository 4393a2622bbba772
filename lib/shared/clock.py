import time
from datetime import datetime, date, timezone


class Clock():
    """Wall clock used by plugins, replaced with a fake one in tests."""

    def Time(self) -> float:
        return time.time()

    def Now(self) -> datetime:
        return datetime.fromtimestamp(self.Time(), tz = timezone.utc)

    def Today(self) -> date:
        return self.Now().date()


SystemClock = Clock()
