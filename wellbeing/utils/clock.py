from datetime import datetime, timezone


class SystemClock:
    """Wall clock. Always returns timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.astimezone()
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance(self, delta) -> None:
        self.instant = self.instant + delta


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


system_clock = SystemClock()
