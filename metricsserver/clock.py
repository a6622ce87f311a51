"""Clocks used to timestamp scrapes and measure metric freshness."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class RealClock:
    """Clock backed by the system time, always in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def since(self, then: datetime) -> timedelta:
        return self.now() - then


@dataclass
class FakeClock:
    """Clock that only moves when told to."""

    current: datetime = field(default=ZERO_TIME)

    def now(self) -> datetime:
        return self.current

    def since(self, then: datetime) -> timedelta:
        return self.current - then

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current