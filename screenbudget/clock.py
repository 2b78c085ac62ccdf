"""Clock and calendar provider."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current time and the start of the local day."""

    def now(self) -> datetime:
        ...

    def today_start(self) -> datetime:
        ...


def start_of_day(moment: datetime) -> datetime:
    """Midnight of the day containing ``moment``, keeping its timezone."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def local_midnight(day: date) -> datetime:
    """Midnight of ``day`` in the device timezone, with that instant's own offset."""
    return datetime.combine(day, time()).astimezone()


def to_epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_epoch_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).astimezone()


class SystemClock:
    """Wall clock in the device's local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def today_start(self) -> datetime:
        return local_midnight(datetime.now().date())
