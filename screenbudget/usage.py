"""
Usage sources for screenbudget.

A usage source reports how long the device has had something other
than the controlling app in the foreground.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Optional, Protocol
import logging

logger = logging.getLogger(__name__)

MILLIS_PER_MINUTE = 60 * 1000


def millis_to_minutes(millis: int) -> int:
    """Whole minutes of a non-negative duration, partial minutes dropped."""
    return millis // MILLIS_PER_MINUTE


def minutes_to_millis(minutes: int) -> int:
    return minutes * MILLIS_PER_MINUTE


class UsageSource(Protocol):
    """Foreground-usage reporting, gated by an externally granted permission."""

    def query_foreground_millis(self, window_start: datetime, window_end: datetime) -> int:
        ...

    def has_permission(self) -> bool:
        ...

    def request_permission(self) -> None:
        ...


@dataclass
class UsageSession:
    """One stretch of time an app spent in the foreground."""
    package: str
    start: datetime
    end: datetime


class InMemoryUsageSource:
    """
    Usage source backed by recorded foreground sessions.

    Sessions belonging to the controlling app are never counted. The
    permission flag starts as granted unless told otherwise; a call to
    request_permission() only records that the request was made.
    """

    def __init__(self, own_package: str, permission_granted: bool = True):
        self.own_package = own_package
        self._permission_granted = permission_granted
        self._sessions: list[UsageSession] = []
        self._lock = Lock()
        self.permission_requests = 0

    def record_session(self, package: str, start: datetime, end: datetime) -> UsageSession:
        if end < start:
            raise ValueError("session end precedes its start")
        session = UsageSession(package=package, start=start, end=end)
        with self._lock:
            self._sessions.append(session)
        return session

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def query_foreground_millis(self, window_start: datetime, window_end: datetime) -> int:
        total = 0
        with self._lock:
            for session in self._sessions:
                if session.package == self.own_package:
                    continue
                start = max(session.start, window_start)
                end = min(session.end, window_end)
                if end > start:
                    total += int((end - start).total_seconds() * 1000)
        return total

    def recent_foreground_package(
        self,
        window_start: datetime,
        window_end: datetime,
    ) -> Optional[str]:
        """Package whose session most recently overlapped the window."""
        latest: Optional[UsageSession] = None
        with self._lock:
            for session in self._sessions:
                if session.end < window_start or session.start > window_end:
                    continue
                if latest is None or session.end >= latest.end:
                    latest = session
        return latest.package if latest else None

    def has_permission(self) -> bool:
        return self._permission_granted

    def request_permission(self) -> None:
        self.permission_requests += 1
        logger.info("Usage access permission requested")

    def set_permission(self, granted: bool) -> None:
        self._permission_granted = granted
