"""
Enforcement monitor for screenbudget.

Decides whether the foreground app must be evicted once the day's
allowance is gone, on host foreground-change events and on a periodic
background tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from threading import Event, Lock, Thread
from typing import Callable, Iterable, Optional, Protocol
import logging

from screenbudget.budget import BudgetEngine
from screenbudget.clock import Clock, SystemClock
from screenbudget.config import get_config

logger = logging.getLogger(__name__)

# Home screen and system settings; evicting these would loop forever.
DEFAULT_SYSTEM_PACKAGES = frozenset({
    "com.google.android.tv.settings",
    "com.google.android.leanbacklauncher",
})
DEFAULT_SYSTEM_PREFIXES = ("com.android", "android")

ForegroundProbe = Callable[[], Optional[str]]


class EnforcementHost(Protocol):
    """Host-side actions the monitor relies on."""

    def is_monitoring_service_enabled(self) -> bool:
        ...

    def go_home(self) -> None:
        ...

    def kill_background_process(self, package_id: str) -> None:
        ...


class Verdict(str, Enum):
    """Outcome of one enforcement check."""
    ALLOWED = "allowed"  # Time left
    EXEMPT_SELF = "exempt_self"
    EXEMPT_SYSTEM = "exempt_system"
    UNKNOWN = "unknown"  # No probe could name the foreground app
    EVICTED = "evicted"
    DEBOUNCED = "debounced"  # Eviction suppressed, one fired too recently


class Trigger(str, Enum):
    EVENT = "event"
    TICK = "tick"


@dataclass
class MonitorConfig:
    """Monitor configuration."""
    check_interval_seconds: float = field(
        default_factory=lambda: float(get_config()["check_interval_seconds"])
    )
    min_eviction_interval_ms: int = field(
        default_factory=lambda: int(get_config()["min_eviction_interval_ms"])
    )
    system_packages: frozenset = DEFAULT_SYSTEM_PACKAGES
    system_prefixes: tuple = DEFAULT_SYSTEM_PREFIXES


@dataclass
class EnforcementDecision:
    """What the monitor decided for one event or tick."""
    package: Optional[str]
    verdict: Verdict
    remaining_minutes: int
    trigger: Trigger
    decided_at: datetime


def make_usage_window_probe(
    source,
    clock: Optional[Clock] = None,
    window_ms: int = 1000,
) -> ForegroundProbe:
    """Probe naming the app most recently seen by the usage source."""
    clock = clock or SystemClock()

    def probe() -> Optional[str]:
        now = clock.now()
        return source.recent_foreground_package(now - timedelta(milliseconds=window_ms), now)

    return probe


class EnforcementMonitor:
    """
    Evicts the foreground app when no screen time is left.

    Foreground resolution walks the probes in order, then falls back to
    the last package reported by a host event. Evictions are published
    to subscribers.

    Example:
        ```python
        monitor = EnforcementMonitor(engine, host, own_package="com.example.screenbudget")
        monitor.subscribe(lambda decision: show_banner(decision.package))
        monitor.start()
        ...
        monitor.stop()
        ```
    """

    def __init__(
        self,
        engine: BudgetEngine,
        host: EnforcementHost,
        own_package: str,
        probes: Optional[Iterable[ForegroundProbe]] = None,
        config: Optional[MonitorConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.engine = engine
        self.host = host
        self.own_package = own_package
        self.config = config or MonitorConfig()
        self.clock = clock or engine.clock
        self._probes: list[ForegroundProbe] = list(probes or [])
        self._lock = Lock()

        self._last_known_package: Optional[str] = None
        self._last_eviction_at: Optional[datetime] = None
        self._subscribers: list[Callable[[EnforcementDecision], None]] = []

        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    # =========================================================================
    # Classification
    # =========================================================================

    def is_system_package(self, package: str) -> bool:
        return package in self.config.system_packages or package.startswith(
            self.config.system_prefixes
        )

    @property
    def last_known_package(self) -> Optional[str]:
        return self._last_known_package

    def current_foreground_package(self) -> Optional[str]:
        """First non-empty answer from the probes, else None."""
        for probe in [*self._probes, lambda: self._last_known_package]:
            try:
                package = probe()
            except Exception:
                logger.debug("Foreground probe %r failed", probe, exc_info=True)
                continue
            if package:
                return package
        return None

    # =========================================================================
    # Inputs
    # =========================================================================

    def on_foreground_changed(self, package: Optional[str]) -> EnforcementDecision:
        """Handle a foreground-app-changed notification from the host."""
        if not package:
            return self._decision(None, Verdict.UNKNOWN, Trigger.EVENT)

        if package == self.own_package:
            self._last_known_package = package
            return self._decision(package, Verdict.EXEMPT_SELF, Trigger.EVENT)

        if self.is_system_package(package):
            self._last_known_package = None
            return self._decision(package, Verdict.EXEMPT_SYSTEM, Trigger.EVENT)

        self._last_known_package = package
        remaining = self.engine.remaining_minutes()
        if remaining > 0:
            return self._decision(package, Verdict.ALLOWED, Trigger.EVENT, remaining)

        return self._evict(package, Trigger.EVENT)

    def tick(self) -> EnforcementDecision:
        """Periodic check of whatever is in the foreground."""
        remaining = self.engine.remaining_minutes()
        if remaining > 0:
            return self._decision(None, Verdict.ALLOWED, Trigger.TICK, remaining)

        package = self.current_foreground_package()
        if package is None:
            return self._decision(None, Verdict.UNKNOWN, Trigger.TICK)

        if package == self.own_package:
            return self._decision(package, Verdict.EXEMPT_SELF, Trigger.TICK)

        if self.is_system_package(package):
            self._last_known_package = None
            return self._decision(package, Verdict.EXEMPT_SYSTEM, Trigger.TICK)

        return self._evict(package, Trigger.TICK)

    # =========================================================================
    # Eviction
    # =========================================================================

    def _evict(self, package: str, trigger: Trigger) -> EnforcementDecision:
        with self._lock:
            now = self.clock.now()
            if self._last_eviction_at is not None:
                elapsed_ms = (now - self._last_eviction_at).total_seconds() * 1000
                if elapsed_ms < self.config.min_eviction_interval_ms:
                    return self._decision(package, Verdict.DEBOUNCED, trigger)
            self._last_eviction_at = now
            self._last_known_package = None

        self.host.go_home()
        try:
            self.host.kill_background_process(package)
        except Exception as exc:
            logger.warning("Could not stop background processes of %s: %s", package, exc)

        logger.info("Evicted %s (%s), no screen time left", package, trigger.value)
        decision = self._decision(package, Verdict.EVICTED, trigger)
        self._publish(decision)
        return decision

    def _decision(
        self,
        package: Optional[str],
        verdict: Verdict,
        trigger: Trigger,
        remaining: int = 0,
    ) -> EnforcementDecision:
        return EnforcementDecision(
            package=package,
            verdict=verdict,
            remaining_minutes=remaining,
            trigger=trigger,
            decided_at=self.clock.now(),
        )

    # =========================================================================
    # Decision channel
    # =========================================================================

    def subscribe(
        self,
        callback: Callable[[EnforcementDecision], None],
    ) -> Callable[[], None]:
        """
        Receive every eviction.

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, decision: EnforcementDecision) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(decision)
            except Exception:
                logger.exception("Eviction subscriber %r failed", callback)

    # =========================================================================
    # Background schedule
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the periodic tick on a daemon thread."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._run, name="screenbudget-monitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Enforcement tick failed")
            self._stop_event.wait(self.config.check_interval_seconds)
