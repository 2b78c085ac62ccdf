"""Wiring of the screen-time components into one service."""

from __future__ import annotations

from typing import Callable, Iterable, Optional
import logging

from screenbudget.admin import AdminService
from screenbudget.budget import BudgetEngine
from screenbudget.clock import Clock, SystemClock
from screenbudget.config import get_config
from screenbudget.grants import GrantRegistry
from screenbudget.monitor import (
    EnforcementHost,
    EnforcementMonitor,
    ForegroundProbe,
    MonitorConfig,
)
from screenbudget.repository import StateRepository
from screenbudget.storage import SQLiteStorage, StateStore
from screenbudget.usage import UsageSource

logger = logging.getLogger(__name__)


class ScreenTimeService:
    """
    Owns one engine, registry, monitor and admin surface per device.

    Example:
        ```python
        service = ScreenTimeService.from_sqlite(
            usage_source=usage,
            host=host,
            own_package="com.example.screenbudget",
        )
        service.initialize_if_needed()
        service.start()
        ```
    """

    def __init__(
        self,
        usage_source: UsageSource,
        host: EnforcementHost,
        own_package: str,
        store: Optional[StateStore] = None,
        clock: Optional[Clock] = None,
        probes: Optional[Iterable[ForegroundProbe]] = None,
        monitor_config: Optional[MonitorConfig] = None,
    ):
        self.clock = clock or SystemClock()
        self.repository = StateRepository(store)
        self.engine = BudgetEngine(self.repository, usage_source, self.clock)
        self.registry = GrantRegistry(self.repository, self.engine)
        self.monitor = EnforcementMonitor(
            self.engine,
            host,
            own_package,
            probes=probes,
            config=monitor_config,
            clock=self.clock,
        )
        self.admin = AdminService(self.repository, self.engine, self.registry, host)

    @classmethod
    def from_sqlite(
        cls,
        usage_source: UsageSource,
        host: EnforcementHost,
        own_package: str,
        db_path: Optional[str] = None,
        **kwargs,
    ) -> "ScreenTimeService":
        storage = SQLiteStorage(db_path=db_path or get_config()["db_path"])
        return cls(usage_source, host, own_package, store=storage, **kwargs)

    def initialize_if_needed(self) -> None:
        self.repository.initialize_if_needed(self.clock.today_start())

    def on_boot(self, launch: Callable[[], None]) -> bool:
        """
        Device finished booting.

        Returns:
            True if autostart is enabled and ``launch`` was called.
        """
        if not self.repository.is_autostart_enabled():
            logger.debug("Boot completed, autostart disabled")
            return False
        logger.info("Boot completed, autostart enabled, launching")
        launch()
        return True

    def start(self) -> None:
        self.monitor.start()

    def stop(self) -> None:
        self.monitor.stop()
