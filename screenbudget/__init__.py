"""
screenbudget - Daily screen-time budget enforcement.

Budget engine:
    from screenbudget import BudgetEngine, StateRepository, InMemoryUsageSource

    engine = BudgetEngine(StateRepository(), InMemoryUsageSource("com.example.kid"))
    engine.set_daily_limit(60)
    print(engine.remaining_minutes())  # 60

Grant codes:
    from screenbudget import GrantRegistry

    registry = GrantRegistry(engine.repository, engine)
    codes = registry.generate(count=5, minutes_per_code=30)
    registry.consume(codes[0].value)   # 30

Enforcement:
    from screenbudget import ScreenTimeService

    service = ScreenTimeService(usage, host, own_package="com.example.kid")
    service.monitor.subscribe(lambda d: print(d.package, d.verdict))
    service.start()
"""

from screenbudget.config import get_config, set_config, configure_logging
from screenbudget.clock import Clock, SystemClock
from screenbudget.models import BudgetSettings, GrantCode, DailyUsageState, CodeStatus
from screenbudget.validation import ValidationError
from screenbudget.storage import InMemoryStorage, SQLiteStorage, StorageWriteError
from screenbudget.repository import StateRepository
from screenbudget.usage import UsageSource, InMemoryUsageSource
from screenbudget.budget import BudgetEngine
from screenbudget.grants import (
    GrantRegistry,
    RedemptionError,
    RedemptionErrorKind,
    CodeNotFoundError,
    CodeAlreadyUsedError,
)
from screenbudget.monitor import (
    EnforcementMonitor,
    EnforcementHost,
    EnforcementDecision,
    MonitorConfig,
    Verdict,
    make_usage_window_probe,
)
from screenbudget.admin import AdminService, RedemptionResult, RedemptionOutcome
from screenbudget.service import ScreenTimeService


__version__ = "1.0.0"
__all__ = [
    # Config
    "get_config",
    "set_config",
    "configure_logging",
    "Clock",
    "SystemClock",
    # Models
    "BudgetSettings",
    "GrantCode",
    "DailyUsageState",
    "CodeStatus",
    "ValidationError",
    # Storage
    "InMemoryStorage",
    "SQLiteStorage",
    "StorageWriteError",
    "StateRepository",
    # Usage
    "UsageSource",
    "InMemoryUsageSource",
    # Core
    "BudgetEngine",
    "GrantRegistry",
    "RedemptionError",
    "RedemptionErrorKind",
    "CodeNotFoundError",
    "CodeAlreadyUsedError",
    "EnforcementMonitor",
    "EnforcementHost",
    "EnforcementDecision",
    "MonitorConfig",
    "Verdict",
    "make_usage_window_probe",
    # Admin
    "AdminService",
    "RedemptionResult",
    "RedemptionOutcome",
    "ScreenTimeService",
]
