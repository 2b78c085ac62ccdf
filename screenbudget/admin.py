"""
Administrative surface for screenbudget.

The operations a parent (or the child's entry screen) can invoke from
outside the core.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from screenbudget.budget import BudgetEngine
from screenbudget.grants import CodeNotFoundError, GrantRegistry
from screenbudget.models import GrantCode
from screenbudget.monitor import EnforcementHost
from screenbudget.repository import StateRepository
from screenbudget.validation import validate_entry

logger = logging.getLogger(__name__)


class RedemptionOutcome(str, Enum):
    GRANTED = "granted"
    ADMIN_ACCESS = "admin_access"


@dataclass
class RedemptionResult:
    """Result of a successful code or PIN entry."""
    outcome: RedemptionOutcome
    minutes_granted: int
    remaining_minutes: int
    message: str


class AdminService:
    """
    Entry points for admin actions and code redemption.

    Invalid input raises ValidationError and unknown or spent codes raise
    a RedemptionError, always before any state changes.
    """

    def __init__(
        self,
        repository: StateRepository,
        engine: BudgetEngine,
        registry: GrantRegistry,
        host: Optional[EnforcementHost] = None,
    ):
        self.repository = repository
        self.engine = engine
        self.registry = registry
        self.host = host

    # =========================================================================
    # Budget
    # =========================================================================

    def set_daily_limit(self, minutes: int) -> int:
        self.engine.set_daily_limit(minutes)
        logger.info("Daily limit set to %d minutes", minutes)
        return minutes

    def unlock(self) -> int:
        """Give back the full daily limit for today."""
        self.engine.reset_today()
        return self.engine.remaining_minutes()

    def status(self) -> dict:
        status = self.engine.get_status()
        status["active_codes"] = sum(1 for c in self.registry.list_codes() if not c.used)
        status["autostart_enabled"] = self.repository.is_autostart_enabled()
        status["permissions"] = self.permission_status()
        return status

    # =========================================================================
    # Codes and PIN
    # =========================================================================

    def generate_codes(self, count: int, minutes_per_code: int) -> list[GrantCode]:
        return self.registry.generate(count, minutes_per_code)

    def list_codes(self) -> list[GrantCode]:
        return self.registry.list_codes()

    def delete_code(self, value: str) -> bool:
        return self.registry.delete(value)

    def change_pin(self, new_pin: str) -> None:
        self.registry.set_pin(new_pin)
        logger.info("Admin PIN changed")

    def redeem_code_or_pin(self, text: str) -> RedemptionResult:
        """
        Interpret text typed on the entry screen.

        Grant codes are checked first; anything else is compared with the
        admin PIN.

        Raises:
            ValidationError: If the input has the wrong length.
            CodeNotFoundError: If it is neither a code nor the PIN.
            CodeAlreadyUsedError: If the code was redeemed before.
        """
        validate_entry(text)

        if self.registry.find(text) is not None:
            minutes = self.registry.consume(text)
            return RedemptionResult(
                outcome=RedemptionOutcome.GRANTED,
                minutes_granted=minutes,
                remaining_minutes=self.engine.remaining_minutes(),
                message=f"Code activated: +{minutes} minutes",
            )

        if self.registry.verify_pin(text):
            return RedemptionResult(
                outcome=RedemptionOutcome.ADMIN_ACCESS,
                minutes_granted=0,
                remaining_minutes=self.engine.remaining_minutes(),
                message="PIN accepted",
            )

        raise CodeNotFoundError(text)

    # =========================================================================
    # Device integration
    # =========================================================================

    def set_autostart_enabled(self, enabled: bool) -> bool:
        self.repository.set_autostart_enabled(enabled)
        return enabled

    def permission_status(self) -> dict:
        monitoring = bool(self.host and self.host.is_monitoring_service_enabled())
        usage = self.engine.usage_source.has_permission()
        return {
            "monitoring_service_enabled": monitoring,
            "usage_permission_granted": usage,
            "can_enforce": monitoring and usage,
        }

    def request_usage_permission(self) -> None:
        """Ask the host for usage access; poll permission_status() for the result."""
        self.engine.usage_source.request_permission()
