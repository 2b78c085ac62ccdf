"""
Budget engine for screenbudget.

Features:
- Remaining allowance from the daily limit, redeemed grants and usage
- Daily rollover of grant minutes and usage forgiveness
- Debt compensation so a grant redeemed over budget is never swallowed
- Full unlock for the current day
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
import logging
import threading

from screenbudget.clock import Clock, SystemClock, to_epoch_millis
from screenbudget.repository import StateRepository
from screenbudget.usage import UsageSource, millis_to_minutes
from screenbudget.validation import validate_minutes

logger = logging.getLogger(__name__)


class BudgetEngine:
    """
    Central controller for the daily screen-time budget.

    All read-modify-write sequences on the daily state run under a
    single re-entrant lock.

    Example:
        ```python
        engine = BudgetEngine(StateRepository(), usage_source)

        engine.set_daily_limit(60)
        engine.remaining_minutes()   # 60 with no usage
        engine.apply_grant(15)       # after a code is redeemed
        ```
    """

    def __init__(
        self,
        repository: StateRepository,
        usage_source: UsageSource,
        clock: Optional[Clock] = None,
    ):
        self.repository = repository
        self.usage_source = usage_source
        self.clock = clock or SystemClock()
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # =========================================================================
    # Daily rollover
    # =========================================================================

    def ensure_daily_rollover(self) -> bool:
        """
        Reset the daily state if the stored boundary is before today.

        Returns:
            True if a rollover happened.
        """
        with self._lock:
            today_start = self.clock.today_start()
            boundary = self.repository.get_last_reset_boundary()
            if boundary >= today_start:
                return False

            self.repository.set_added_minutes(0)
            self.repository.set_usage_baseline_minutes(0)
            self.repository.set_last_reset_boundary(today_start)
            logger.debug(
                "Daily rollover: boundary %s -> %s",
                boundary.isoformat(),
                today_start.isoformat(),
            )
            return True

    # =========================================================================
    # Allowance
    # =========================================================================

    def _raw_used_minutes(self, now: datetime) -> int:
        if not self.usage_source.has_permission():
            return 0
        millis = self.usage_source.query_foreground_millis(self.clock.today_start(), now)
        return millis_to_minutes(max(0, millis))

    def used_minutes_today(self) -> int:
        """Today's foreground usage in whole minutes, minus any unlocked usage."""
        with self._lock:
            self.ensure_daily_rollover()
            raw = self._raw_used_minutes(self.clock.now())
            return max(0, raw - self.repository.get_usage_baseline_minutes())

    def remaining_minutes(self) -> int:
        """
        Minutes of screen time left today.

        Returns 0 when the usage permission is missing, so enforcement
        defaults to restrictive behavior.
        """
        with self._lock:
            self.ensure_daily_rollover()
            if not self.usage_source.has_permission():
                logger.debug("Usage permission missing, reporting no remaining time")
                return 0

            limit = self.repository.get_daily_limit_minutes()
            added = self.repository.get_added_minutes()
            used = self.used_minutes_today()
            return max(0, limit + added - used)

    def has_remaining_time(self) -> bool:
        return self.remaining_minutes() > 0

    # =========================================================================
    # Mutations
    # =========================================================================

    def apply_grant(self, minutes_granted: int) -> int:
        """
        Add redeemed grant minutes to today's allowance.

        Usage already past the daily limit that earlier grants do not cover
        is added on top, so the grant shows up in full as remaining time.

        Args:
            minutes_granted: Minutes carried by the redeemed code.

        Returns:
            Total minutes added to today's allowance.
        """
        validate_minutes(minutes_granted, "minutes_granted")

        with self._lock:
            self.ensure_daily_rollover()

            limit = self.repository.get_daily_limit_minutes()
            added = self.repository.get_added_minutes()
            used = self.used_minutes_today()

            extra_used = max(0, used - limit)
            uncovered_debt = max(0, extra_used - added)
            total = minutes_granted + uncovered_debt

            if uncovered_debt > 0:
                logger.debug(
                    "Compensating usage debt: used=%d limit=%d added=%d debt=%d, adding %d",
                    used, limit, added, uncovered_debt, total,
                )

            self.repository.set_added_minutes(added + total)
            return total

    def reset_today(self) -> None:
        """Full unlock: forget today's grants and usage."""
        with self._lock:
            self.ensure_daily_rollover()
            raw = self._raw_used_minutes(self.clock.now())
            self.repository.set_added_minutes(0)
            self.repository.set_usage_baseline_minutes(raw)
            logger.info("Today's usage reset, %d used minutes forgiven", raw)

    def set_daily_limit(self, minutes: int) -> None:
        validate_minutes(minutes, "daily_limit_minutes")
        with self._lock:
            self.repository.set_daily_limit_minutes(minutes)

    # =========================================================================
    # Reporting
    # =========================================================================

    def get_status(self) -> dict:
        """
        Snapshot of today's budget.

        Returns:
            Dict with limit, added, used and remaining minutes.
        """
        with self._lock:
            self.ensure_daily_rollover()
            state = self.repository.get_daily_state()
            permission = self.usage_source.has_permission()
            return {
                "daily_limit_minutes": self.repository.get_daily_limit_minutes(),
                "added_minutes_today": state.added_minutes_today,
                "used_minutes_today": self.used_minutes_today(),
                "remaining_minutes": self.remaining_minutes(),
                "has_usage_permission": permission,
                "last_reset_boundary": state.last_reset_boundary.isoformat(),
                "last_reset_millis": to_epoch_millis(state.last_reset_boundary),
                "timestamp": self.clock.now().isoformat(),
            }
