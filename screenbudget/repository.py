"""
Typed access to persisted screen-time state.

Wraps a key-value StateStore with the persisted layout used by the
engine, the grant registry and the admin surface.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
import logging

from screenbudget.clock import from_epoch_millis, to_epoch_millis
from screenbudget.config import get_config
from screenbudget.models import (
    BudgetSettings,
    DailyUsageState,
    GrantCode,
    deserialize_codes,
    serialize_codes,
)
from screenbudget.storage import InMemoryStorage, StateStore, StorageWriteError

logger = logging.getLogger(__name__)

KEY_PIN = "pin"
KEY_DAILY_LIMIT = "daily_limit_minutes"
KEY_CODES = "codes"
KEY_ADDED_TIME = "added_time_minutes"
KEY_LAST_RESET_DATE = "last_reset_date"
KEY_USAGE_BASELINE = "usage_baseline_minutes"
KEY_AUTOSTART_ENABLED = "autostart_enabled"


class StateRepository:
    """
    Persisted settings, grant codes and daily bookkeeping.

    Writes that fail are retried once in durable mode; a second failure
    is logged and the value may be stale until the next successful write.
    """

    def __init__(self, store: Optional[StateStore] = None):
        self.store = store or InMemoryStorage()

    # =========================================================================
    # Raw access
    # =========================================================================

    def _write(self, key: str, value: str) -> bool:
        try:
            self.store.put(key, value)
            return True
        except StorageWriteError as exc:
            logger.warning("Write of '%s' failed (%s), retrying durably", key, exc)

        try:
            self.store.put(key, value, durable=True)
            return True
        except StorageWriteError as exc:
            logger.error("Durable write of '%s' failed, state may be stale: %s", key, exc)
            return False

    def _read_int(self, key: str, default: int) -> int:
        raw = self.store.get(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("Stored value for '%s' is not an integer: %r", key, raw)
            return default

    # =========================================================================
    # Settings
    # =========================================================================

    def get_pin(self) -> str:
        return self.store.get(KEY_PIN) or get_config()["default_pin"]

    def set_pin(self, pin: str) -> None:
        self._write(KEY_PIN, pin)

    def get_daily_limit_minutes(self) -> int:
        return self._read_int(KEY_DAILY_LIMIT, get_config()["default_daily_limit_minutes"])

    def set_daily_limit_minutes(self, minutes: int) -> None:
        self._write(KEY_DAILY_LIMIT, str(minutes))

    def get_settings(self) -> BudgetSettings:
        return BudgetSettings(pin=self.get_pin(), daily_limit_minutes=self.get_daily_limit_minutes())

    def is_autostart_enabled(self) -> bool:
        return self.store.get(KEY_AUTOSTART_ENABLED) == "1"

    def set_autostart_enabled(self, enabled: bool) -> None:
        self._write(KEY_AUTOSTART_ENABLED, "1" if enabled else "0")

    # =========================================================================
    # Grant codes
    # =========================================================================

    def get_codes(self) -> list[GrantCode]:
        return deserialize_codes(self.store.get(KEY_CODES) or "")

    def save_codes(self, codes: list[GrantCode]) -> None:
        self._write(KEY_CODES, serialize_codes(codes))

    def find_code(self, value: str) -> Optional[GrantCode]:
        return next((c for c in self.get_codes() if c.value == value), None)

    # =========================================================================
    # Daily usage state
    # =========================================================================

    def get_added_minutes(self) -> int:
        return max(0, self._read_int(KEY_ADDED_TIME, 0))

    def set_added_minutes(self, minutes: int) -> None:
        self._write(KEY_ADDED_TIME, str(minutes))

    def get_usage_baseline_minutes(self) -> int:
        return max(0, self._read_int(KEY_USAGE_BASELINE, 0))

    def set_usage_baseline_minutes(self, minutes: int) -> None:
        self._write(KEY_USAGE_BASELINE, str(minutes))

    def get_last_reset_millis(self) -> int:
        return self._read_int(KEY_LAST_RESET_DATE, 0)

    def get_last_reset_boundary(self) -> datetime:
        return from_epoch_millis(self.get_last_reset_millis())

    def set_last_reset_boundary(self, boundary: datetime) -> None:
        self._write(KEY_LAST_RESET_DATE, str(to_epoch_millis(boundary)))

    def get_daily_state(self) -> DailyUsageState:
        return DailyUsageState(
            added_minutes_today=self.get_added_minutes(),
            last_reset_boundary=self.get_last_reset_boundary(),
            usage_baseline_minutes=self.get_usage_baseline_minutes(),
        )

    def initialize_if_needed(self, today_start: datetime) -> None:
        """First-launch defaults: a reset boundary and a PIN."""
        if self.get_last_reset_millis() == 0:
            self.set_last_reset_boundary(today_start)
        if not self.store.get(KEY_PIN):
            self.set_pin(get_config()["default_pin"])
