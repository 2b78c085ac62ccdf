"""Shared data models."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional
import logging

from screenbudget.clock import from_epoch_millis, to_epoch_millis

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = ";"
FIELD_SEPARATOR = ","


class CodeStatus(str, Enum):
    """Lifecycle of a grant code. Deleted codes are simply gone."""
    ACTIVE = "active"
    USED = "used"


@dataclass
class BudgetSettings:
    """Admin-controlled settings."""
    pin: str
    daily_limit_minutes: int


@dataclass(frozen=True)
class GrantCode:
    """A single-use code that adds minutes to today's allowance."""
    value: str
    minutes_granted: int
    used: bool = False
    used_at: Optional[datetime] = None

    @property
    def status(self) -> CodeStatus:
        return CodeStatus.USED if self.used else CodeStatus.ACTIVE

    def mark_used(self, when: datetime) -> "GrantCode":
        return replace(self, used=True, used_at=when)

    def to_record(self) -> str:
        used_at = str(to_epoch_millis(self.used_at)) if self.used_at else ""
        return FIELD_SEPARATOR.join(
            [self.value, str(self.minutes_granted), "1" if self.used else "0", used_at]
        )

    @classmethod
    def from_record(cls, record: str) -> Optional["GrantCode"]:
        """Parse one record, returning None if it is malformed."""
        parts = record.split(FIELD_SEPARATOR)
        if len(parts) != 4 or not parts[0]:
            return None
        value, minutes, used, used_at = parts
        try:
            minutes_granted = int(minutes)
            used_at_dt = from_epoch_millis(int(used_at)) if used_at else None
        except ValueError:
            return None
        if minutes_granted < 0 or used not in ("0", "1"):
            return None
        return cls(
            value=value,
            minutes_granted=minutes_granted,
            used=used == "1",
            used_at=used_at_dt,
        )


def serialize_codes(codes: list[GrantCode]) -> str:
    return RECORD_SEPARATOR.join(code.to_record() for code in codes)


def deserialize_codes(payload: str) -> list[GrantCode]:
    if not payload:
        return []
    codes = []
    for record in payload.split(RECORD_SEPARATOR):
        code = GrantCode.from_record(record)
        if code is None:
            logger.warning("Skipping malformed grant code record: %r", record)
            continue
        codes.append(code)
    return codes


@dataclass
class DailyUsageState:
    """Per-day bookkeeping reset at every rollover."""
    added_minutes_today: int
    last_reset_boundary: datetime
    usage_baseline_minutes: int = 0  # Usage forgiven by the admin unlock
