"""
Grant code registry for screenbudget.

Generates, validates and consumes single-use time-grant codes, and
guards the admin PIN.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
import logging
import secrets
import threading

from screenbudget.budget import BudgetEngine
from screenbudget.config import get_config
from screenbudget.models import GrantCode
from screenbudget.repository import StateRepository
from screenbudget.validation import validate_code_count, validate_minutes, validate_pin

logger = logging.getLogger(__name__)


class RedemptionErrorKind(str, Enum):
    """Why a code could not be redeemed."""
    NOT_FOUND = "not_found"
    ALREADY_USED = "already_used"


class RedemptionError(Exception):
    """Raised when a grant code cannot be consumed."""
    kind: RedemptionErrorKind

    def __init__(self, value: str, message: str):
        self.value = value
        super().__init__(message)


class CodeNotFoundError(RedemptionError):
    kind = RedemptionErrorKind.NOT_FOUND

    def __init__(self, value: str):
        super().__init__(value, f"Code '{value}' not found")


class CodeAlreadyUsedError(RedemptionError):
    kind = RedemptionErrorKind.ALREADY_USED

    def __init__(self, value: str):
        super().__init__(value, f"Code '{value}' has already been used")


class GrantRegistry:
    """
    Stores one-time grant codes and the admin PIN.

    Code-list mutations are serialized by the registry lock; consume()
    takes the engine lock afterwards, never the other way round.
    """

    def __init__(self, repository: StateRepository, engine: BudgetEngine):
        self.repository = repository
        self.engine = engine
        self._lock = threading.Lock()

    # =========================================================================
    # Codes
    # =========================================================================

    def _new_value(self, taken: set[str]) -> str:
        config = get_config()
        alphabet = config["code_alphabet"]
        length = config["code_length"]
        while True:
            value = "".join(secrets.choice(alphabet) for _ in range(length))
            if value not in taken:
                return value

    def generate(self, count: int, minutes_per_code: int) -> list[GrantCode]:
        """
        Replace all stored codes with a fresh batch.

        Args:
            count: Number of codes, 1 to max_codes_per_batch.
            minutes_per_code: Minutes each code grants.

        Returns:
            The new codes.

        Raises:
            ValidationError: If count or minutes are out of range. Existing
                codes are left untouched.
        """
        validate_code_count(count)
        validate_minutes(minutes_per_code, "minutes_per_code")

        with self._lock:
            old_count = len(self.repository.get_codes())
            taken: set[str] = set()
            codes = []
            for _ in range(count):
                value = self._new_value(taken)
                taken.add(value)
                codes.append(GrantCode(value=value, minutes_granted=minutes_per_code))

            self.repository.save_codes(codes)

        logger.info(
            "Generated %d codes of %d minutes, replacing %d",
            len(codes), minutes_per_code, old_count,
        )
        return codes

    def find(self, value: str) -> Optional[GrantCode]:
        return self.repository.find_code(value)

    def list_codes(self) -> list[GrantCode]:
        return self.repository.get_codes()

    def consume(self, value: str) -> int:
        """
        Redeem a code and credit its minutes to today's allowance.

        Returns:
            Minutes granted by the code.

        Raises:
            CodeNotFoundError: If no stored code has this value.
            CodeAlreadyUsedError: If the code was redeemed before.
        """
        with self._lock:
            self.engine.ensure_daily_rollover()

            codes = self.repository.get_codes()
            index = next((i for i, c in enumerate(codes) if c.value == value), None)
            if index is None:
                raise CodeNotFoundError(value)

            code = codes[index]
            if code.used:
                raise CodeAlreadyUsedError(value)

            codes[index] = code.mark_used(self.engine.clock.now())
            self.repository.save_codes(codes)

            if code.minutes_granted > 0:
                self.engine.apply_grant(code.minutes_granted)

        logger.info("Redeemed code %s for %d minutes", value, code.minutes_granted)
        return code.minutes_granted

    def delete(self, value: str) -> bool:
        """Remove one code. Returns True if it existed."""
        with self._lock:
            codes = self.repository.get_codes()
            remaining = [c for c in codes if c.value != value]
            if len(remaining) == len(codes):
                return False
            self.repository.save_codes(remaining)
            return True

    # =========================================================================
    # PIN
    # =========================================================================

    def set_pin(self, new_pin: str) -> None:
        validate_pin(new_pin)
        self.repository.set_pin(new_pin)

    def verify_pin(self, candidate: str) -> bool:
        return candidate == self.repository.get_pin()
