"""
Input validation for screenbudget.

Rejects bad admin and child input before any state is touched.
"""

from typing import Optional

from screenbudget.config import get_config


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


def validate_minutes(minutes: int, name: str = "minutes") -> None:
    """
    Validate a whole-minute duration.

    Args:
        minutes: Duration in minutes
        name: Field name used in the error message

    Raises:
        ValidationError: If minutes is not a non-negative integer
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationError(f"{name} must be an integer, got {type(minutes).__name__}")

    if minutes < 0:
        raise ValidationError(f"{name} cannot be negative, got {minutes}")


def validate_code_count(count: int, max_count: Optional[int] = None) -> None:
    """
    Validate the size of a code batch.

    Raises:
        ValidationError: If count is outside [1, max_count]
    """
    if max_count is None:
        max_count = get_config()["max_codes_per_batch"]

    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError(f"count must be an integer, got {type(count).__name__}")

    if count < 1 or count > max_count:
        raise ValidationError(f"count must be between 1 and {max_count}, got {count}")


def validate_pin(pin: str) -> None:
    """
    Validate a new admin PIN.

    Raises:
        ValidationError: If the PIN is not exactly ``pin_length`` digits
    """
    pin_length = get_config()["pin_length"]

    if not isinstance(pin, str):
        raise ValidationError(f"PIN must be a string, got {type(pin).__name__}")

    if len(pin) != pin_length or not all(ch in "0123456789" for ch in pin):
        raise ValidationError(f"PIN must be exactly {pin_length} digits")


def validate_entry(text: str) -> None:
    """
    Validate text typed into the code/PIN entry.

    Raises:
        ValidationError: If the input is not ``code_length`` characters
    """
    code_length = get_config()["code_length"]

    if not isinstance(text, str):
        raise ValidationError(f"Input must be a string, got {type(text).__name__}")

    if len(text) != code_length:
        raise ValidationError(f"Input must be {code_length} characters, got {len(text)}")
