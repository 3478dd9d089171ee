"""PIN format checks."""
import re

from .conf import PIN_LENGTH
from .exceptions import ValidationError

_PIN_PATTERN = re.compile(rf"[0-9]{{{PIN_LENGTH}}}")


def is_valid_pin(candidate) -> bool:
    """True when candidate is a str of exactly 6 ASCII digits."""
    return isinstance(candidate, str) and _PIN_PATTERN.fullmatch(candidate) is not None


def validate_pin(candidate) -> str:
    """Return candidate unchanged, or raise ValidationError.

    Raises:
        ValidationError: If candidate is not exactly 6 ASCII digits.
    """
    if not is_valid_pin(candidate):
        raise ValidationError(f"PIN must be {PIN_LENGTH} digits")
    return candidate
