"""Input normalization shared by every request model.

Implements the single coercion step for loosely typed client payloads:
- parse_bool: canonical boolean parser for on/off style flags
- to_int: integer coercion for string-or-number fields
- is_defined: presence check that keeps literal 0 valid
"""

import math
from typing import Any

TRUE_STRINGS = frozenset({"on", "true", "1", "yes"})
FALSE_STRINGS = frozenset({"off", "false", "0", "no"})


def parse_bool(value: Any, default: bool = False) -> bool:
    """Parse a boolean flag from a bool, number, or string.

    Accepted strings (case-insensitive, surrounding whitespace ignored):
    on/off, true/false, 1/0, yes/no.

    Args:
        value: Raw value from the payload.
        default: Returned when value is None or an empty string.

    Returns:
        Parsed boolean.

    Raises:
        ValueError: If value is not a recognized boolean spelling.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean value: {value!r}")
    if isinstance(value, str):
        token = value.strip().lower()
        if token == "":
            return default
        if token in TRUE_STRINGS:
            return True
        if token in FALSE_STRINGS:
            return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def to_int(value: Any) -> int:
    """Coerce a string-or-number value to an integer, flooring fractions.

    Args:
        value: Raw value (int, float, or numeric string).

    Returns:
        Integer value.

    Raises:
        ValueError: If value is a bool, non-numeric, or not finite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        token = value.strip()
        try:
            return int(token)
        except ValueError:
            value = token
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Expected a number, got {value!r}") from e
    if not math.isfinite(number):
        raise ValueError(f"Expected a finite number, got {value!r}")
    return math.floor(number)


def is_defined(value: Any) -> bool:
    """True unless the value is absent (None) or an empty string."""
    if value is None:
        return False
    if isinstance(value, str) and value.strip() == "":
        return False
    return True
