"""
Input normalisation and validation for route requests.

Locations can be typed as a 6 digit postal code or as a free-form
address. Anything made only of digits is treated as a postal code and
must be exactly six digits long.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

MAX_STOPS = 20
MIN_STOPS = 2
DEFAULT_STOP_MINUTES = 5
MAX_STOP_MINUTES = 240
POSTAL_LENGTH = 6

_WHITESPACE = re.compile(r"\s+")
_DIGITS = re.compile(r"^\d+$")
_POSTAL = re.compile(r"^\d{6}$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def normalize_location_input(value: str) -> str:
    """Collapse whitespace, and reduce digit-only input to a postal code.

    >>> normalize_location_input("  12 34 5678 ")
    '123456'
    >>> normalize_location_input("1  Raffles   Place")
    '1 Raffles Place'
    """
    trimmed = _WHITESPACE.sub(" ", value or "").strip()
    digits_only = trimmed.replace(" ", "")
    if _DIGITS.match(digits_only):
        return digits_only[:POSTAL_LENGTH]
    return trimmed


def is_numeric_only(value: str) -> bool:
    return bool(_DIGITS.match((value or "").strip()))


def is_valid_postal(value: str) -> bool:
    return bool(_POSTAL.match((value or "").strip()))


def normalize_stop_minutes(value) -> int:
    """Parse a stop duration in minutes, clamped to ``[0, MAX_STOP_MINUTES]``.

    Unparseable values give 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        try:
            parsed = int(value)
        except (ValueError, OverflowError):
            return 0
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return 0
        parsed = int(match.group(1))
    return min(max(parsed, 0), MAX_STOP_MINUTES)


def validate_inputs(
    start: str,
    stops: Sequence[str],
    end: Optional[str] = None,
) -> List[str]:
    """Check a route request and return a list of error messages.

    An empty list means the request can be planned. The end location is
    optional.
    """
    errors: List[str] = []

    if not (start or "").strip():
        errors.append("Missing start location")
    elif is_numeric_only(start) and not is_valid_postal(start):
        errors.append("Invalid postal code for start location")

    if len(stops) < MIN_STOPS:
        errors.append(f"At least {MIN_STOPS} stops are required")
    if len(stops) > MAX_STOPS:
        errors.append(f"At most {MAX_STOPS} stops are allowed")

    for number, stop in enumerate(stops, start=1):
        if not (stop or "").strip():
            errors.append(f"Missing stop {number}")
        elif is_numeric_only(stop) and not is_valid_postal(stop):
            errors.append(f"Invalid stop {number}")

    if end and end.strip() and is_numeric_only(end) and not is_valid_postal(end):
        errors.append("Invalid postal code for end location")

    return errors
