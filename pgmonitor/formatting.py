"""
NULL-safe numeric helpers shared by the report transforms.

Statistics views return NULL for empty aggregates and numeric/Decimal for
sums, so every counter goes through these before any arithmetic.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

GIB = 1024 ** 3
BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


def as_int(value: Any, default: int = 0) -> int:
    """Coerce a counter value to int; missing or unparseable means default."""
    if value is None:
        return default
    if isinstance(value, int):
        return int(value)
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError, OverflowError):
        return default


def as_decimal(value: Any) -> Optional[Decimal]:
    """Coerce to a finite Decimal, or None when missing, NaN or infinite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def as_float(value: Any, default: float = 0.0) -> float:
    result = as_decimal(value)
    return float(result) if result is not None else default


def ratio(numerator: Any, denominator: Any, scale: int = 100) -> Optional[Decimal]:
    """numerator * scale / denominator, or None for a zero or unknown denominator."""
    den = as_decimal(denominator)
    if den is None or den == 0:
        return None
    num = as_decimal(numerator) or Decimal(0)
    return num * scale / den


def fixed(value: Any, places: int) -> str:
    """Format a number with a fixed count of decimals, rounding half up."""
    number = as_decimal(value)
    if number is None:
        number = Decimal(0)
    quantum = Decimal(1).scaleb(-places)
    return str(number.quantize(quantum, rounding=ROUND_HALF_UP))


def percent(numerator: Any, denominator: Any, places: int, default: Any = 0) -> str:
    """numerator * 100 / denominator as a fixed-decimal string, NULL-safe."""
    result = ratio(numerator, denominator)
    return fixed(default if result is None else result, places)


def split_percentages(counts: Mapping[str, int]) -> Dict[str, int]:
    """
    Whole-number share of each count in the total.

    Uses exact integer arithmetic and hands the rounding residue to the
    largest remainders (ties go to the earlier key), so the shares add up to
    exactly 100 whenever the total is positive. A zero total gives all zeros.
    """
    clean = {key: max(as_int(value), 0) for key, value in counts.items()}
    total = sum(clean.values())
    if total == 0:
        return {key: 0 for key in clean}

    shares = {key: divmod(value * 100, total) for key, value in clean.items()}
    result = {key: quotient for key, (quotient, _) in shares.items()}
    shortfall = 100 - sum(result.values())
    by_remainder = sorted(clean, key=lambda key: shares[key][1], reverse=True)
    for key in by_remainder[:shortfall]:
        result[key] += 1
    return result


def format_bytes(bytes_value: Any) -> str:
    """
    Bytes in the largest binary unit that keeps the number at or above 1.
    Two decimals below 10, one below 100, none above, rounding half up:
    "1.50 KB", "10.0 MB", "200 GB". Zero, negative and unknown sizes read "0 B".
    """
    value = as_decimal(bytes_value)
    if value is None or value <= 0:
        return "0 B"

    exponent = 0
    while value >= 1024 and exponent < len(BYTE_UNITS) - 1:
        value /= 1024
        exponent += 1

    places = 0 if value >= 100 else 1 if value >= 10 else 2
    return f"{fixed(value, places)} {BYTE_UNITS[exponent]}"


def format_gigabytes(bytes_value: Any) -> str:
    """Bytes as gigabytes with two decimals, e.g. "1.50 GB"."""
    return f"{fixed(Decimal(as_int(bytes_value)) / GIB, 2)} GB"


def format_duration(seconds: Any) -> str:
    """Seconds as HH:MM:SS; hours are not wrapped at 24."""
    total = max(as_int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def truncate(text: Optional[str], limit: int) -> Optional[str]:
    if text is None:
        return None
    return text[:limit]
