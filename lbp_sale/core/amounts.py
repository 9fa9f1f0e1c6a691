"""Fixed-point helpers for base-unit amounts.

Amounts are integers in base units; display values are Decimals. Floats are
never involved.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_DOWN, Decimal, InvalidOperation
from typing import Union

DEFAULT_PRECISION = 6


def to_decimal(amount: int, precision: int = DEFAULT_PRECISION) -> Decimal:
    """Scale a base-unit amount down by ``precision`` digits."""
    return Decimal(int(amount)).scaleb(-precision)


def to_base_units(value: Union[str, int, Decimal], precision: int = DEFAULT_PRECISION) -> int:
    """Parse a display value ("1,234.56") into base units, rounding toward zero."""
    if isinstance(value, str):
        cleaned = value.replace(",", "").replace("_", "").strip()
        try:
            value = Decimal(cleaned)
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    scaled = Decimal(value).scaleb(precision).quantize(Decimal(1), rounding=ROUND_DOWN)
    if scaled < 0:
        raise ValueError(f"Amount must be non-negative, got {value}")
    return int(scaled)


def format_token_amount(amount: int, precision: int = DEFAULT_PRECISION, places: int = 2) -> str:
    """Render base units with thousands separators, truncated to ``places``."""
    quantum = Decimal(1).scaleb(-places)
    value = to_decimal(amount, precision).quantize(quantum, rounding=ROUND_DOWN)
    return f"{value:,.{places}f}"


def ceil_mul(amount: int, factor: Decimal) -> int:
    """``ceil(amount * factor)`` in exact arithmetic."""
    return int((Decimal(amount) * Decimal(factor)).to_integral_value(rounding=ROUND_CEILING))


def floor_div(numerator: int, denominator: int) -> int:
    """Floor division that treats a zero denominator as zero."""
    if denominator <= 0:
        return 0
    return max(numerator, 0) // denominator
