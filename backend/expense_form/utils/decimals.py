"""
Decimal helpers shared by the amount, shares and storage code.

Amounts and shares are stored in minor units (x100). Everything the user
sees is in display units. The helpers here are the only place the two
are converted.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

CENT = Decimal('0.01')
MINOR_UNITS = Decimal('100')


def parse_decimal(value) -> Optional[Decimal]:
    """Parse a str/int/float into a finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def format_decimal(value: Decimal) -> str:
    """Render without exponent, trailing zeros or trailing point."""
    if value == 0:
        return "0"
    text = format(value, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def round_to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(value: Decimal) -> int:
    """Display units -> minor units, rounding half up like Math.round."""
    return int((value * MINOR_UNITS).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_minor_units(value) -> str:
    """Minor units (number or numeric string) -> display string."""
    parsed = parse_decimal(value)
    if parsed is None:
        raise ValueError(f"not a number: {value!r}")
    return format_decimal(parsed / MINOR_UNITS)
