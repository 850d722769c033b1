"""
Formatting helpers shared across the engine
"""

from decimal import Decimal, ROUND_HALF_UP

MINUTES_PER_BLOCK = 10
SATS_PER_BTC = 100_000_000


def _plural(value, unit: str) -> str:
    return f"{value} {unit if value == 1 else unit + 's'}"


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_time(blocks: int) -> str:
    """
    Convert a block count to a human-readable duration.

    Assumes the 10-minutes-per-block average and picks the coarsest unit that
    still reads naturally (hours, days, months, then years).

    Example:
        >>> calculate_time(144)
        '1 day'
        >>> calculate_time(52560)
        '1.0 years'
    """
    minutes = blocks * MINUTES_PER_BLOCK
    days = minutes / 1440

    if days < 1:
        return _plural(_round_half_up(minutes / 60), "hour")

    if days < 30:
        return _plural(_round_half_up(days), "day")

    months = days / 30.44
    if _round_half_up(months) < 12:
        return _plural(_round_half_up(months), "month")

    return f"{days / 365.25:.1f} years"


def format_sats(sats: int) -> str:
    """Group thousands: 1234567 -> '1,234,567'"""
    return f"{int(sats):,}"


def format_btc(sats: int) -> str:
    """Satoshis as a BTC amount with 8 decimals"""
    return f"{Decimal(int(sats)) / Decimal(SATS_PER_BTC):,.8f}"

