from decimal import Decimal

ETHER_DECIMALS = 18


def format_units(value: int, decimals: int = ETHER_DECIMALS) -> str:
    """
    Render an integer amount of smallest units as an exact decimal string.

    Follows the formatUnits/formatEther convention: trailing zeros are dropped
    but one fractional digit always remains ("1.0", "0.0", "1.5").
    """
    sign = "-" if value < 0 else ""
    digits = str(abs(int(value))).rjust(decimals + 1, "0")
    split = len(digits) - decimals
    whole, fraction = digits[:split], digits[split:]
    return f"{sign}{whole}.{fraction.rstrip('0') or '0'}"


def format_ether(value: int) -> str:
    return format_units(value, ETHER_DECIMALS)


def to_ether(value: int) -> Decimal:
    return Decimal(int(value)).scaleb(-ETHER_DECIMALS)
