"""
Unit Math Module
Amounts, fees and taxes arrive as decimal strings - everything here uses
int / Decimal so no monetary value ever passes through a float
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple


def parse_units(amount: str, decimals: int) -> int:
    """
    Convert a human readable amount into token base units

    Args:
        amount: Decimal string, e.g. "0.1"
        decimals: Token decimals, e.g. 18

    Returns:
        Integer amount in base units ("0.1", 18 -> 100000000000000000)
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}") from None

    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise ValueError(f"Amount must not be negative: {amount}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
    return int(scaled)


def format_units(amount: int, decimals: int) -> str:
    """Base units -> human readable string (inverse of parse_units)"""
    value = Decimal(int(amount)).scaleb(-decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def to_int(value: Any) -> Optional[int]:
    """Decimal string / int -> int, None when absent. Fractions raise ValueError."""
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid integer value: {value!r}") from None
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"Expected an integer value, got {value!r}")
    return int(number)


def bps_to_percent(bps: Any) -> str:
    """Basis points -> percentage string with two decimals ("100" -> "1.00")"""
    pct = Decimal(str(bps or 0)) / Decimal(100)
    return f"{pct:.2f}"


def fill_shares(fills: List[Dict[str, Any]]) -> List[Tuple[str, str]]:
    """
    Percentage share of routed volume for each fill

    Each share is proportionBps / 100 with two decimals.
    """
    return [(fill.get("source", "Unknown"), bps_to_percent(fill.get("proportionBps", 0))) for fill in fills]


def total_fill_bps(fills: List[Dict[str, Any]]) -> int:
    return sum(int(fill.get("proportionBps", 0)) for fill in fills)


def token_tax_rates(token: Optional[Dict[str, Any]]) -> Tuple[str, str]:
    """(buy tax %, sell tax %) for one token's metadata; missing fields are 0"""
    token = token or {}
    return bps_to_percent(token.get("buyTaxBps")), bps_to_percent(token.get("sellTaxBps"))


def is_positive(value: Any) -> bool:
    if value is None or value == "":
        return False
    try:
        return Decimal(str(value)) > 0
    except InvalidOperation:
        return False
