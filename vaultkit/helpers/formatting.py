"""Unit conversion and number formatting shared by services and adapters."""
from __future__ import annotations

from decimal import Decimal
from typing import Union

Number = Union[int, float, Decimal, str]


def format_units(value: int, decimals: int) -> str:
    """Render an integer amount of base units as a decimal string.

    Matches the usual on-chain display convention: trailing zeros are trimmed
    but at least one fractional digit is kept (``format_units(10000, 2) ==
    "100.0"``).
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"value must be an integer, got {type(value).__name__}")
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    sign = "-" if value < 0 else ""
    whole, fraction = divmod(abs(value), 10**decimals)
    fraction_text = str(fraction).zfill(decimals).rstrip("0") if decimals else ""
    return f"{sign}{whole}.{fraction_text or '0'}"


def format_significant(value: Number, digits: int = 6) -> str:
    """Round to ``digits`` significant figures without scientific notation."""
    amount = Decimal(str(value))
    if amount == 0:
        return "0"
    rounded = Decimal(format(amount, f".{digits}g"))
    text = format(rounded, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_fee_display(fee: int) -> str:
    """Fee tier in hundredths of a bip to a percent label, 3000 -> ``0.3%``."""
    if isinstance(fee, bool) or not isinstance(fee, int) or fee < 0:
        raise ValueError("fee must be a non-negative integer")
    percent = Decimal(fee) / Decimal(10_000)
    text = format(percent.normalize(), "f")
    return f"{text}%"


def format_price(price: float) -> str:
    if price < 0:
        raise ValueError("Price cannot be negative")
    if price == 0:
        return "0"
    if price < 0.0001:
        return "<0.0001"
    if price >= 1_000_000_000:
        return f"{price / 1_000_000_000:.2f}B"
    if price >= 1_000_000:
        return f"{price / 1_000_000:.2f}M"
    if price < 0.001:
        return f"{price:.6f}"
    if price < 0.1:
        return f"{price:.4f}"
    return f"{price:,.2f}"
