"""
Helper utilities
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

TWO_PLACES = Decimal("0.01")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Convert int/float/str/Decimal to Decimal without float artifacts"""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (ArithmeticError, ValueError):
        return default


def round_money(amount: Any) -> Decimal:
    """Round to 2 decimal places (SEK öre)"""
    return to_decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_sek(amount: Any) -> str:
    """Format amount the way the storefront prints prices: '1049.48 kr'"""
    return f"{round_money(amount):.2f} kr"


def mask_token(token: Optional[str], visible: int = 10) -> str:
    """Shorten a secret for log lines"""
    if not token:
        return ""
    return f"{token[:visible]}..."
