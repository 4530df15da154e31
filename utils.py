"""
Utility functions for SettleLedger
"""
from __future__ import annotations
import os
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from errors import InvalidAmountError

CENT = Decimal("0.01")

MoneyLike = Union[Decimal, int, str, float]


def to_money(value: MoneyLike) -> Decimal:
    """
    Convert value to a Decimal at 2-decimal scale.
    Raises InvalidAmountError for non-numbers and values with sub-cent digits.
    """
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(f"Not a money value: {value!r}") from exc
    if not d.is_finite():
        raise InvalidAmountError(f"Not a money value: {value!r}")
    if d != d.quantize(CENT, rounding=ROUND_HALF_UP):
        raise InvalidAmountError(f"Amount {value} has more than two decimal places")
    return d.quantize(CENT)


def positive_money(value: MoneyLike) -> Decimal:
    """to_money() that also rejects zero and negative amounts"""
    d = to_money(value)
    if d < CENT:
        raise InvalidAmountError(f"Amount must be at least {CENT}, got {d}")
    return d


def now() -> datetime:
    """Current UTC time"""
    return datetime.now(timezone.utc)


def format_timestamp(ts: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string or None"""
    return ts.isoformat() if ts else None


def parse_timestamp(s: Optional[str]) -> Optional[datetime]:
    """Parse ISO-8601 timestamp string; empty values give None"""
    if s is None or not str(s).strip():
        return None
    return datetime.fromisoformat(str(s).strip())


def app_dir() -> str:
    """
    Get application data directory: $SETTLELEDGER_HOME or ~/.settleledger
    Creates directory if it doesn't exist.
    """
    path = os.environ.get("SETTLELEDGER_HOME") or os.path.expanduser("~/.settleledger")
    os.makedirs(path, exist_ok=True)
    return path
