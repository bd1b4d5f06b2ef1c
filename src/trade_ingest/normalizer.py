"""
Raw row to TradeRecord normalization.

normalize_row() is total: every recognized field has a default, so a row
never fails to normalize. Values are not trimmed or validated beyond the
defaults below.

    token_address  -> row value if non-empty, else "UNKNOWN"
    price_in_sol   -> finite float parsed from the row, else 0.0
    block_time     -> row value if non-empty, else normalization time (UTC, ISO-8601)
"""

import math
from datetime import UTC, datetime
from typing import Mapping, Optional

from trade_ingest.schemas import UNKNOWN_TOKEN_ADDRESS, TradeRecord

DEFAULT_PRICE_IN_SOL = 0.0


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with millisecond precision and Z suffix."""
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def parse_price(value: Optional[str]) -> Optional[float]:
    """Parse a decimal price string; None when empty, non-numeric or not finite."""
    if value is None or not value.strip() or "_" in value:
        return None
    try:
        price = float(value)
    except ValueError:
        return None
    if not math.isfinite(price):
        return None
    return price


def invalid_price(row: Mapping[str, Optional[str]]) -> Optional[str]:
    """
    Return the raw price_in_sol value when it is present but unusable.

    Absent or empty prices return None; they default silently.
    """
    value = row.get("price_in_sol")
    if value is None or not value.strip():
        return None
    if parse_price(value) is None:
        return value
    return None


def normalize_row(
    row: Mapping[str, Optional[str]],
    now: Optional[datetime] = None,
) -> TradeRecord:
    """
    Build a TradeRecord from one raw row, applying defaults.

    Args:
        row: Column name to string value mapping; extra columns are ignored
        now: Timestamp used when block_time is missing (default: current UTC time)

    Returns:
        Fully populated TradeRecord
    """
    token_address = row.get("token_address") or UNKNOWN_TOKEN_ADDRESS

    price = parse_price(row.get("price_in_sol"))
    if price is None:
        price = DEFAULT_PRICE_IN_SOL

    block_time = row.get("block_time")
    if not block_time:
        block_time = format_timestamp(now or datetime.now(UTC))

    return TradeRecord(
        token_address=token_address,
        price_in_sol=price,
        block_time=block_time,
    )
