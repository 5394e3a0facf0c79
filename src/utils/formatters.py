import math
from typing import Any


def format_decimal_eu(value: Any, *, decimals: int = 2, missing: str = "-") -> str:
    """Format a numeric value using EU separators.

    - Thousands separator: '.'
    - Decimal separator  : ','
    """

    if value is None:
        return missing
    if isinstance(value, str) and not value.strip():
        return missing
    try:
        v = float(value)
    except (TypeError, ValueError):
        return missing
    if math.isnan(v):
        return missing

    s = f"{v:,.{int(decimals)}f}"  # 1,234,567.89
    return s.replace(",", "X").replace(".", ",").replace("X", ".")


def format_isk_eu(value: Any, *, decimals: int = 2, missing: str = "-") -> str:
    s = format_decimal_eu(value, decimals=decimals, missing=missing)
    return f"{s} ISK" if s != missing else missing


def format_pct_eu(value: Any, *, decimals: int = 2, missing: str = "-") -> str:
    s = format_decimal_eu(value, decimals=decimals, missing=missing)
    return f"{s}%" if s != missing else missing

