from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

_CENT = Decimal("0.01")
_NUMBER_RE = re.compile(r"-?\d[\d.,]*")


def parse_amount(text: str) -> float | None:
    """Parse a printed amount such as ``"1.234,56"``, ``"71,00"`` or ``"$12.00"``.

    Turkish receipts use ``,`` as the decimal separator and ``.`` for
    thousands; international output uses the opposite. When both appear the
    right-most one is the decimal separator. A lone separator is treated as
    decimal, repeated separators as thousands grouping.
    """
    match = _NUMBER_RE.search(str(text))
    if not match:
        return None
    token = match.group(0).rstrip(".,")
    negative = token.startswith("-")
    token = token.lstrip("-")
    if not token:
        return None

    has_comma = "," in token
    has_dot = "." in token
    if has_comma and has_dot:
        decimal_sep = "," if token.rfind(",") > token.rfind(".") else "."
        thousands_sep = "." if decimal_sep == "," else ","
        token = token.replace(thousands_sep, "").replace(decimal_sep, ".")
    elif has_comma:
        token = token.replace(",", ".") if token.count(",") == 1 else token.replace(",", "")
    elif has_dot and token.count(".") > 1:
        token = token.replace(".", "")

    try:
        value = float(token)
    except ValueError:
        return None
    return -value if negative else value


def normalize(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        parsed = parse_amount(value)
        if parsed is None:
            return default
        number = parsed
    else:
        return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def normalize_quantity(value: Any) -> float:
    quantity = normalize(value, 1.0)
    return quantity if quantity > 0 else 1.0


def normalize_rate(value: Any) -> float:
    return normalize(value, 0.0)


def round_money(value: float) -> float:
    """Round to two decimals, half away from zero."""
    return float(Decimal(repr(float(value))).quantize(_CENT, rounding=ROUND_HALF_UP))


def rate_key(rate: float) -> int:
    """Group VAT rates on basis points so 18.0 and 18.000000001 share a bucket."""
    return int(Decimal(repr(float(rate))).quantize(_CENT, rounding=ROUND_HALF_UP) * 100)


def rate_from_key(key: int) -> float:
    return key / 100
