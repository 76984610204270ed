from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

D = Decimal

ZERO = D("0")
HUNDRED = D("100")


def parse_decimal_comma_strict(value: Any) -> Optional[D]:
    """Same formats as parse_decimal_comma, but malformed input returns None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, D):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return D(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return D(str(value))

    s = str(value).strip().replace("R$", "").replace(" ", "").replace("\u00a0", "")
    if not s:
        return None
    s = s.replace(".", "").replace(",", ".")
    try:
        d = D(s)
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def parse_decimal_comma(value: Any) -> D:
    """
    Boundary parser for Brazilian formatted numbers.

      "1.200,50" -> 1200.50    (dot = thousands, comma = decimal)
      "45,50"    -> 45.50
      1200.5     -> 1200.5     (numbers pass through)

    Never raises: empty or malformed input becomes 0 so forms stay usable.
    """
    d = parse_decimal_comma_strict(value)
    return ZERO if d is None else d


def round_half_up(x: D) -> int:
    return int(x.quantize(D("1"), rounding=ROUND_HALF_UP))


def to_cents(amount: D) -> int:
    return round_half_up(amount * HUNDRED)


def parse_money_cents(value: Any) -> int:
    """ "45,50" -> 4550. Malformed -> 0. """
    return to_cents(parse_decimal_comma(value))


def format_decimal_comma(value: D | int, places: int = 2) -> str:
    """1200.5 -> "1.200,50" """
    q = D(1).scaleb(-places) if places > 0 else D("1")
    d = D(value).quantize(q, rounding=ROUND_HALF_UP)
    sign = "-" if d < 0 else ""
    text = f"{abs(d):.{places}f}"
    if places > 0:
        int_part, dec_part = text.split(".")
    else:
        int_part, dec_part = text, ""
    groups = []
    while len(int_part) > 3:
        groups.insert(0, int_part[-3:])
        int_part = int_part[:-3]
    groups.insert(0, int_part)
    out = ".".join(groups)
    return f"{sign}{out},{dec_part}" if dec_part else f"{sign}{out}"


def format_cents(cents: int) -> str:
    """2252250 -> "22.522,50" """
    return format_decimal_comma(D(int(cents)) / HUNDRED, 2)


def format_brl(cents: int) -> str:
    return f"R$ {format_cents(cents)}"
