"""Money parsing for spreadsheet imports."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

_STRIP_RE = re.compile(r"[$,€£¥\s]")
_NEGATIVE_PARENS_RE = re.compile(r"^\((.*)\)$")


def parse_currency(value: Any) -> Decimal | None:
    """
    Parse a currency-like value.

    "$1,250.50" -> 1250.50, "(300)" -> -300. Returns None for blanks and
    anything that is not a number once symbols are removed.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = _STRIP_RE.sub("", str(value))
    if not text:
        return None
    negative = False
    match = _NEGATIVE_PARENS_RE.match(text)
    if match:
        negative = True
        text = match.group(1)
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return -amount if negative else amount


def compute_outstanding(bill: Decimal | None, paid: Decimal | None) -> Decimal | None:
    """outstanding = bill - paid when both are known, else bill."""
    if bill is None:
        return None
    if paid is None:
        return bill
    return bill - paid
