"""Mini README: Integer-cent money helpers.

Structure:
    * parse_to_cents - tolerant parser turning user or stored text into cents.
    * cents_to_decimal_string / cents_to_decimal - boundary conversions.
    * format_currency - dollar display strings for ledger log lines.
    * MAX_CENTS - largest magnitude a Numeric(12, 2) column stores exactly.

All arithmetic on balances and amounts happens on ``int`` cents. Text typed
by users and ``Decimal`` values read from the database pass through
``parse_to_cents`` so no float ever touches a currency value. Fractional
digits beyond the second are truncated, never rounded.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Union

from ..errors import InvalidAmountError

_DISALLOWED_CHARACTERS = re.compile(r"[^0-9.\-]")

MoneyInput = Union[str, Decimal, int]

MAX_CENTS = 10**12 - 1


def parse_to_cents(value: MoneyInput) -> int:
    """Convert a currency string such as ``"$1,234.5"`` into integer cents.

    Only digits, ``.`` and ``-`` survive; a leading ``-`` makes the value
    negative. A missing fractional part means ``.00`` and extra fractional
    digits are dropped. Raises ``InvalidAmountError`` when no digits remain.
    """

    if value is None or isinstance(value, (bool, float)):
        raise InvalidAmountError()

    text = format(value, "f") if isinstance(value, Decimal) else str(value)
    normalised = _DISALLOWED_CHARACTERS.sub("", text).strip()
    if not any(character.isdigit() for character in normalised):
        raise InvalidAmountError()

    negative = normalised.startswith("-")
    whole_part, _, remainder = normalised.replace("-", "").partition(".")
    fractional_part = remainder.split(".", 1)[0]
    cents_part = f"{fractional_part}00"[:2]
    cents = int(f"{whole_part or '0'}{cents_part}")
    return -cents if negative else cents


def cents_to_decimal_string(cents: int) -> str:
    """Render cents as a plain decimal string, e.g. ``-1230 -> "-12.30"``."""

    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(int(cents)), 100)
    return f"{sign}{dollars}.{remainder:02d}"


def cents_to_decimal(cents: int) -> Decimal:
    """Return a two-place ``Decimal`` suitable for Numeric storage columns."""

    return Decimal(cents_to_decimal_string(cents))


def format_currency(cents: int, *, signed: bool = False) -> str:
    """Format cents for display: ``$12.30`` or, when signed, ``+$12.30``/``-$12.30``."""

    magnitude = cents_to_decimal_string(abs(cents))
    if signed:
        return f"{'+' if cents >= 0 else '-'}${magnitude}"
    return f"{'-' if cents < 0 else ''}${magnitude}"


__all__ = [
    "MAX_CENTS",
    "MoneyInput",
    "cents_to_decimal",
    "cents_to_decimal_string",
    "format_currency",
    "parse_to_cents",
]
