"""Conversion between display amounts and integer base units.

All amounts on the ledger are integers in base units (stroops by
default, 10^7 per XLM). Display amounts use Decimal; no floats in finance.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from crowdfund.config import DEFAULT_UNIT_SCALE

# Enough digits for any i128 value at any sane scale.
_PRECISION = 80


def to_base_units(amount: Union[Decimal, str, int], scale: int = DEFAULT_UNIT_SCALE) -> int:
    """Convert a display amount to base units.

    Raises ValueError if the amount is not a number or has more precision
    than one base unit.
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(amount)
    except InvalidOperation as e:
        raise ValueError(f"Not a valid amount: {amount!r}") from e
    if not value.is_finite():
        raise ValueError(f"Not a valid amount: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = value * scale
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"Amount {amount} is finer than one base unit (scale {scale})"
            )
        return int(scaled)


def format_amount(base_units: int, scale: int = DEFAULT_UNIT_SCALE) -> str:
    """Render base units as a display amount without trailing zeros."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        value = Decimal(base_units) / Decimal(scale)
        return format(value.normalize(), "f")
