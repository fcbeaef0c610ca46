"""Fixed-point amount helpers.

Balances and amounts are stored as integer minor units of 1e-8 so that
arithmetic inside the database stays exact on every backend. Services and
the HTTP layer speak ``Decimal``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

DECIMAL_PLACES = 8
UNITS_PER_COIN = 10**DECIMAL_PLACES
QUANTUM = Decimal(1).scaleb(-DECIMAL_PLACES)

# DECIMAL(18,8)
MAX_BALANCE_UNITS = 10**18 - 1
MAX_BALANCE = Decimal(MAX_BALANCE_UNITS).scaleb(-DECIMAL_PLACES)

AmountLike = Union[Decimal, int, str]


def to_units(amount: AmountLike) -> int:
    """Convert a decimal amount to minor units, rejecting excess precision."""
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    scaled = value.scaleb(DECIMAL_PLACES)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"Amount {amount} has more than {DECIMAL_PLACES} decimal places"
        )
    return int(scaled)


def to_positive_units(amount: AmountLike, label: str = "Amount") -> int:
    units = to_units(amount)
    if units <= 0:
        raise ValueError(f"{label} must be positive")
    return units


def from_units(units: int) -> Decimal:
    return Decimal(units).scaleb(-DECIMAL_PLACES).quantize(QUANTUM)
