"""
allocation.py — Sum-preserving allocation and distribution

================================================================================
ALGORITHM
================================================================================

Work in integer units of the amount's smallest scale step (cents for
10.00 PLN, satoshi for a BTC amount at scale 8):

    1. share_i = units * ratio_i / sum(ratios), truncated toward zero
    2. leftover = units - sum(share_i)
    3. give one unit (with the sign of leftover) to each part with a non-zero
       ratio, first to last, until leftover is exhausted

Because every truncation loses less than one unit, the leftover is always
smaller than the number of non-zero ratios, so step 3 is a single pass.

    allocate(10.00 PLN, [1, 1, 1])   -> [3.34, 3.33, 3.33]
    allocate(1.00 PLN,  [1, 2, 3])   -> [0.17, 0.33, 0.50]
    distribute(-10.00 PLN, 3)        -> [-3.34, -3.33, -3.33]

INVARIANT: add(*allocate(m, r)) == m and len(allocate(m, r)) == len(r).

================================================================================
"""

from __future__ import annotations
from decimal import Decimal
from fractions import Fraction
from typing import Any, Sequence

from .exceptions import InvalidAmountError
from .money import Money
from .scale import _from_units


__all__ = ["MAX_PARTS", "allocate", "distribute"]


# Maximum parts for a single split (DoS protection)
MAX_PARTS: int = 10_000


def _ratio(value: Any) -> int:
    """Integer-like ratio as int: 2, Decimal('2'), 2.0, Fraction(4, 2)."""
    if isinstance(value, bool):
        raise InvalidAmountError(f"Ratio must be integer-like, got {value!r}", op="allocate", ratio=value)
    if isinstance(value, int):
        number = value
    elif isinstance(value, (Decimal, Fraction, float)):
        if isinstance(value, Decimal) and not value.is_finite():
            raise InvalidAmountError(f"Ratio must be finite, got {value!r}", op="allocate", ratio=value)
        if isinstance(value, float) and not value.is_integer():
            raise InvalidAmountError(f"Ratio must be integer-like, got {value!r}", op="allocate", ratio=value)
        if Fraction(value).denominator != 1:
            raise InvalidAmountError(f"Ratio must be integer-like, got {value!r}", op="allocate", ratio=value)
        number = int(value)
    else:
        raise InvalidAmountError(
            f"Ratio must be integer-like, got {type(value).__name__}",
            op="allocate", ratio=value,
        )
    if number < 0:
        raise InvalidAmountError(f"Ratio must not be negative, got {value!r}", op="allocate", ratio=value)
    return number


def allocate(money: Money, ratios: Sequence[Any]) -> list[Money]:
    """
    Splits `money` into len(ratios) parts proportional to the ratios.

    Args:
        money: amount to split
        ratios: non-empty, non-negative, integer-like, not all zero

    Returns:
        Parts in ratio order, summing exactly to `money`

    Raises:
        InvalidAmountError: on malformed ratios or too many parts
    """
    if not isinstance(money, Money):
        raise InvalidAmountError(
            f"allocate needs a monetary amount, got {type(money).__name__}",
            op="allocate", value=money,
        )
    if isinstance(ratios, (str, bytes)) or not isinstance(ratios, Sequence):
        raise InvalidAmountError("Ratios must be a sequence", op="allocate", ratios=ratios)
    if not ratios:
        raise InvalidAmountError("Ratios must not be empty", op="allocate", ratios=ratios)
    if len(ratios) > MAX_PARTS:
        raise InvalidAmountError(f"Number of parts exceeds the limit of {MAX_PARTS}", op="allocate", parts=len(ratios))

    weights = [_ratio(r) for r in ratios]
    total = sum(weights)
    if total == 0:
        raise InvalidAmountError("Sum of ratios must not be zero", op="allocate", ratios=ratios)

    places = money.scale
    units = money.minor_units
    sign = -1 if units < 0 else 1
    magnitude = abs(units)

    shares = [sign * (magnitude * w // total) for w in weights]
    leftover = units - sum(shares)
    step = 1 if leftover > 0 else -1
    index = 0
    while leftover != 0:
        if weights[index] != 0:
            shares[index] += step
            leftover -= step
        index = (index + 1) % len(shares)

    return [Money(_amount=_from_units(s, places), _currency=money.currency) for s in shares]


def distribute(money: Money, n: int) -> list[Money]:
    """
    Splits `money` into n parts whose sum is exactly `money`.

    Largest parts come first: distribute(1.00 PLN, 3) -> [0.34, 0.33, 0.33].

    Raises:
        InvalidAmountError: if n is not an int, n <= 0 or n > MAX_PARTS
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidAmountError(f"Number of parts must be an int, got {n!r}", op="distribute", parts=n)
    if n <= 0:
        raise InvalidAmountError(f"Number of parts must be > 0, got {n}", op="distribute", parts=n)
    if n > MAX_PARTS:
        raise InvalidAmountError(f"Number of parts exceeds the limit of {MAX_PARTS}", op="distribute", parts=n)
    return allocate(money, [1] * n)
