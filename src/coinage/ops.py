"""
ops.py — Variadic, currency-aware arithmetic and comparison

================================================================================
TYPE SIGNATURES
================================================================================

    add()                    -> Decimal 0
    add(m)                   -> m
    add(m1, m2, ...)         -> Money         same currency id required

    sub(m)                   -> -m
    sub(m1, m2, ...)         -> Money         same currency id required

    mul()                    -> Decimal 1
    mul(n1, n2, ...)         -> Decimal
    mul(..., m, ...)         -> Money         at most ONE Money operand

    div(n)                   -> 1 / n
    div(n1, n2, ...)         -> Decimal
    div(m, n, ...)           -> Money         scale of the dividend
    div(m1, m2)              -> Decimal       same currency, dimensionless
    div(n, m) / div(m)       -> InvalidOperationError

    rem                      mirrors div

================================================================================
ROUNDING
================================================================================

By default a chain is computed exactly and rounded once at the end:

    div(Money.of(1, "GBP"), 8, "0.5")        # 1.00 / 4.0 = 0.25 GBP

Inside `with_rescaling(mode)` every pairwise step is rescaled:

    with with_rescaling(RoundingMode.HALF_UP):
        div(Money.of(1, "GBP"), 8, "0.5")    # 0.13 / 0.5 = 0.26 GBP

Whenever digits must be dropped and no rounding mode is available,
RoundingRequiredError is raised with the operation name and operands.

================================================================================
"""

from __future__ import annotations
from decimal import Decimal
from functools import reduce
from typing import Any, Callable

from .exceptions import CurrencyMismatchError, InvalidOperationError, RoundingRequiredError
from .money import Money
from .scale import (
    EXACT,
    divide,
    divide_to_scale,
    quantize,
    remainder,
    rescale_each,
    to_decimal,
)


__all__ = [
    "add",
    "sub",
    "mul",
    "div",
    "rem",
    "neg",
    "abs_",
    "compare",
    "eq",
    "ne",
    "lt",
    "le",
    "gt",
    "ge",
    "min_",
    "max_",
    "same_currencies",
]


# ==============================================================================
# HELPERS
# ==============================================================================

def _require_money(value: Any, op: str, operands: tuple) -> Money:
    if not isinstance(value, Money):
        raise InvalidOperationError(
            f"Operation not allowed: {op} on {type(value).__name__}. "
            f"Expected a monetary amount.",
            op=op, operands=operands,
        )
    return value


def _require_same(left: Money, right: Money, op: str) -> None:
    if left.currency.id != right.currency.id:
        raise CurrencyMismatchError(left, right, op=op)


def _make(amount: Decimal, like: Money) -> Money:
    return Money(_amount=amount, _currency=like.currency)


def _fit(amount: Decimal, scale: int | None, op: str, operands: tuple) -> Decimal:
    """Rescales to `scale` (None: keep natural scale), tagging failures with `op`."""
    if scale is None:
        return amount
    try:
        return quantize(amount, scale, op=op)
    except RoundingRequiredError as e:
        raise RoundingRequiredError(str(e), op=op, operands=operands, **e.data) from e


def _target_scale(money: Money) -> int | None:
    """Scale results are fitted to: the amount's, or none for auto-scaled currencies."""
    return None if money.currency.is_auto_scaled else money.scale


def same_currencies(*values: Money) -> bool:
    """True when all monetary amounts share one currency id."""
    return len({_require_money(v, "same_currencies", values).currency.id for v in values}) <= 1


# ==============================================================================
# ADDITION / SUBTRACTION
# ==============================================================================

def add(*operands: Money) -> Money | Decimal:
    """Sum of monetary amounts; the result scale follows decimal addition."""
    if not operands:
        return Decimal(0)
    result = _require_money(operands[0], "add", operands)
    for other in operands[1:]:
        _require_money(other, "add", operands)
        _require_same(result, other, "add")
        result = _make(EXACT.add(result.amount, other.amount), result)
    return result


def sub(*operands: Money) -> Money:
    """sub(m) negates; sub(a, b, c) is a - b - c."""
    if not operands:
        raise InvalidOperationError("sub needs at least one operand", op="sub", operands=operands)
    first = _require_money(operands[0], "sub", operands)
    if len(operands) == 1:
        return -first
    result = first
    for other in operands[1:]:
        _require_money(other, "sub", operands)
        _require_same(result, other, "sub")
        result = _make(EXACT.subtract(result.amount, other.amount), result)
    return result


def neg(value: Money | Any) -> Money | Decimal:
    if isinstance(value, Money):
        return -value
    return -to_decimal(value, op="neg")


def abs_(value: Money | Any) -> Money | Decimal:
    if isinstance(value, Money):
        return abs(value)
    return abs(to_decimal(value, op="abs"))


# ==============================================================================
# MULTIPLICATION
# ==============================================================================

def _product(values: list[Any], op: str) -> Decimal:
    return reduce(EXACT.multiply, (to_decimal(v, op=op) for v in values), Decimal(1))


def mul(*operands: Any) -> Money | Decimal:
    """
    Product of numbers, with at most one monetary amount anywhere in the chain.

    With a Money operand of a fixed-scale currency the result keeps that
    amount's scale: rounded once at the end, or after every step inside
    `with_rescaling()`.
    """
    if not operands:
        return Decimal(1)

    moneys = [x for x in operands if isinstance(x, Money)]
    if len(moneys) > 1:
        raise InvalidOperationError(
            "Cannot multiply two monetary amounts",
            op="mul", operands=operands,
        )
    if not moneys:
        if len(operands) == 1:
            return to_decimal(operands[0], op="mul")
        return _product(list(operands), "mul")

    money = moneys[0]
    if len(operands) == 1:
        return money
    target = _target_scale(money)

    if not rescale_each():
        factors = [x for x in operands if x is not money]
        product = EXACT.multiply(money.amount, _product(factors, "mul"))
        return _make(_fit(product, target, "mul", operands), money)

    # Numbers before the Money multiply exactly; from the Money on, each step is fitted
    index = next(i for i, x in enumerate(operands) if x is money)
    amount = EXACT.multiply(money.amount, _product(list(operands[:index]), "mul"))
    amount = _fit(amount, target, "mul", operands)
    for factor in operands[index + 1:]:
        amount = EXACT.multiply(amount, to_decimal(factor, op="mul"))
        amount = _fit(amount, target, "mul", operands)
    return _make(amount, money)


# ==============================================================================
# DIVISION / REMAINDER
# ==============================================================================

def _check_division_shape(operands: tuple, op: str) -> None:
    if not operands:
        raise InvalidOperationError(f"{op} needs at least one operand", op=op, operands=operands)
    first, rest = operands[0], operands[1:]
    if not rest and isinstance(first, Money):
        raise InvalidOperationError(
            f"Cannot {op} a number by a monetary amount (unary {op} on Money)",
            op=op, operands=operands,
        )
    money_divisors = [d for d in rest if isinstance(d, Money)]
    if money_divisors and not isinstance(first, Money):
        raise InvalidOperationError(
            f"Cannot {op} a number by a monetary amount",
            op=op, operands=operands,
        )
    if len(money_divisors) > 1:
        raise InvalidOperationError(
            f"Cannot {op} a number by a monetary amount (more than one monetary divisor)",
            op=op, operands=operands,
        )
    for divisor in money_divisors:
        _require_same(first, divisor, op)


def _amount(value: Any, op: str) -> Decimal:
    return value.amount if isinstance(value, Money) else to_decimal(value, op=op)


def div(*operands: Any) -> Money | Decimal:
    """
    Division chain.

    Money ÷ numbers keeps the dividend's scale (rounding needed when the exact
    quotient does not fit). Money ÷ Money of the same currency gives a
    dimensionless Decimal.
    """
    _check_division_shape(operands, "div")
    first, divisors = operands[0], operands[1:]

    if not divisors:
        return divide(Decimal(1), to_decimal(first, op="div"), op="div")

    if not isinstance(first, Money):
        if rescale_each():
            return reduce(
                lambda acc, d: divide(acc, to_decimal(d, op="div"), op="div"),
                divisors, to_decimal(first, op="div"),
            )
        return divide(to_decimal(first, op="div"), _product(list(divisors), "div"), op="div")

    target = _target_scale(first)

    if not rescale_each():
        denominator = reduce(EXACT.multiply, (_amount(d, "div") for d in divisors), Decimal(1))
        if any(isinstance(d, Money) for d in divisors) or target is None:
            quotient = _quotient(first.amount, denominator, None, operands)
        else:
            quotient = _quotient(first.amount, denominator, target, operands)
        if any(isinstance(d, Money) for d in divisors):
            return quotient
        return _make(quotient, first)

    acc: Money | Decimal = first
    for divisor in divisors:
        if isinstance(acc, Money):
            if isinstance(divisor, Money):
                acc = _quotient(acc.amount, divisor.amount, None, operands)
            else:
                acc = _make(_quotient(acc.amount, to_decimal(divisor, op="div"), target, operands), first)
        else:
            acc = _quotient(acc, to_decimal(divisor, op="div"), None, operands)
    return acc


def _quotient(dividend: Decimal, divisor: Decimal, scale: int | None, operands: tuple) -> Decimal:
    try:
        if scale is None:
            return divide(dividend, divisor, op="div")
        return divide_to_scale(dividend, divisor, scale, op="div")
    except RoundingRequiredError as e:
        raise RoundingRequiredError(str(e), op="div", operands=operands, **e.data) from e


def rem(*operands: Any) -> Money | Decimal:
    """
    Remainder chain with the same type signature as div(). Remainders are
    exact; a Money result is fitted back to the dividend's scale.
    """
    _check_division_shape(operands, "rem")
    first, divisors = operands[0], operands[1:]

    if not divisors:
        return remainder(Decimal(1), to_decimal(first, op="rem"), op="rem")

    if not isinstance(first, Money):
        return reduce(
            lambda acc, d: remainder(acc, to_decimal(d, op="rem"), op="rem"),
            divisors, to_decimal(first, op="rem"),
        )

    target = _target_scale(first)
    each = rescale_each()
    acc: Money | Decimal = first
    for divisor in divisors:
        if isinstance(acc, Money):
            if isinstance(divisor, Money):
                acc = remainder(acc.amount, divisor.amount, op="rem")
            else:
                value = remainder(acc.amount, to_decimal(divisor, op="rem"), op="rem")
                acc = _make(_fit(value, target, "rem", operands) if each else value, first)
        else:
            acc = remainder(acc, to_decimal(divisor, op="rem"), op="rem")

    if isinstance(acc, Money) and not each:
        acc = _make(_fit(acc.amount, target, "rem", operands), first)
    return acc


# ==============================================================================
# COMPARISON
# ==============================================================================

def compare(a: Any, b: Any) -> int:
    """
    -1, 0 or 1. None sorts lowest. Monetary amounts must share a currency id;
    comparing Money with a plain number is an InvalidOperationError.
    """
    if a is None or b is None:
        return (a is not None) - (b is not None)
    if isinstance(a, Money) and isinstance(b, Money):
        _require_same(a, b, "compare")
        x, y = a.amount, b.amount
    elif isinstance(a, Money) or isinstance(b, Money):
        raise InvalidOperationError(
            f"Cannot compare {type(a).__name__} with {type(b).__name__}",
            op="compare", operands=(a, b),
        )
    else:
        x, y = to_decimal(a, op="compare"), to_decimal(b, op="compare")
    return (x > y) - (x < y)


def _chain(test: Callable[[int], bool], operands: tuple) -> bool:
    return all(test(compare(a, b)) for a, b in zip(operands, operands[1:]))


def eq(*operands: Any) -> bool:
    """Numerically equal (scale-insensitive): eq(1.0 EUR, 1.00 EUR) is True."""
    return _chain(lambda c: c == 0, operands)


def ne(*operands: Any) -> bool:
    return not eq(*operands)


def lt(*operands: Any) -> bool:
    """Strictly increasing."""
    return _chain(lambda c: c < 0, operands)


def le(*operands: Any) -> bool:
    return _chain(lambda c: c <= 0, operands)


def gt(*operands: Any) -> bool:
    return _chain(lambda c: c > 0, operands)


def ge(*operands: Any) -> bool:
    return _chain(lambda c: c >= 0, operands)


def min_(first: Money, *rest: Money) -> Money:
    return reduce(lambda a, b: b if compare(b, a) < 0 else a, rest, first)


def max_(first: Money, *rest: Money) -> Money:
    return reduce(lambda a, b: b if compare(b, a) > 0 else a, rest, first)
