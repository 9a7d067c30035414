"""
scale.py — Exact decimal coercion, scaling and the ambient rounding context

================================================================================
DESIGN PRINCIPLES
================================================================================

1. EXACT BY DEFAULT
   Every input is coerced to decimal.Decimal before any arithmetic.
   Floats go through their shortest repr, never through binary expansion.

2. NO SILENT ROUNDING
   When a value must lose digits to fit a scale, a rounding mode has to come
   from an explicit argument or from the ambient context. Otherwise
   RoundingRequiredError is raised.

3. CALL-SCOPED CONTEXT
   The default rounding mode and the rescale-each-step flag live in
   contextvars. `with_rounding` and `with_rescaling` bind them for the body of
   a `with` block and always restore the previous values on exit, so threads
   and tasks with different settings never see each other's bindings.

================================================================================
SCALE
================================================================================

The scale of a decimal is the number of digits after the point:

    scale_of(Decimal("1.50"))  == 2
    scale_of(Decimal("1E+2"))  == -2

Currencies and Money register their own `scale_of` / `apply_scale` behaviour
(see currency.py and money.py).

================================================================================
"""

from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from decimal import Decimal, Context, Inexact, DivisionByZero, InvalidOperation, MAX_PREC, MAX_EMAX, MIN_EMIN
import decimal
from enum import Enum
from fractions import Fraction
from functools import singledispatch
from typing import Callable, Iterator
import math

from .exceptions import (
    ConfigurationError,
    DivisionByZeroError,
    InvalidAmountError,
    RoundingRequiredError,
)


__all__ = [
    "RoundingMode",
    "rounding_mode",
    "rescale_each",
    "with_rounding",
    "with_rescaling",
    "to_decimal",
    "scale_of",
    "apply_scale",
    "divide",
    "divide_to_scale",
    "remainder",
    "div_precision",
]


# Exact context for addition, subtraction, multiplication and scaleb:
# those never need rounding when the precision is unbounded.
EXACT = Context(
    prec=MAX_PREC,
    Emax=MAX_EMAX,
    Emin=MIN_EMIN,
    traps=[InvalidOperation, DivisionByZero],
)


# ==============================================================================
# ROUNDING STRATEGIES
# ==============================================================================

class RoundingMode(Enum):
    """
    Rounding strategies.

    - HALF_UP: commercial rounding (0.5 -> 1)
    - HALF_EVEN: banker's rounding, minimizes statistical bias
    - HALF_DOWN: 0.5 -> 0
    - UP: always away from zero
    - DOWN: always toward zero (truncation)
    - CEILING: toward positive infinity
    - FLOOR: toward negative infinity
    - UNNECESSARY: asserts that no rounding is needed, fails otherwise
    """
    HALF_UP = "half_up"
    HALF_EVEN = "half_even"
    HALF_DOWN = "half_down"
    UP = "up"
    DOWN = "down"
    CEILING = "ceiling"
    FLOOR = "floor"
    UNNECESSARY = "unnecessary"

    @classmethod
    def parse(cls, value: RoundingMode | str | None) -> RoundingMode | None:
        """
        Accepts a RoundingMode, its name or value in any case, or a decimal
        module constant such as ``decimal.ROUND_HALF_UP``. None stays None.
        """
        if value is None or isinstance(value, RoundingMode):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key.startswith("round_"):
                key = key[len("round_"):]
            key = key.replace("-", "_")
            for mode in cls:
                if mode.value == key:
                    return mode
        raise ConfigurationError(f"Unknown rounding mode: {value!r}", op="rounding", value=value)

    @property
    def decimal_constant(self) -> str | None:
        """The matching decimal module constant (None for UNNECESSARY)."""
        if self is RoundingMode.UNNECESSARY:
            return None
        return getattr(decimal, "ROUND_" + self.name)


def _round_fraction(value: Fraction, mode: RoundingMode) -> int:
    """Rounds an exact rational to an integer with the given strategy."""

    magnitude = abs(value)
    floor = magnitude.numerator // magnitude.denominator
    rest = magnitude - floor
    negative = value < 0

    if rest == 0:
        return -floor if negative else floor

    half = Fraction(1, 2)

    def _half_up() -> int:
        return floor + 1 if rest >= half else floor

    def _half_down() -> int:
        return floor + 1 if rest > half else floor

    def _half_even() -> int:
        if rest == half:
            return floor + (floor % 2)
        return floor + 1 if rest > half else floor

    def _up() -> int:
        return floor + 1

    def _down() -> int:
        return floor

    def _ceiling() -> int:
        return floor if negative else floor + 1

    def _floor() -> int:
        return floor + 1 if negative else floor

    strategies: dict[RoundingMode, Callable[[], int]] = {
        RoundingMode.HALF_UP: _half_up,
        RoundingMode.HALF_EVEN: _half_even,
        RoundingMode.HALF_DOWN: _half_down,
        RoundingMode.UP: _up,
        RoundingMode.DOWN: _down,
        RoundingMode.CEILING: _ceiling,
        RoundingMode.FLOOR: _floor,
    }

    strategy = strategies.get(mode)
    if strategy is None:
        raise RoundingRequiredError(
            f"Rounding necessary for {value} but rounding mode is {mode}",
            op="round", value=value, rounding=mode,
        )

    result = strategy()
    return -result if negative else result


# ==============================================================================
# AMBIENT CONTEXT
# ==============================================================================

_rounding_mode: ContextVar[RoundingMode | None] = ContextVar("coinage_rounding_mode", default=None)
_rescale_each: ContextVar[bool] = ContextVar("coinage_rescale_each", default=False)


def rounding_mode() -> RoundingMode | None:
    """Rounding mode bound in the current context, or None."""
    return _rounding_mode.get()


def rescale_each() -> bool:
    """True when variadic operations must rescale after every step."""
    return _rescale_each.get()


@contextmanager
def with_rounding(mode: RoundingMode | str | None) -> Iterator[RoundingMode | None]:
    """
    Binds the fallback rounding mode for the body of the block.

        with with_rounding(RoundingMode.HALF_UP):
            div(Money.of(1, "GBP"), 3)    # 0.33 GBP
    """
    token = _rounding_mode.set(RoundingMode.parse(mode))
    try:
        yield _rounding_mode.get()
    finally:
        _rounding_mode.reset(token)


@contextmanager
def with_rescaling(mode: RoundingMode | str | None = None) -> Iterator[RoundingMode | None]:
    """
    Makes variadic mul/div chains rescale after every pairwise step.

    When `mode` is given it is also bound as the rounding mode; otherwise the
    current rounding mode stays in effect.
    """
    each_token = _rescale_each.set(True)
    mode_token = _rounding_mode.set(RoundingMode.parse(mode)) if mode is not None else None
    try:
        yield _rounding_mode.get()
    finally:
        if mode_token is not None:
            _rounding_mode.reset(mode_token)
        _rescale_each.reset(each_token)


def effective_rounding(rounding: RoundingMode | str | None = None) -> RoundingMode | None:
    """Explicit rounding when given, the ambient one otherwise."""
    if rounding is not None:
        return RoundingMode.parse(rounding)
    return _rounding_mode.get()


# ==============================================================================
# COERCION
# ==============================================================================

def to_decimal(value: object, *, op: str = "coerce") -> Decimal:
    """
    Coerces a number-like value to an exact Decimal.

    Accepted: int, Decimal, str, float (via shortest repr), Fraction with a
    terminating expansion. Booleans, NaN and infinities are rejected.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Boolean is not an amount: {value!r}", op=op, value=value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip().replace("_", "")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise InvalidAmountError(f"Not a decimal number: {value!r}", op=op, value=value) from None
    elif isinstance(value, Fraction):
        result = _fraction_to_decimal(value, op)
    else:
        raise InvalidAmountError(
            f"Cannot coerce {type(value).__name__} to a decimal amount",
            op=op, value=value,
        )

    if not result.is_finite():
        raise InvalidAmountError(f"Amount must be finite: {value!r}", op=op, value=value)
    return result


def _fraction_to_decimal(value: Fraction, op: str) -> Decimal:
    # Terminating iff the reduced denominator has no prime factors but 2 and 5
    denominator = value.denominator
    twos = fives = 0
    while denominator % 2 == 0:
        denominator //= 2
        twos += 1
    while denominator % 5 == 0:
        denominator //= 5
        fives += 1
    if denominator != 1:
        raise RoundingRequiredError(
            f"Fraction {value} has no exact decimal expansion",
            op=op, value=value,
        )
    digits = max(twos, fives)
    units = value * 10 ** digits
    return _from_units(units.numerator, digits)


def _from_units(units: int, scale: int) -> Decimal:
    """Decimal with the given unscaled value and scale: (1234, 2) -> 12.34."""
    return Decimal(units).scaleb(-scale, context=EXACT)


# ==============================================================================
# SCALE
# ==============================================================================

@singledispatch
def scale_of(value: object) -> int:
    """
    Scale of a value.

    For a number: its natural decimal scale. Currency and Money register
    their own implementations.
    """
    return scale_of_decimal(to_decimal(value, op="scale"))


def scale_of_decimal(value: Decimal) -> int:
    return -value.as_tuple().exponent


@singledispatch
def apply_scale(value: object, scale: int, rounding: RoundingMode | str | None = None):
    """
    Coerces `value` to `scale` decimal places.

    Raises RoundingRequiredError when digits would be dropped and neither
    `rounding` nor the ambient context supplies a rounding mode.
    """
    return quantize(to_decimal(value, op="apply_scale"), scale, rounding)


def quantize(value: Decimal, scale: int, rounding: RoundingMode | str | None = None, *, op: str = "apply_scale") -> Decimal:
    """Exact Decimal at `scale`, rounding only when a mode is available."""
    if isinstance(scale, bool) or not isinstance(scale, int):
        raise ConfigurationError(f"Scale must be an integer, got {scale!r}", op=op, scale=scale)
    if scale_of_decimal(value) <= scale:
        return value.quantize(_from_units(1, scale), context=EXACT)
    return _round_to_scale(Fraction(value), scale, effective_rounding(rounding), op=op, amount=value)


def _round_to_scale(value: Fraction, scale: int, mode: RoundingMode | None, *, op: str, **data) -> Decimal:
    scaled = value * Fraction(10) ** scale
    if scaled.denominator == 1:
        return _from_units(scaled.numerator, scale)
    if mode is None or mode is RoundingMode.UNNECESSARY:
        raise RoundingRequiredError(
            f"Rounding necessary to fit scale {scale} and no rounding mode is set",
            op=op, scale=scale, rounding=mode, **data,
        )
    return _from_units(_round_fraction(scaled, mode), scale)


# ==============================================================================
# DIVISION
# ==============================================================================

def _digits(value: Decimal) -> int:
    return max(len(value.as_tuple().digits), 1)


def div_precision(dividend: Decimal, divisor: Decimal) -> int:
    """
    Significant digits used for a dimensionless quotient.

    Large enough to hold every terminating expansion of dividend/divisor:
    precision(dividend) + ceil(10 * precision(divisor) / 3).
    """
    return _digits(dividend) + math.ceil(10 * _digits(divisor) / 3)


def _check_divisor(dividend: Decimal, divisor: Decimal, op: str) -> None:
    if divisor == 0:
        raise DivisionByZeroError(
            f"Division by zero: {dividend} / {divisor}",
            op=op, dividend=dividend, divisor=divisor,
        )


def divide(dividend: Decimal, divisor: Decimal, rounding: RoundingMode | str | None = None, *, op: str = "div") -> Decimal:
    """
    Dimensionless quotient.

    Exact when the expansion terminates. Otherwise the quotient is rounded to
    `div_precision` significant digits, which requires a rounding mode.
    """
    _check_divisor(dividend, divisor, op)
    mode = effective_rounding(rounding)
    context = Context(
        prec=div_precision(dividend, divisor),
        rounding=(mode.decimal_constant if mode else None) or decimal.ROUND_HALF_EVEN,
        Emax=MAX_EMAX,
        Emin=MIN_EMIN,
        traps=[InvalidOperation, DivisionByZero],
    )
    quotient = context.divide(dividend, divisor)
    if context.flags[Inexact] and (mode is None or mode is RoundingMode.UNNECESSARY):
        raise RoundingRequiredError(
            f"Non-terminating decimal expansion of {dividend} / {divisor} and no rounding mode is set",
            op=op, dividend=dividend, divisor=divisor, rounding=mode,
        )
    return quotient


def divide_to_scale(
    dividend: Decimal,
    divisor: Decimal,
    scale: int,
    rounding: RoundingMode | str | None = None,
    *,
    op: str = "div",
) -> Decimal:
    """Quotient at a fixed scale, rounded once from the exact rational."""
    _check_divisor(dividend, divisor, op)
    exact = Fraction(dividend) / Fraction(divisor)
    return _round_to_scale(
        exact, scale, effective_rounding(rounding),
        op=op, dividend=dividend, divisor=divisor,
    )


def remainder(dividend: Decimal, divisor: Decimal, *, op: str = "rem") -> Decimal:
    """
    Remainder of truncating division; the sign follows the dividend.
    Always exact.
    """
    _check_divisor(dividend, divisor, op)
    return EXACT.remainder(dividend, divisor)
