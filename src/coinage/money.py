"""
money.py — Monetary amount: a Currency paired with an exact Decimal

================================================================================
DESIGN PRINCIPLES
================================================================================

1. INTERNAL REPRESENTATION
   decimal.Decimal amount + Currency. Never floating point internally:
   floats are converted through their shortest repr before anything else.

2. TYPE SAFETY
   Operations across different currency ids raise CurrencyMismatchError
   (a TypeError). Money × Money, number ÷ Money and unary division of Money
   raise InvalidOperationError (also a TypeError).

3. IMMUTABILITY
   Frozen dataclass. Every operation returns a new instance.

4. VARIABLE PRECISION
   Construction fits the amount to the currency's nominal scale (EUR=2,
   JPY=0, KWD=3). The amount may later be rescaled to any other scale:
   that is legal, and rescale() with no argument brings it back.
   Auto-scaled currencies (XAU, XXX, ...) keep whatever scale the amount has.

5. EXPLICIT ROUNDING
   No implicit rounding. When digits must be dropped, the mode comes from an
   argument or from `with_rounding(...)`; otherwise RoundingRequiredError.

================================================================================
QUICK START
================================================================================

    from coinage import Money, RoundingMode

    price = Money.of("19.99", "EUR")
    total = price * 3                       # 59.97 EUR
    parts = Money.of(100, "EUR").distribute(3)
    # [33.34 EUR, 33.33 EUR, 33.33 EUR]

    Money.of("0.125", "EUR", RoundingMode.HALF_UP)   # 0.13 EUR

================================================================================
"""

from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterator, Sequence

from .currency import Currency
from .exceptions import CurrencyNotFoundError, InvalidAmountError
from .resolve import UNSET, unit
from . import scale as scale_mod
from .scale import RoundingMode, quantize, scale_of_decimal, to_decimal, _from_units


__all__ = ["Money", "with_currency", "default_currency"]


_default_currency: ContextVar[Any] = ContextVar("coinage_default_currency", default=None)


def default_currency() -> Any:
    """Currency hint bound with `with_currency`, or None."""
    return _default_currency.get()


@contextmanager
def with_currency(currency: Any) -> Iterator[Any]:
    """
    Binds a default currency for Money.of() calls that omit one.

        with with_currency("PLN"):
            Money.of(10)    # 10.00 PLN
    """
    token = _default_currency.set(currency)
    try:
        yield currency
    finally:
        _default_currency.reset(token)


# ==============================================================================
# MONEY CLASS
# ==============================================================================

@dataclass(frozen=True, slots=True, order=False)
class Money:
    """
    Domain primitive for monetary amounts.

    INVARIANTS:
    1. _amount is always a finite Decimal (no floating point)
    2. _currency is always a Currency
    3. operations across different currency ids raise
    4. distribute(n) / allocate(r) preserve the sum exactly

    USAGE:
        budget = Money.of(2026, "EUR")
        monthly = budget.distribute(12)
        # add(*monthly) == budget (guaranteed)

    SERIALIZATION:
        to_dict() gives {"amount": "2026.00", "currency": "EUR"}.
        from_dict() resolves the currency through the registry; it never
        fabricates one. The amount is always a string, never a float.
    """
    _amount: Decimal
    _currency: Currency

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def of(
        cls,
        amount: Any,
        currency: Any = None,
        rounding: RoundingMode | str | None = None,
        *,
        registry: Any = UNSET,
    ) -> Money | None:
        """
        Money from an amount and a currency hint.

        The hint goes through the resolution engine (a Currency object is
        used as is unless a registry is passed). The amount is coerced to an
        exact Decimal and fitted to the currency's nominal scale, which needs a
        rounding mode when digits would be dropped.

        A None or blank amount gives None. A missing currency falls back to
        `with_currency(...)`; without one CurrencyNotFoundError is raised.
        """
        if amount is None or (isinstance(amount, str) and not amount.strip()):
            return None
        if isinstance(amount, Money):
            amount = amount.amount
        if currency is None:
            currency = _default_currency.get()
            if currency is None:
                raise CurrencyNotFoundError(None, op="money", amount=amount)
        resolved = unit(currency, registry)
        return cls._fit(to_decimal(amount, op="money"), resolved, rounding)

    @classmethod
    def _fit(cls, amount: Decimal, currency: Currency, rounding: RoundingMode | str | None = None) -> Money:
        if not currency.is_auto_scaled:
            amount = quantize(amount, currency.scale, rounding, op="money")
        return cls(_amount=amount, _currency=currency)

    @classmethod
    def ad_hoc(cls, amount: Any, currency: Currency, rounding: RoundingMode | str | None = None) -> Money:
        """Money for a Currency object that is not looked up anywhere."""
        if not isinstance(currency, Currency):
            raise CurrencyNotFoundError(currency, op="ad_hoc")
        return cls._fit(to_decimal(amount, op="money"), currency, rounding)

    @classmethod
    def of_minor(cls, minor_units: int, currency: Any, *, registry: Any = UNSET) -> Money:
        """
        Money from minor units (cents, satoshi, ...). Auto-scaled currencies
        have no minor unit, so the value is taken as whole units.
        """
        if isinstance(minor_units, bool) or not isinstance(minor_units, int):
            raise InvalidAmountError(
                f"Minor units must be an int, got {type(minor_units).__name__}",
                op="of_minor", value=minor_units,
            )
        resolved = unit(currency, registry)
        places = 0 if resolved.is_auto_scaled else resolved.scale
        return cls(_amount=_from_units(minor_units, places), _currency=resolved)

    @classmethod
    def zero(cls, currency: Any, *, registry: Any = UNSET) -> Money:
        """Zero in a given currency. Handy as a starting value for sums."""
        return cls.of_minor(0, currency, registry=registry)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def amount(self) -> Decimal:
        return self._amount

    @property
    def currency(self) -> Currency:
        return self._currency

    @property
    def scale(self) -> int:
        """Current scale of the amount (may differ from the currency's)."""
        return scale_of_decimal(self._amount)

    @property
    def minor_units(self) -> int:
        """Unscaled integer value at the amount's scale: 12.34 EUR -> 1234."""
        return int(self._amount.scaleb(self.scale, context=scale_mod.EXACT))

    @property
    def major_units(self) -> int:
        """Integer part, truncated toward zero: -12.34 EUR -> -12."""
        return int(self._amount)

    def is_positive(self) -> bool:
        return self._amount > 0

    def is_negative(self) -> bool:
        return self._amount < 0

    def is_zero(self) -> bool:
        return self._amount == 0

    # -------------------------------------------------------------------------
    # Scale
    # -------------------------------------------------------------------------

    def rescale(self, scale: int | None = None, rounding: RoundingMode | str | None = None) -> Money:
        """
        Amount at another scale.

        Without `scale`, goes back to the currency's nominal scale (a no-op for
        auto-scaled currencies).
        """
        if scale is None:
            if self._currency.is_auto_scaled:
                return self
            scale = self._currency.scale
        return Money(
            _amount=quantize(self._amount, scale, rounding, op="rescale"),
            _currency=self._currency,
        )

    # -------------------------------------------------------------------------
    # Distribution
    # -------------------------------------------------------------------------

    def allocate(self, ratios: Sequence[Any]) -> list[Money]:
        """Splits proportionally to integer ratios; see allocation.allocate."""
        return allocation.allocate(self, ratios)

    def distribute(self, n: int) -> list[Money]:
        """Splits into n parts with an exact sum; see allocation.distribute."""
        return allocation.distribute(self, n)

    # -------------------------------------------------------------------------
    # Arithmetic (type-safe, see ops.py)
    # -------------------------------------------------------------------------

    def __add__(self, other: Money) -> Money:
        return ops.add(self, other)

    def __sub__(self, other: Money) -> Money:
        return ops.sub(self, other)

    def __neg__(self) -> Money:
        return Money(_amount=-self._amount, _currency=self._currency)

    def __abs__(self) -> Money:
        return Money(_amount=abs(self._amount), _currency=self._currency)

    def __mul__(self, factor: Any) -> Money:
        return ops.mul(self, factor)

    def __rmul__(self, factor: Any) -> Money:
        return ops.mul(factor, self)

    def __truediv__(self, divisor: Any) -> Money | Decimal:
        return ops.div(self, divisor)

    def __rtruediv__(self, dividend: Any) -> Money:
        return ops.div(dividend, self)

    def __mod__(self, divisor: Any) -> Money | Decimal:
        return ops.rem(self, divisor)

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Money):
            return (
                self._amount == other._amount
                and self._currency.id == other._currency.id
            )
        return NotImplemented

    def __lt__(self, other: Money) -> bool:
        return ops.compare(self, other) < 0

    def __le__(self, other: Money) -> bool:
        return ops.compare(self, other) <= 0

    def __gt__(self, other: Money) -> bool:
        return ops.compare(self, other) > 0

    def __ge__(self, other: Money) -> bool:
        return ops.compare(self, other) >= 0

    def __hash__(self) -> int:
        return hash((self._amount, self._currency.id))

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def __repr__(self) -> str:
        return f"{self._amount:f} {self._currency.id}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> dict:
        """
        Format: {"amount": str, "currency": str}

        NOTE: never serialize the amount as a float.
        """
        return {"amount": f"{self._amount:f}", "currency": self._currency.id}

    @classmethod
    def from_dict(cls, data: dict, rounding: RoundingMode | str | None = None, *, registry: Any = None) -> Money | None:
        """
        Accepts {"amount": str | int, "currency": str}. The currency is always
        resolved against a registry (the default one when None).
        """
        return cls.of(data.get("amount"), data.get("currency"), rounding, registry=registry)


# ==============================================================================
# SCALABLE
# ==============================================================================

@scale_mod.scale_of.register
def _(value: Money) -> int:
    return value.scale


@scale_mod.apply_scale.register
def _(value: Money, scale: int, rounding=None) -> Money:
    return value.rescale(scale, rounding)


from . import allocation, ops  # noqa: E402
