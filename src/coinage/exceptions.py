"""
exceptions.py — Typed failures for currency and money operations

================================================================================
TAXONOMY
================================================================================

    MoneyError
    ├── CurrencyNotFoundError     strict resolution against a registry failed
    ├── CurrencyMismatchError     arithmetic across different currencies
    ├── InvalidOperationError     Money × Money, number ÷ Money, unary div on Money
    ├── RoundingRequiredError     precision would be lost, no rounding mode set
    ├── DivisionByZeroError       zero divisor
    ├── ConfigurationError        malformed scale, weight, rounding mode, registry data
    └── InvalidAmountError        amount or ratio that cannot become an exact decimal

Every concrete class also derives from the matching builtin (TypeError,
ValueError, LookupError, ArithmeticError, ZeroDivisionError), so callers that
already catch those keep working.

Each error carries the operation name (`op`) and a `data` dict with the
operands or currency ids involved. Nothing here is ever silently swallowed:
soft entry points (resolve_try, defined, present) convert CurrencyNotFoundError
into None/False, every other category always propagates.

================================================================================
"""

from __future__ import annotations
from typing import Any


__all__ = [
    "MoneyError",
    "CurrencyNotFoundError",
    "CurrencyMismatchError",
    "InvalidOperationError",
    "RoundingRequiredError",
    "DivisionByZeroError",
    "ConfigurationError",
    "InvalidAmountError",
]


class MoneyError(Exception):
    """Base class for all coinage failures.

    Attributes
    ----------
    op : str | None
        Name of the operation that failed (``"add"``, ``"unit"``, ...).
    data : dict
        Structured context: operands, currency ids, offending values.
    """

    def __init__(self, message: str, *, op: str | None = None, **data: Any):
        super().__init__(message)
        self.op = op
        self.data = data


class CurrencyNotFoundError(MoneyError, LookupError):
    """Raised when a currency hint cannot be resolved against a registry."""

    def __init__(self, hint: Any, *, op: str | None = None, registry: Any = None, **data: Any):
        super().__init__(
            f"Currency not found: {hint!r}",
            op=op, hint=hint, registry_version=getattr(registry, "version", None), **data,
        )
        self.hint = hint


class CurrencyMismatchError(MoneyError, TypeError):
    """Raised when two monetary amounts of different currencies meet."""

    def __init__(self, left: Any, right: Any, *, op: str | None = None, **data: Any):
        super().__init__(
            f"Different currencies in {op or 'operation'}: {_currency_id(left)} vs {_currency_id(right)}",
            op=op, left=left, right=right, **data,
        )


class InvalidOperationError(MoneyError, TypeError):
    """Raised when operand types do not form a meaningful monetary expression."""


class RoundingRequiredError(MoneyError, ArithmeticError):
    """Raised when an exact result is impossible and no rounding mode is set."""


class DivisionByZeroError(MoneyError, ZeroDivisionError):
    """Raised on division or remainder by zero."""


class ConfigurationError(MoneyError, ValueError):
    """Raised for malformed scale, weight, rounding mode or registry input."""


class InvalidAmountError(MoneyError, ValueError):
    """Raised when a value cannot be coerced to an exact decimal."""


def _currency_id(value: Any) -> Any:
    # Money -> Currency -> id, whichever is available
    currency = getattr(value, "currency", value)
    return getattr(currency, "id", currency)
