"""
test_exceptions.py — Error taxonomy and structured context
"""

import pytest

from coinage import (
    ConfigurationError,
    Currency,
    CurrencyMismatchError,
    CurrencyNotFoundError,
    DivisionByZeroError,
    InvalidAmountError,
    InvalidOperationError,
    Money,
    MoneyError,
    RoundingRequiredError,
)
from coinage.ops import div, mul


EUR = Currency.new("EUR", 978, 2, "iso/fiat")
USD = Currency.new("USD", 840, 2, "iso/fiat")


class TestTaxonomy:

    @pytest.mark.parametrize("error, builtin", [
        (CurrencyNotFoundError, LookupError),
        (CurrencyMismatchError, TypeError),
        (InvalidOperationError, TypeError),
        (RoundingRequiredError, ArithmeticError),
        (DivisionByZeroError, ZeroDivisionError),
        (ConfigurationError, ValueError),
        (InvalidAmountError, ValueError),
    ])
    def test_builtin_bases(self, error, builtin):
        assert issubclass(error, MoneyError)
        assert issubclass(error, builtin)


class TestContext:

    def test_mismatch_names_both_currencies(self):
        with pytest.raises(CurrencyMismatchError) as exc:
            Money.of(1, EUR) - Money.of(1, USD)
        assert "EUR" in str(exc.value) and "USD" in str(exc.value)
        assert exc.value.op == "sub"
        assert exc.value.data["left"] == Money.of(1, EUR)

    def test_rounding_carries_operands(self):
        m = Money.of(1, EUR)
        with pytest.raises(RoundingRequiredError) as exc:
            div(m, 3)
        assert exc.value.op == "div"
        assert exc.value.data["operands"] == (m, 3)
        assert exc.value.__cause__ is not None

    def test_shape_error_carries_operands(self):
        m = Money.of(1, EUR)
        with pytest.raises(InvalidOperationError) as exc:
            mul(m, m)
        assert exc.value.data["operands"] == (m, m)

    def test_not_found_carries_hint(self, small_registry):
        from coinage import unit
        with pytest.raises(CurrencyNotFoundError) as exc:
            unit("crypto/NOPE", small_registry)
        assert exc.value.hint == "crypto/NOPE"
        assert exc.value.data["registry_version"] == "test"

    def test_division_by_zero_context(self):
        with pytest.raises(DivisionByZeroError) as exc:
            div(Money.of(1, EUR), 0)
        assert exc.value.data["divisor"] == 0

    def test_single_handler_catches_everything(self):
        failures = [
            lambda: Money.of(1, EUR) + Money.of(1, USD),
            lambda: Money.of("x", EUR),
            lambda: Money.of("0.001", EUR),
            lambda: div(Money.of(1, EUR), 0),
            lambda: Currency.new("EUR", scale=-3),
        ]
        for failure in failures:
            with pytest.raises(MoneyError):
                failure()


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
