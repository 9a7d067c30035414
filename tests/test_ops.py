"""
test_ops.py — Variadic arithmetic, division signatures and comparison
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from coinage import (
    Currency,
    CurrencyMismatchError,
    DivisionByZeroError,
    InvalidOperationError,
    Money,
    RoundingMode,
    RoundingRequiredError,
    ops,
    with_rescaling,
    with_rounding,
)
from coinage.ops import add, compare, div, mul, rem, sub


EUR = Currency.new("EUR", 978, 2, "iso/fiat")
USD = Currency.new("USD", 840, 2, "iso/fiat")
GBP = Currency.new("GBP", 826, 2, "iso/fiat")
JPY = Currency.new("JPY", 392, 0, "iso/fiat")
BTC = Currency.new("crypto/BTC", scale=8, kind="virtual/native")
XAU = Currency.new("XAU", 959, None, "iso/metal")


def eur(amount):
    return Money.of(amount, EUR)


# ==============================================================================
# ADDITION / SUBTRACTION
# ==============================================================================

class TestAddSub:

    def test_add_identity(self):
        assert add() == Decimal(0)
        assert add(eur(5)) == eur(5)

    def test_add_many(self):
        assert add(eur("1.10"), eur("2.20"), eur("3.30")) == eur("6.60")

    def test_add_keeps_wider_scale(self):
        total = add(eur(1), eur(1).rescale(4))
        assert total.scale == 4

    def test_add_mismatch(self):
        with pytest.raises(CurrencyMismatchError) as exc:
            add(Money.of(10, EUR), Money.of(5, USD))
        assert exc.value.op == "add"
        assert isinstance(exc.value, TypeError)

    def test_add_number(self):
        with pytest.raises(InvalidOperationError):
            add(eur(1), 1)

    def test_sub(self):
        assert sub(eur(10), eur(3), eur(2)) == eur(5)
        assert sub(eur(10)) == eur(-10)

    def test_sub_empty(self):
        with pytest.raises(InvalidOperationError):
            sub()

    def test_neg_abs_numbers(self):
        assert ops.neg(3) == Decimal(-3)
        assert ops.abs_("-2.5") == Decimal("2.5")
        assert ops.abs_(eur(-2)) == eur(2)


# ==============================================================================
# MULTIPLICATION
# ==============================================================================

class TestMul:

    def test_identity(self):
        assert mul() == Decimal(1)
        assert mul(eur(2)) == eur(2)

    def test_numbers(self):
        assert mul(2, "1.5", Decimal("0.5")) == Decimal("1.5")

    def test_money_anywhere(self):
        assert mul(2, eur(3), 2) == eur(12)

    def test_two_moneys(self):
        with pytest.raises(InvalidOperationError):
            mul(eur(1), 2, eur(1))

    def test_rounds_once(self):
        # 1.00 * 0.333 * 3 = 0.999 -> 1.00
        with with_rounding(RoundingMode.HALF_UP):
            assert mul(eur(1), "0.333", 3) == eur("1.00")

    def test_rescale_each_step(self):
        # 1.00 * 0.333 = 0.333 -> 0.33, then * 3 = 0.99
        with with_rescaling(RoundingMode.HALF_UP):
            assert mul(eur(1), "0.333", 3) == eur("0.99")

    def test_requires_rounding(self):
        with pytest.raises(RoundingRequiredError) as exc:
            mul(eur(1), "0.333")
        assert exc.value.op == "mul"

    def test_auto_scaled_keeps_natural_scale(self):
        m = mul(Money.of("1.5", XAU), "0.25")
        assert m.amount == Decimal("0.375")
        assert m.scale == 3


# ==============================================================================
# DIVISION
# ==============================================================================

class TestDiv:

    def test_rounding_context_sensitivity(self):
        one = Money.of(1, GBP)
        assert div(one, 8, "0.5") == Money.of("0.25", GBP)
        with with_rescaling(RoundingMode.HALF_UP):
            assert div(one, 8, "0.5") == Money.of("0.26", GBP)

    def test_money_by_money_is_dimensionless(self):
        q = div(Money.of(5, BTC), Money.of(2, BTC))
        assert isinstance(q, Decimal)
        assert q == Decimal("2.5")

    def test_money_by_number_is_money(self):
        q = div(Money.of(5, BTC), 2)
        assert isinstance(q, Money)
        assert q == Money.of("2.5", BTC)
        assert q.scale == 8

    def test_number_by_money(self):
        with pytest.raises(InvalidOperationError):
            div(2, Money.of(5, BTC))

    def test_unary_money(self):
        with pytest.raises(InvalidOperationError):
            div(eur(1))

    def test_unary_number(self):
        assert div(8) == Decimal("0.125")
        assert div(Decimal("0.5")) == Decimal(2)

    def test_empty(self):
        with pytest.raises(InvalidOperationError):
            div()

    def test_two_money_divisors(self):
        with pytest.raises(InvalidOperationError):
            div(eur(8), eur(2), eur(2))

    def test_divisor_currency_mismatch(self):
        with pytest.raises(CurrencyMismatchError):
            div(Money.of(1, EUR), Money.of(1, USD))

    def test_money_by_money_then_number(self):
        assert div(eur(10), eur(4), 5) == Decimal("0.5")

    def test_number_chain(self):
        assert div(1, 8, "0.5") == Decimal("0.25")

    def test_number_chain_non_terminating(self):
        with pytest.raises(RoundingRequiredError):
            div(1, 3)
        with with_rounding(RoundingMode.DOWN):
            # 1 + ceil(10 / 3) = 5 significant digits
            assert div(1, 3) == Decimal("0.33333")

    def test_rounds_once_to_dividend_scale(self):
        with with_rounding(RoundingMode.HALF_UP):
            assert div(eur(1), 3) == eur("0.33")
            assert div(eur(2), 3) == eur("0.67")

    def test_keeps_dividend_scale(self):
        assert div(eur(1).rescale(4), 8).amount == Decimal("0.1250")
        assert str(div(eur(1).rescale(4), 8).amount) == "0.1250"

    def test_zero_scale_currency(self):
        with pytest.raises(RoundingRequiredError):
            div(Money.of(5, JPY), 2)
        with with_rounding(RoundingMode.HALF_EVEN):
            assert div(Money.of(5, JPY), 2) == Money.of(2, JPY)

    def test_auto_scaled(self):
        assert div(Money.of(1, XAU), 8) == Money.of("0.125", XAU)

    def test_division_by_zero(self):
        with pytest.raises(DivisionByZeroError):
            div(eur(1), 0)
        with pytest.raises(ZeroDivisionError):
            div(eur(1), eur(0))


class TestRem:

    def test_money_by_number(self):
        assert rem(eur("10.50"), 3) == eur("1.50")

    def test_money_by_money(self):
        r = rem(eur(10), eur(3))
        assert isinstance(r, Decimal)
        assert r == Decimal(1)

    def test_numbers(self):
        assert rem(10, 4, 3) == Decimal(2)

    def test_sign_follows_dividend(self):
        assert rem(eur(-7), 3) == eur(-1)

    def test_number_by_money(self):
        with pytest.raises(InvalidOperationError):
            rem(10, eur(3))

    def test_zero(self):
        with pytest.raises(DivisionByZeroError):
            rem(eur(1), 0)


# ==============================================================================
# COMPARISON
# ==============================================================================

class TestCompare:

    def test_basic(self):
        assert compare(eur(1), eur(2)) == -1
        assert compare(eur(2), eur(2).rescale(4)) == 0
        assert compare(eur(3), eur(2)) == 1

    def test_none_lowest(self):
        assert compare(None, eur(1)) == -1
        assert compare(eur(1), None) == 1
        assert compare(None, None) == 0

    def test_cross_currency(self):
        with pytest.raises(CurrencyMismatchError):
            compare(Money.of(1, JPY), Money.of(1, EUR))

    def test_money_vs_number(self):
        with pytest.raises(InvalidOperationError):
            compare(eur(1), 1)

    def test_numbers(self):
        assert compare("1.0", 1) == 0
        assert compare(1, 2) == -1

    def test_chains(self):
        assert ops.lt(eur(1), eur(2), eur(3))
        assert not ops.lt(eur(1), eur(3), eur(2))
        assert ops.le(eur(1), eur(1), eur(2))
        assert ops.gt(eur(3), eur(2), eur(1))
        assert ops.ge(eur(3), eur(3), eur(1))
        assert ops.eq(eur(1), eur(1).rescale(3), eur("1.00"))
        assert ops.ne(eur(1), eur(2))

    def test_min_max(self):
        assert ops.min_(eur(3), eur(1), eur(2)) == eur(1)
        assert ops.max_(eur(3), eur(1), eur(2)) == eur(3)

    def test_same_currencies(self):
        assert ops.same_currencies(eur(1), eur(2))
        assert not ops.same_currencies(eur(1), Money.of(1, USD))
        assert ops.same_currencies()


# ==============================================================================
# PROPERTY-BASED TESTS
# ==============================================================================

class TestProperties:

    @given(
        units=st.integers(min_value=-10**9, max_value=10**9),
        divisor=st.sampled_from([1, 2, 4, 5, 8, 10, 16, 20, 25]),
    )
    @settings(max_examples=300)
    def test_div_then_mul_with_exact_divisors(self, units, divisor):
        m = Money.of_minor(units * divisor, EUR)
        assert mul(div(m, divisor), divisor) == m

    @given(
        a=st.integers(min_value=-10**6, max_value=10**6),
        b=st.integers(min_value=1, max_value=10**6),
    )
    @settings(max_examples=300)
    def test_rem_matches_truncated_division(self, a, b):
        m = Money.of_minor(a, EUR)
        d = Money.of_minor(b, EUR)
        r = rem(m, d)
        assert isinstance(r, Decimal)
        assert abs(r) < d.amount
        assert (r == 0) == (a % b == 0)
        assert r == 0 or (r > 0) == (a > 0)

    @given(values=st.lists(st.integers(min_value=-10**6, max_value=10**6), min_size=1, max_size=20))
    @settings(max_examples=200)
    def test_add_matches_integer_sum(self, values):
        total = add(*[Money.of_minor(v, EUR) for v in values])
        assert total.minor_units == sum(values)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
