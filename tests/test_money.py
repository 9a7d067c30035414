"""
test_money.py — Test suite for the Money domain primitive

================================================================================
TEST STRUCTURE
================================================================================

1. UNIT TESTS
   Deterministic checks for specific cases and edge cases.

2. PROPERTY-BASED TESTS (Hypothesis)
   Properties that must hold for ANY input. Hypothesis generates many random
   cases looking for a counterexample.

3. INVARIANT TESTS
   Checks that the invariants declared on the Money class really hold.

================================================================================
"""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from coinage import (
    Currency,
    CurrencyMismatchError,
    CurrencyNotFoundError,
    InvalidAmountError,
    InvalidOperationError,
    Money,
    RoundingMode,
    RoundingRequiredError,
    apply_scale,
    scale_of,
    with_currency,
    with_rounding,
)


EUR = Currency.new("EUR", 978, 2, "iso/fiat")
USD = Currency.new("USD", 840, 2, "iso/fiat")
JPY = Currency.new("JPY", 392, 0, "iso/fiat")
KWD = Currency.new("KWD", 414, 3, "iso/fiat")
BTC = Currency.new("crypto/BTC", scale=8, kind="virtual/native")
XAU = Currency.new("XAU", 959, None, "iso/metal")


# ==============================================================================
# TEST HELPERS
# ==============================================================================

@st.composite
def money_strategy(draw, currency=None, min_value=-10_000_00, max_value=10_000_00):
    """Random Money for property testing."""
    if currency is None:
        currency = draw(st.sampled_from([EUR, USD, JPY, KWD, BTC]))
    minor_units = draw(st.integers(min_value=min_value, max_value=max_value))
    return Money.of_minor(minor_units, currency)


# ==============================================================================
# UNIT TESTS: Constructors
# ==============================================================================

class TestConstructors:

    def test_of_fits_nominal_scale(self):
        m = Money.of(100, EUR)
        assert m.amount == Decimal("100")
        assert str(m.amount) == "100.00"
        assert m.minor_units == 10000

    def test_of_zero_scale(self):
        assert str(Money.of(5, JPY).amount) == "5"

    def test_of_three_places(self):
        assert Money.of("1.5", KWD).minor_units == 1500

    def test_of_requires_rounding(self):
        with pytest.raises(RoundingRequiredError):
            Money.of("0.125", EUR)

    def test_of_explicit_rounding(self):
        assert Money.of("0.125", EUR, RoundingMode.HALF_UP).amount == Decimal("0.13")
        assert Money.of("0.125", EUR, "half_even").amount == Decimal("0.12")

    def test_of_ambient_rounding(self):
        with with_rounding(RoundingMode.DOWN):
            assert Money.of("0.129", EUR).amount == Decimal("0.12")

    def test_of_float(self):
        assert Money.of(0.1, EUR).amount == Decimal("0.10")

    def test_of_none_amount(self):
        assert Money.of(None, EUR) is None

    @pytest.mark.parametrize("amount", ["", "   "])
    def test_of_blank_amount(self, amount):
        assert Money.of(amount, EUR) is None

    def test_of_bad_amount(self):
        with pytest.raises(InvalidAmountError):
            Money.of("ten", EUR)

    def test_of_without_currency(self):
        with pytest.raises(CurrencyNotFoundError):
            Money.of(10)

    def test_of_default_currency(self):
        with with_currency(EUR):
            assert Money.of(10) == Money.of(10, EUR)
        with pytest.raises(CurrencyNotFoundError):
            Money.of(10)

    def test_auto_scaled_keeps_scale(self):
        m = Money.of("1.23456", XAU)
        assert m.scale == 5
        assert Money.of(2, XAU).scale == 0

    def test_of_minor(self):
        assert Money.of_minor(1234, EUR).amount == Decimal("12.34")
        assert Money.of_minor(1, BTC).amount == Decimal("0.00000001")
        assert Money.of_minor(5, XAU).amount == Decimal(5)

    def test_of_minor_rejects_non_int(self):
        with pytest.raises(InvalidAmountError):
            Money.of_minor(12.5, EUR)

    def test_zero(self):
        z = Money.zero(EUR)
        assert z.is_zero()
        assert str(z.amount) == "0.00"

    def test_ad_hoc(self):
        local = Currency.new("points/GOLD", scale=0)
        assert Money.ad_hoc(3, local).currency is local
        with pytest.raises(CurrencyNotFoundError):
            Money.ad_hoc(3, "points/GOLD")


class TestRegistryBacked:

    def test_of_code(self, default_registry):
        m = Money.of("1.5", "eur")
        assert m.currency == default_registry.get("EUR")
        assert str(m) == "1.50 EUR"

    def test_of_numeric(self, default_registry):
        assert Money.of(1, 985).currency.id == "PLN"

    def test_of_bare_code_follows_weight(self, default_registry):
        assert Money.of(1, "BTC").currency.id == "crypto/BTC"
        assert Money.of(1, "AAA").currency.id == "crypto/AAA"

    def test_of_unknown(self, default_registry):
        with pytest.raises(CurrencyNotFoundError):
            Money.of(1, "ZZZ")
        with pytest.raises(CurrencyNotFoundError):
            Money.of(1, 4242)

    def test_explicit_registry(self, small_registry):
        assert Money.of(1, "JPY", registry=small_registry).scale == 0

    def test_currency_checked_against_registry(self, small_registry):
        stale = Currency.new("EUR", 978, 3, "iso/fiat")
        with pytest.raises(CurrencyNotFoundError):
            Money.of(1, stale, registry=small_registry)

    def test_default_currency_resolved(self, default_registry):
        with with_currency("PLN"):
            assert Money.of(10).currency.id == "PLN"


# ==============================================================================
# UNIT TESTS: Properties and scale
# ==============================================================================

class TestProperties:

    def test_minor_and_major_units(self):
        m = Money.of("-12.34", EUR)
        assert m.minor_units == -1234
        assert m.major_units == -12

    def test_signs(self):
        assert Money.of(1, EUR).is_positive()
        assert Money.of(-1, EUR).is_negative()
        assert Money.of(0, EUR).is_zero()

    def test_rescale(self):
        m = Money.of("1.25", EUR)
        assert str(m.rescale(4).amount) == "1.2500"
        assert m.rescale(4).rescale() == m
        assert str(m.rescale(4).rescale().amount) == "1.25"

    def test_rescale_down_needs_rounding(self):
        m = Money.of("1.25", EUR)
        with pytest.raises(RoundingRequiredError):
            m.rescale(1)
        assert m.rescale(1, RoundingMode.HALF_EVEN).amount == Decimal("1.2")

    def test_rescale_auto_scaled_is_noop(self):
        m = Money.of("1.234", XAU)
        assert m.rescale() is m

    def test_scalable(self):
        m = Money.of("1.25", EUR)
        assert scale_of(m) == 2
        assert scale_of(apply_scale(m, 5)) == 5


# ==============================================================================
# UNIT TESTS: Arithmetic and comparison operators
# ==============================================================================

class TestOperators:

    def test_add_sub(self):
        a, b = Money.of("10.50", EUR), Money.of("0.75", EUR)
        assert a + b == Money.of("11.25", EUR)
        assert a - b == Money.of("9.75", EUR)

    def test_neg_abs(self):
        m = Money.of("-3", EUR)
        assert -m == Money.of(3, EUR)
        assert abs(m) == Money.of(3, EUR)

    def test_mul(self):
        m = Money.of("19.99", EUR)
        assert m * 3 == Money.of("59.97", EUR)
        assert 3 * m == Money.of("59.97", EUR)

    def test_mul_money_by_money(self):
        with pytest.raises(InvalidOperationError):
            Money.of(1, EUR) * Money.of(1, EUR)

    def test_truediv(self):
        assert Money.of(10, EUR) / 4 == Money.of("2.5", EUR)
        assert Money.of(1, EUR) / Money.of(4, EUR) == Decimal("0.25")

    def test_truediv_needs_rounding(self):
        with pytest.raises(RoundingRequiredError):
            Money.of(1, EUR) / 3
        with with_rounding(RoundingMode.HALF_UP):
            assert Money.of(1, EUR) / 3 == Money.of("0.33", EUR)

    def test_number_divided_by_money(self):
        with pytest.raises(InvalidOperationError):
            2 / Money.of(1, EUR)

    def test_mod(self):
        assert Money.of(10, EUR) % 3 == Money.of(1, EUR)

    def test_cross_currency(self):
        with pytest.raises(CurrencyMismatchError):
            Money.of(1, EUR) + Money.of(1, USD)
        with pytest.raises(TypeError):
            Money.of(1, EUR) < Money.of(1, USD)

    def test_ordering(self):
        a, b = Money.of(1, EUR), Money.of(2, EUR)
        assert a < b <= b
        assert b > a >= a
        assert sorted([b, a]) == [a, b]

    def test_compare_with_number(self):
        with pytest.raises(InvalidOperationError):
            Money.of(1, EUR) < 2


# ==============================================================================
# UNIT TESTS: Equality, hashing, output
# ==============================================================================

class TestEquality:

    def test_scale_insensitive(self):
        m = Money.of(1, EUR)
        assert m == m.rescale(4)
        assert hash(m) == hash(m.rescale(4))

    def test_same_id_different_fields(self):
        other = Currency.new("EUR", 978, 2, "fiat")
        assert Money.of(1, EUR) == Money.of(1, other)

    def test_different_currency(self):
        assert Money.of(1, EUR) != Money.of(1, USD)

    def test_not_equal_to_number(self):
        assert Money.of(1, EUR) != Decimal(1)

    def test_immutable(self):
        m = Money.of(1, EUR)
        with pytest.raises(FrozenInstanceError):
            m._amount = Decimal(2)


class TestSerialization:

    def test_repr(self):
        assert repr(Money.of("12.3", EUR)) == "12.30 EUR"
        assert str(Money.of("1.5", BTC)) == "1.50000000 crypto/BTC"

    def test_repr_never_uses_exponent(self):
        assert repr(Money.of_minor(1, BTC)) == "0.00000001 crypto/BTC"

    def test_to_dict(self):
        assert Money.of("12.3", EUR).to_dict() == {"amount": "12.30", "currency": "EUR"}

    def test_from_dict(self, default_registry):
        m = Money.from_dict({"amount": "12.30", "currency": "EUR"})
        assert m == Money.of("12.30", EUR)

    def test_from_dict_unknown_currency(self, default_registry):
        with pytest.raises(CurrencyNotFoundError):
            Money.from_dict({"amount": "1", "currency": "ZZZ"})

    def test_from_dict_missing_amount(self, default_registry):
        assert Money.from_dict({"currency": "EUR"}) is None


# ==============================================================================
# PROPERTY-BASED TESTS
# ==============================================================================

class TestArithmeticProperties:

    @given(a=money_strategy(currency=EUR), b=money_strategy(currency=EUR))
    @settings(max_examples=300)
    def test_add_then_sub_roundtrip(self, a, b):
        assert (a + b) - b == a

    @given(a=money_strategy(currency=EUR), b=money_strategy(currency=EUR))
    @settings(max_examples=300)
    def test_addition_commutative(self, a, b):
        assert a + b == b + a

    @given(m=money_strategy(), k=st.integers(min_value=-1000, max_value=1000))
    @settings(max_examples=300)
    def test_integer_multiplication_is_exact(self, m, k):
        assert (m * k).minor_units == m.minor_units * k

    @given(m=money_strategy())
    @settings(max_examples=300)
    def test_minor_units_roundtrip(self, m):
        assert Money.of_minor(m.minor_units, m.currency) == m

    @given(m=money_strategy(), k=st.integers(min_value=0, max_value=12))
    @settings(max_examples=300)
    def test_rescale_roundtrip(self, m, k):
        nominal = m.currency.scale
        k = k if k >= nominal else nominal + k
        back = m.rescale(k).rescale()
        assert back == m
        assert back.scale == nominal


# ==============================================================================
# MAIN (direct run)
# ==============================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
