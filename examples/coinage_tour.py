#!/usr/bin/env python3
"""
coinage_tour.py — A walk through the registry and money arithmetic

================================================================================
THE PROBLEM
================================================================================

    >>> 2026.0 / 12 * 12
    2025.9999999999998

Floats lose cents. But even exact decimals are not enough once more than one
kind of money is involved: "ETH" may name a crypto asset or a platform token,
BTC has 8 decimals and JPY none, and 1 GBP / 3 has no exact answer at all.

================================================================================
THE APPROACH
================================================================================

    registry   -> which currencies exist and how codes resolve
    Money      -> exact amount + currency, fitted to the currency's scale
    ops        -> arithmetic that refuses to guess (currency, rounding)

================================================================================
"""

import sys
from pathlib import Path

# Run from a checkout without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from coinage import (
    Currency,
    CurrencyMismatchError,
    Money,
    RoundingMode,
    RoundingRequiredError,
    classify,
    ops,
    registry,
    unit,
    with_rescaling,
    with_rounding,
)


def demonstrate_resolution():
    """Loose hints become canonical currencies."""
    print("=" * 60)
    print("RESOLUTION")
    print("=" * 60)
    print()
    for h in ["eur", 978, "BTC", "crypto/USDT", {"code": "ETH"}, "DEM"]:
        print(f"  unit({h!r:<18}) -> {unit(h)}")
    print()
    print(f"  is_iso('EUR')            {classify.is_iso('EUR')}")
    print(f"  is_stable('USDT')        {classify.is_stable('USDT')}")
    print(f"  of_domain('ISO-4217', 'DEM') {classify.of_domain('ISO-4217', 'DEM')}")
    print()


def demonstrate_weights():
    """Colliding codes resolve by weight, and the registry never mutates."""
    print("=" * 60)
    print("WEIGHTED CODES")
    print("=" * 60)
    print()
    before = registry.state()
    platform_eth = Currency.new("platform/ETH", scale=2, kind="virtual", weight=-1)
    after = registry.register(before, platform_eth)

    print(f"  before register: ETH -> {unit('ETH', before)}")
    print(f"  after register:  ETH -> {unit('ETH', after)}")
    print(f"  old registry unchanged: {unit('ETH', before)}")
    print()


def demonstrate_distribution():
    """Sum-preserving split of a yearly budget."""
    print("=" * 60)
    print("DISTRIBUTION")
    print("=" * 60)
    print()
    budget = Money.of(2026, "EUR")
    monthly = budget.distribute(12)
    for i, m in enumerate(monthly, 1):
        print(f"  Month {i:2d}: {m}")
    print()
    print(f"  Sum:   {ops.add(*monthly)}")
    print(f"  Equal: {ops.add(*monthly) == budget}")
    print()
    print(f"  allocate(10 PLN, [1, 2, 3]) -> {Money.of(10, 'PLN').allocate([1, 2, 3])}")
    print()


def demonstrate_rounding():
    """Rounding only happens when asked for, and where."""
    print("=" * 60)
    print("ROUNDING")
    print("=" * 60)
    print()
    one = Money.of(1, "GBP")
    print(">>> Money.of(1, 'GBP') / 3")
    try:
        one / 3
    except RoundingRequiredError as e:
        print(f"RoundingRequiredError: {e}")
    with with_rounding(RoundingMode.HALF_UP):
        print(f"  with HALF_UP:             {one / 3}")
    print()
    print(f"  div(1 GBP, 8, 0.5):                  {ops.div(one, 8, '0.5')}")
    with with_rescaling(RoundingMode.HALF_UP):
        print(f"  div(1 GBP, 8, 0.5), rescale each:    {ops.div(one, 8, '0.5')}")
    print()


def demonstrate_type_safety():
    """Currencies never mix; Money / Money is a plain ratio."""
    print("=" * 60)
    print("TYPE SAFETY")
    print("=" * 60)
    print()
    print(">>> Money.of(10, 'EUR') + Money.of(5, 'USD')")
    try:
        Money.of(10, "EUR") + Money.of(5, "USD")
    except CurrencyMismatchError as e:
        print(f"CurrencyMismatchError: {e}")
    print()
    ratio = ops.div(Money.of(5, "BTC"), Money.of(2, "BTC"))
    print(f"  5 BTC / 2 BTC = {ratio!r}")
    print(f"  5 BTC / 2     = {ops.div(Money.of(5, 'BTC'), 2)}")
    print()


def main():
    demonstrate_resolution()
    demonstrate_weights()
    demonstrate_distribution()
    demonstrate_rounding()
    demonstrate_type_safety()


if __name__ == "__main__":
    main()
