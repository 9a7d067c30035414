"""Shared fixtures: small hand-built registries independent of the bundled data."""

import pytest

from coinage import Currency, Registry, registry


@pytest.fixture
def eur():
    return Currency.new("EUR", 978, 2, "iso/fiat")


@pytest.fixture
def small_registry():
    """
    EUR/USD/PLN/GBP/JPY fiat, an auto-scaled XXX, two crypto units and a
    code collision on AAA (ISO-like AAA weighs more than crypto/AAA).
    """
    currencies = [
        Currency.new("EUR", 978, 2, "iso/fiat"),
        Currency.new("USD", 840, 2, "iso/fiat"),
        Currency.new("PLN", 985, 2, "iso/fiat"),
        Currency.new("GBP", 826, 2, "iso/fiat"),
        Currency.new("JPY", 392, 0, "iso/fiat"),
        Currency.new("XXX", 999, None, "iso/null"),
        Currency.new("crypto/BTC", scale=8, kind="virtual/native"),
        Currency.new("crypto/USDT", scale=6, kind="virtual/stable"),
        Currency.new("AAA", 1000, 2, "iso/fiat", weight=10),
        Currency.new("crypto/AAA", scale=4, kind="virtual/native"),
    ]
    return Registry.build(
        currencies,
        countries={"PL": "PLN", "DE": "EUR", "FR": "EUR", "US": "USD", "GB": "GBP", "JP": "JPY"},
        localized={
            "PLN": {"*": {"name": "Polish złoty", "symbol": "PLN"}, "pl": {"symbol": "zł"}},
            "EUR": {"*": {"symbol": "€"}},
        },
        traits={
            "crypto/BTC": ["control/decentralized"],
            "crypto/USDT": ["token/erc20", "peg/fiat"],
        },
        hierarchies={
            "domain": {"ISO-4217-LEGACY": "ISO-4217"},
            "kind": {
                "iso/fiat": ["iso", "fiat"],
                "iso/null": ["iso"],
                "virtual/native": "virtual",
                "virtual/stable": ["virtual", "stable"],
            },
            "traits": {"token/erc20": "token", "control/decentralized": "control"},
        },
        version="test",
    )


@pytest.fixture
def default_registry(small_registry):
    """Binds small_registry as the default registry for the test."""
    with registry.using(small_registry):
        yield small_registry


@pytest.fixture
def restore_global():
    """Puts the process-wide registry back after a test that swaps it."""
    saved = registry.state()
    yield saved
    registry.set_state(saved)
