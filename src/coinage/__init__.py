"""
coinage — Currency registry and exact money arithmetic

Currencies from ISO-4217 and beyond (crypto, commodities, platform units) in
one registry, and monetary amounts whose arithmetic never silently loses
precision.

================================================================================
QUICK START
================================================================================

Basic usage:

    from coinage import Money, RoundingMode, ops, with_rounding

    # Create money (amount fitted to the currency's scale)
    price = Money.of("19.99", "EUR")
    total = price * 3                            # 59.97 EUR

    # Distribute equally (sum ALWAYS equals original)
    parts = Money.of(10, "PLN").distribute(3)    # [3.34, 3.33, 3.33] PLN
    ops.add(*parts) == Money.of(10, "PLN")       # True

    # Rounding is explicit
    Money.of(1, "GBP") / 3                       # RoundingRequiredError
    with with_rounding(RoundingMode.HALF_UP):
        Money.of(1, "GBP") / 3                   # 0.33 GBP

Currencies and the registry:

    from coinage import Currency, resolve, unit, registry, classify

    unit("eur")                       # Currency(id='EUR', numeric=978, ...)
    unit(978)                         # same currency, by numeric id
    resolve({"code": "ETH"})          # Currency(id='crypto/ETH', ...)
    classify.of_kind("iso", "EUR")    # True ("iso/fiat" is-a "iso")

    r = registry.register(registry.state(),
                          Currency.new("crypto/XYZ", scale=6, kind="virtual/native"))
    with registry.using(r):
        Money.of("1.5", "crypto/XYZ")

================================================================================
"""

# Errors
from .exceptions import (
    MoneyError,
    CurrencyNotFoundError,
    CurrencyMismatchError,
    InvalidOperationError,
    RoundingRequiredError,
    DivisionByZeroError,
    ConfigurationError,
    InvalidAmountError,
)

# Scale and rounding
from .scale import (
    RoundingMode,
    rounding_mode,
    rescale_each,
    with_rounding,
    with_rescaling,
    scale_of,
    apply_scale,
)

# Currencies, hierarchies, registry
from .currency import Currency, AUTO_SCALED, NO_NUMERIC_ID, ISO_4217
from .hierarchy import Hierarchy, Hierarchies
from .registry import Registry, RegistryHolder
from . import registry
from .resolve import (
    resolve,
    resolve_all,
    resolve_try,
    unit,
    unit_try,
    of_id,
    defined,
    present,
)
from . import classify
from .config import load_registry, registry_from_config

# Money
from .money import Money, with_currency
from . import ops
from .ops import add, sub, mul, div, rem, compare
from .allocation import allocate, distribute

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Errors
    "MoneyError",
    "CurrencyNotFoundError",
    "CurrencyMismatchError",
    "InvalidOperationError",
    "RoundingRequiredError",
    "DivisionByZeroError",
    "ConfigurationError",
    "InvalidAmountError",
    # Scale
    "RoundingMode",
    "rounding_mode",
    "rescale_each",
    "with_rounding",
    "with_rescaling",
    "scale_of",
    "apply_scale",
    # Currency & registry
    "Currency",
    "AUTO_SCALED",
    "NO_NUMERIC_ID",
    "ISO_4217",
    "Hierarchy",
    "Hierarchies",
    "Registry",
    "RegistryHolder",
    "registry",
    "classify",
    "load_registry",
    "registry_from_config",
    # Resolution
    "resolve",
    "resolve_all",
    "resolve_try",
    "unit",
    "unit_try",
    "of_id",
    "defined",
    "present",
    # Money
    "Money",
    "with_currency",
    "ops",
    "add",
    "sub",
    "mul",
    "div",
    "rem",
    "compare",
    "allocate",
    "distribute",
]
