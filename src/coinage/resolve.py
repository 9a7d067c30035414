"""
resolve.py — Turning loose currency hints into canonical Currencies

================================================================================
HINTS
================================================================================

Every input is first classified into one hint variant; each variant knows how
to find its candidates in a Registry:

    Currency / Money   -> ByCurrency   exact id, fields re-validated
    "EUR", "crypto/X"  -> ById         namespaced: exact id
                                       bare code: weighted code bucket
    978                -> ByNumeric    weighted numeric bucket
    {"code": "ETH"}    -> ByMask       union of id/code/numeric matches,
                                       then every given field must match

Candidates always come back ordered by (weight, id); the head wins.

================================================================================
SOFT VS STRICT
================================================================================

    resolve / resolve_all      soft: None (or empty) when nothing matches
    unit / of_id               strict: CurrencyNotFoundError
    resolve_try / unit_try     never raise CurrencyNotFoundError
    defined / present          booleans

Numeric hints are the exception: `resolve(999)` raises when 999 is unknown.
Only resolve_try, unit_try, defined and present turn that into None/False.

A Currency passed without a registry is returned as is (ad hoc currencies are
allowed). With a registry argument (None meaning the default registry) it is
checked against the registry entry of the same id.

================================================================================
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from functools import singledispatch
from typing import Any

from .currency import (
    AUTO_SCALED,
    Currency,
    canonical_id,
    code_of,
    parse_numeric,
    parse_scale,
    parse_weight,
    split_id,
)
from .exceptions import ConfigurationError, CurrencyNotFoundError
from .registry import Registry, or_default


__all__ = [
    "UNSET",
    "Hint",
    "ByCurrency",
    "ById",
    "ByNumeric",
    "ByMask",
    "hint",
    "resolve",
    "resolve_all",
    "resolve_try",
    "unit",
    "unit_try",
    "of_id",
    "defined",
    "present",
    "same_ids",
    "id_of",
    "numeric_id",
    "scale",
    "kind",
    "domain",
    "code",
    "weight",
    "countries",
    "of_country",
    "localized_properties",
    "localized_property",
    "info",
]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# "No registry argument given", as opposed to None ("use the default registry")
UNSET: Any = _Unset()


def _by_weight(currencies) -> tuple[Currency, ...]:
    return tuple(sorted(currencies, key=lambda c: (c.weight, c.id)))


# ==============================================================================
# HINT VARIANTS
# ==============================================================================

class Hint(ABC):
    """A classified currency hint."""

    @abstractmethod
    def candidates(self, registry: Registry) -> tuple[Currency, ...]:
        """Registered currencies matching the hint, best first."""

    @property
    @abstractmethod
    def raw(self) -> Any:
        """The value the hint was made from."""


@dataclass(frozen=True)
class ByCurrency(Hint):
    currency: Currency

    def candidates(self, registry: Registry) -> tuple[Currency, ...]:
        found = registry.currencies.get(self.currency.id)
        return (found,) if found is not None and found == self.currency else ()

    def exists(self, registry: Registry) -> bool:
        return self.currency.id in registry.currencies

    @property
    def raw(self) -> Any:
        return self.currency


@dataclass(frozen=True)
class ById(Hint):
    id: str

    def candidates(self, registry: Registry) -> tuple[Currency, ...]:
        namespace, bare = split_id(self.id)
        if namespace is None:
            return registry.code_bucket(bare)
        found = registry.currencies.get(canonical_id(self.id))
        return (found,) if found is not None else ()

    @property
    def raw(self) -> Any:
        return self.id


@dataclass(frozen=True)
class ByNumeric(Hint):
    numeric: int

    def candidates(self, registry: Registry) -> tuple[Currency, ...]:
        return registry.numeric_bucket(self.numeric)

    @property
    def raw(self) -> Any:
        return self.numeric


_MASK_ALIASES = {
    "nr": "numeric",
    "numeric_id": "numeric",
    "sc": "scale",
    "ki": "kind",
    "do": "domain",
    "we": "weight",
}

_MASK_KEYS = {"id", "code", "numeric", "scale", "kind", "domain", "weight"}


@dataclass(frozen=True)
class ByMask(Hint):
    fields: Mapping[str, Any]

    def _criteria(self) -> dict[str, Any] | None:
        """Normalized criteria, or None when a value can never match."""
        criteria: dict[str, Any] = {}
        for key, value in self.fields.items():
            key = _MASK_ALIASES.get(key, key)
            if key not in _MASK_KEYS:
                raise ConfigurationError(f"Unknown currency field in mask: {key!r}", op="resolve", key=key)
            try:
                if key == "id":
                    criteria[key] = None if value is None else canonical_id(value)
                elif key == "code":
                    criteria[key] = None if value is None else code_of(value)
                elif key == "numeric":
                    criteria[key] = parse_numeric(value)
                elif key == "scale":
                    criteria[key] = parse_scale(value)
                elif key == "weight":
                    criteria[key] = parse_weight(value)
                elif key == "domain":
                    criteria[key] = str(value).strip().upper() if value is not None else None
                else:
                    criteria[key] = str(value).strip() if value is not None else None
            except ConfigurationError:
                # Unparsable values ("abc" as numeric) simply match nothing
                return None
        return criteria

    def candidates(self, registry: Registry) -> tuple[Currency, ...]:
        criteria = self._criteria()
        if not criteria:
            return ()

        pool: dict[str, Currency] = {}
        if criteria.get("id") is not None:
            for currency in ById(criteria["id"]).candidates(registry):
                pool[currency.id] = currency
        if criteria.get("code") is not None:
            for currency in registry.code_bucket(criteria["code"]):
                pool[currency.id] = currency
        if "numeric" in criteria:
            for currency in registry.numeric_bucket(criteria["numeric"]):
                pool[currency.id] = currency
        if not {"id", "code", "numeric"} & set(criteria):
            pool = dict(registry.currencies)

        return _by_weight(c for c in pool.values() if _matches(c, criteria))

    @property
    def raw(self) -> Any:
        return dict(self.fields)


def _matches(currency: Currency, criteria: Mapping[str, Any]) -> bool:
    for key, expected in criteria.items():
        if key == "id":
            namespace, bare = split_id(expected) if expected else (None, None)
            ok = currency.id == expected or (namespace is None and currency.code == bare)
        elif key == "code":
            ok = currency.code == expected
        else:
            ok = getattr(currency, key) == expected
        if not ok:
            return False
    return True


@singledispatch
def hint(value: Any) -> Hint | None:
    """Classifies raw input into a Hint variant (None stays None)."""
    if value is None:
        return None
    currency = getattr(value, "currency", None)
    if isinstance(currency, Currency):
        return ByCurrency(currency)
    raise ConfigurationError(
        f"Cannot use {type(value).__name__} as a currency hint",
        op="hint", value=value,
    )


@hint.register
def _(value: Hint) -> Hint:
    return value


@hint.register
def _(value: Currency) -> Hint:
    return ByCurrency(value)


@hint.register
def _(value: str) -> Hint | None:
    return ById(value) if value.strip() else None


@hint.register
def _(value: bool) -> Hint:
    raise ConfigurationError("Boolean is not a currency hint", op="hint", value=value)


@hint.register
def _(value: int) -> Hint:
    return ByNumeric(value)


@hint.register
def _(value: Mapping) -> Hint | None:
    return ByMask(value) if value else None


# ==============================================================================
# RESOLUTION
# ==============================================================================

def _candidates(h: Hint, registry: Any, op: str) -> tuple[Currency, ...]:
    reg = or_default(None if registry is UNSET else registry)
    found = h.candidates(reg)
    if not found and isinstance(h, ByNumeric):
        raise CurrencyNotFoundError(h.numeric, op=op, registry=reg)
    return found


def resolve(value: Any, registry: Any = UNSET) -> Currency | None:
    """
    Soft resolution: the best matching Currency, or None.

    Numeric hints still raise CurrencyNotFoundError on a miss.
    """
    h = hint(value)
    if h is None:
        return None
    if isinstance(h, ByCurrency) and registry is UNSET:
        return h.currency
    found = _candidates(h, registry, "resolve")
    return found[0] if found else None


def resolve_all(value: Any, registry: Any = UNSET) -> frozenset[Currency]:
    """Every matching Currency (empty when nothing matches)."""
    h = hint(value)
    if h is None:
        return frozenset()
    if isinstance(h, ByCurrency) and registry is UNSET:
        return frozenset([h.currency])
    return frozenset(_candidates(h, registry, "resolve_all"))


def resolve_try(value: Any, registry: Any = UNSET) -> Currency | None:
    """Like resolve(), but a numeric miss gives None as well."""
    try:
        return resolve(value, registry)
    except CurrencyNotFoundError:
        return None


def unit(value: Any, registry: Any = UNSET) -> Currency:
    """Strict resolution: raises CurrencyNotFoundError when nothing matches."""
    currency = resolve(value, registry)
    if currency is None:
        reg = None if registry is UNSET else registry
        h = hint(value) if value is not None else None
        raise CurrencyNotFoundError(
            h.raw if h is not None else value,
            op="unit", registry=or_default(reg),
        )
    return currency


def unit_try(value: Any, registry: Any = UNSET) -> Currency | None:
    try:
        return unit(value, registry)
    except CurrencyNotFoundError:
        return None


def of_id(currency_id: str, registry: Registry | None = None) -> Currency:
    """Strict lookup by exact id (no code bucket, no masks)."""
    reg = or_default(registry)
    found = reg.get(currency_id) if isinstance(currency_id, str) else None
    if found is None:
        raise CurrencyNotFoundError(currency_id, op="of_id", registry=reg)
    return found


def defined(value: Any, registry: Registry | None = None) -> bool:
    """True when the hint names something in the registry (fields not checked)."""
    h = hint(value)
    if h is None:
        return False
    reg = or_default(registry)
    if isinstance(h, ByCurrency):
        return h.exists(reg)
    return bool(h.candidates(reg))


def present(value: Any, registry: Registry | None = None) -> bool:
    """Like defined(), but every field of the input must match the registry entry."""
    h = hint(value)
    if h is None:
        return False
    return bool(h.candidates(or_default(registry)))


def same_ids(a: Any, b: Any, registry: Registry | None = None) -> bool:
    """True when both hints resolve to currencies with the same id."""
    left = resolve_try(a, registry)
    right = resolve_try(b, registry)
    return left is not None and right is not None and left.id == right.id


# ==============================================================================
# SOFT ACCESSORS
# ==============================================================================

def _currency(value: Any, registry: Any) -> Currency | None:
    if isinstance(value, Currency):
        return value
    currency = getattr(value, "currency", None)
    if isinstance(currency, Currency):
        return currency
    return resolve_try(value, registry)


def id_of(value: Any, registry: Any = UNSET) -> str | None:
    """'BTC' -> 'crypto/BTC' when that is the canonical owner of the code."""
    currency = _currency(value, registry)
    return currency.id if currency else None


def numeric_id(value: Any, registry: Any = UNSET) -> int | None:
    currency = _currency(value, registry)
    return currency.numeric_id if currency else None


def scale(value: Any, registry: Any = UNSET) -> int | None:
    """Nominal scale; AUTO_SCALED for auto-scaled currencies, None when unknown."""
    currency = _currency(value, registry)
    return currency.scale if currency else None


def kind(value: Any, registry: Any = UNSET) -> str | None:
    currency = _currency(value, registry)
    return currency.kind if currency else None


def domain(value: Any, registry: Any = UNSET) -> str | None:
    currency = _currency(value, registry)
    return currency.domain if currency else None


def code(value: Any, registry: Any = UNSET) -> str | None:
    currency = _currency(value, registry)
    return currency.code if currency else None


def weight(value: Any, registry: Registry | None = None) -> int | None:
    """Registry weight when the currency is registered, its own weight otherwise."""
    reg = or_default(registry)
    currency = _currency(value, reg)
    if currency is None:
        return None
    if currency.id in reg.currencies:
        return reg.weight_of(currency.id)
    return currency.weight


def _registered_id(value: Any, registry: Registry, op: str) -> str:
    currency = _currency(value, registry)
    if currency is None or currency.id not in registry.currencies:
        raise CurrencyNotFoundError(
            getattr(currency, "id", value), op=op, registry=registry,
        )
    return currency.id


def countries(value: Any, registry: Registry | None = None) -> frozenset[str]:
    """Country ids using the currency. Raises when it is not registered."""
    reg = or_default(registry)
    return reg.countries_of(_registered_id(value, reg, "countries"))


def of_country(country: str, registry: Registry | None = None) -> Currency | None:
    return or_default(registry).currency_of_country(country)


def localized_properties(value: Any, registry: Registry | None = None) -> Mapping[str, Mapping[str, Any]]:
    """locale -> property -> value. Raises when the currency is not registered."""
    reg = or_default(registry)
    return reg.localized_of(_registered_id(value, reg, "localized_properties"))


def _locale_chain(locale: str | None) -> list[str]:
    chain: list[str] = []
    if locale:
        text = str(locale).replace("-", "_")
        chain.append(text)
        language = text.split("_", 1)[0]
        if language != text:
            chain.append(language)
    chain.append("*")
    return chain


def localized_property(prop: str, value: Any, locale: str | None = None, registry: Registry | None = None) -> Any:
    """
    One localized property with fallback: 'pl_PL' -> 'pl' -> '*'.

    Returns None when no locale in the chain defines it.
    """
    properties = localized_properties(value, registry)
    for candidate in _locale_chain(locale):
        props = properties.get(candidate)
        if props and prop in props:
            return props[prop]
    return None


def info(value: Any, registry: Registry | None = None) -> dict | None:
    """
    Snapshot of everything the registry knows about a currency, or None.

        info("PLN") -> {"id": "PLN", "numeric": 985, "scale": 2,
                        "kind": "iso/fiat", "domain": "ISO-4217", "weight": 0,
                        "countries": {"PL"}, "localized": {...}, "traits": set()}
    """
    reg = or_default(registry)
    currency = resolve_try(value, reg)
    if currency is None:
        return None
    return {
        "id": currency.id,
        "numeric": currency.numeric_id,
        "scale": currency.scale if currency.scale != AUTO_SCALED else None,
        "kind": currency.kind,
        "domain": currency.domain,
        "weight": reg.weight_of(currency.id),
        "countries": set(reg.countries_of(currency.id)),
        "localized": {loc: dict(props) for loc, props in reg.localized_of(currency.id).items()},
        "traits": set(reg.traits_of(currency.id)),
    }
