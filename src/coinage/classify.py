"""
classify.py — Hierarchy-aware currency predicates

    of_domain("ISO-4217", "DEM")      # True when ISO-4217-LEGACY derives from ISO-4217
    of_kind("iso", "EUR")             # "iso/fiat" is-a "iso"
    of_trait("token", "crypto/USDT")  # "token/erc20" is-a "token"
    has_trait("token", "crypto/USDT") # False: exact membership only

Predicates accept anything the resolution engine accepts (Currency, Money,
id, numeric id, mask). Input that does not resolve gives False.
Without a hierarchy for an axis, tags are compared exactly.
"""

from __future__ import annotations
from typing import Any

from .currency import Currency
from .hierarchy import DOMAIN, KIND, TRAITS
from .registry import Registry, or_default
from .resolve import resolve_try


__all__ = [
    "of_domain",
    "of_kind",
    "of_trait",
    "has_trait",
    "has_kind",
    "has_domain",
    "in_domain",
    "traits",
    "is_iso",
    "is_crypto",
    "is_fiat",
    "is_fiduciary",
    "is_funds",
    "is_commodity",
    "is_metal",
    "is_virtual",
    "is_stable",
    "is_experimental",
    "is_decentralized",
    "is_auto_scaled",
    "has_numeric_id",
    "has_country",
]


def _currency(value: Any, registry: Registry) -> Currency | None:
    if isinstance(value, Currency):
        return value
    currency = getattr(value, "currency", None)
    if isinstance(currency, Currency):
        return currency
    return resolve_try(value, registry)


# ==============================================================================
# HIERARCHY QUERIES
# ==============================================================================

def of_domain(tag: str, value: Any, registry: Registry | None = None) -> bool:
    reg = or_default(registry)
    currency = _currency(value, reg)
    return currency is not None and reg.hierarchies.isa(DOMAIN, currency.domain, tag)


def of_kind(tag: str, value: Any, registry: Registry | None = None) -> bool:
    reg = or_default(registry)
    currency = _currency(value, reg)
    return currency is not None and reg.hierarchies.isa(KIND, currency.kind, tag)


def of_trait(tag: str, value: Any, registry: Registry | None = None) -> bool:
    """True when any trait of the currency is `tag` or descends from it."""
    reg = or_default(registry)
    currency = _currency(value, reg)
    if currency is None:
        return False
    return any(reg.hierarchies.isa(TRAITS, trait, tag) for trait in reg.traits_of(currency.id))


def traits(value: Any, registry: Registry | None = None) -> frozenset[str]:
    reg = or_default(registry)
    currency = _currency(value, reg)
    return reg.traits_of(currency.id) if currency is not None else frozenset()


def has_trait(tag: str, value: Any, registry: Registry | None = None) -> bool:
    """Exact trait membership, no hierarchy."""
    return tag in traits(value, registry)


def has_kind(tag: str | None, value: Any, registry: Registry | None = None) -> bool:
    """Exactly `tag` as the kind, or any kind at all when `tag` is None."""
    reg = or_default(registry)
    currency = _currency(value, reg)
    if currency is None or currency.kind is None:
        return False
    return tag is None or currency.kind == tag


def has_domain(tag: str | None, value: Any, registry: Registry | None = None) -> bool:
    """Exactly `tag` as the domain (case-insensitive), or any domain when `tag` is None."""
    reg = or_default(registry)
    currency = _currency(value, reg)
    if currency is None or currency.domain is None:
        return False
    return tag is None or currency.domain == str(tag).upper()


def in_domain(tag: str, value: Any, registry: Registry | None = None) -> bool:
    return has_domain(tag, value, registry)


# ==============================================================================
# SHORTCUTS
# ==============================================================================

def is_iso(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("iso", value, registry)


def is_crypto(value: Any, registry: Registry | None = None) -> bool:
    return of_domain("CRYPTO", value, registry)


def is_fiat(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("fiat", value, registry)


def is_fiduciary(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("fiduciary", value, registry)


def is_funds(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("funds", value, registry)


def is_commodity(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("commodity", value, registry)


def is_metal(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("metal", value, registry)


def is_virtual(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("virtual", value, registry)


def is_stable(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("stable", value, registry)


def is_experimental(value: Any, registry: Registry | None = None) -> bool:
    return of_kind("experimental", value, registry)


def is_decentralized(value: Any, registry: Registry | None = None) -> bool:
    return of_trait("control/decentralized", value, registry)


def is_auto_scaled(value: Any, registry: Registry | None = None) -> bool:
    currency = _currency(value, or_default(registry))
    return currency is not None and currency.is_auto_scaled


def has_numeric_id(value: Any, registry: Registry | None = None) -> bool:
    currency = _currency(value, or_default(registry))
    return currency is not None and currency.has_numeric_id


def has_country(value: Any, registry: Registry | None = None) -> bool:
    reg = or_default(registry)
    currency = _currency(value, reg)
    return currency is not None and bool(reg.countries_of(currency.id))
