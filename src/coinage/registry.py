"""
registry.py — Versioned, multi-index currency database

================================================================================
DESIGN PRINCIPLES
================================================================================

1. VALUE, NOT OBJECT
   A Registry is immutable once built. Every mutation (register, unregister,
   set_weight, set_traits, derive, ...) is a pure function returning a new
   Registry; the old one keeps resolving exactly as before.

2. BASE MAPS VS DERIVED INDICES
   Base maps: currencies, countries, localized, traits, weights, hierarchies.
   Derived indices (numeric, code, weighted buckets, country and locale
   relations) are recomputed in full by Registry.build() whenever a base map
   changes. They are never patched in place, so they cannot diverge.

3. WEIGHTED BUCKETS
   Currencies sharing a code ("ETH" for "crypto/ETH" and "ETH") or a numeric
   id are kept together in a bucket ordered by (weight, id). The canonical
   entry for that code or numeric id is always the bucket head.

4. ONE SHARED HOLDER
   RegistryHolder is the only mutable thing: a reference to the current
   Registry, replaced with compare-and-set. Readers take a plain snapshot and
   always see one complete Registry.

================================================================================
USAGE
================================================================================

    from coinage import Currency, registry

    r = registry.Registry.build([Currency.new("EUR", 978, 2, "iso/fiat")],
                                countries={"DE": "EUR"})
    r2 = registry.register(r, Currency.new("PLN", 985, 2, "iso/fiat"),
                           countries=["PL"])
    r.get("PLN")     # None, r is untouched
    r2.get("PLN")    # Currency(id='PLN', ...)

    registry.swap(registry.register, Currency.new("crypto/XYZ", scale=6))

    with registry.using(r2):
        ...          # default registry for this call stack only

================================================================================
"""

from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional
import logging
import threading

from .currency import Currency, canonical_id, code_of, parse_weight
from .exceptions import ConfigurationError, CurrencyNotFoundError
from .hierarchy import Hierarchies, Hierarchy


__all__ = [
    "Registry",
    "RegistryHolder",
    "register",
    "unregister",
    "update",
    "add_countries",
    "remove_countries",
    "set_localized",
    "set_weight",
    "clear_weight",
    "set_traits",
    "add_traits",
    "remove_traits",
    "derive",
    "set_hierarchy",
    "with_version",
    "with_ext",
    "state",
    "set_state",
    "swap",
    "default",
    "using",
]


logger = logging.getLogger(__name__)

_EMPTY: Mapping = MappingProxyType({})


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


def new_version() -> str:
    """Timestamp-based registry version, e.g. '2026101812304512'."""
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")[:16]


def _bucket_key(currency: Currency) -> tuple[int, str]:
    return (currency.weight, currency.id)


# ==============================================================================
# REGISTRY
# ==============================================================================

@dataclass(frozen=True, eq=False)
class Registry:
    """
    Immutable currency database.

    Build with Registry.build(); do not call the constructor directly, it does
    not compute the derived indices.

    BASE MAPS:
        currencies   id -> Currency (weight attached)
        countries    country id -> currency id
        localized    id -> locale -> property -> value
        traits       id -> frozenset of trait tags
        weights      id -> explicit weight
        hierarchies  axis -> Hierarchy

    DERIVED:
        numeric          numeric id -> canonical Currency
        codes            code -> canonical Currency
        code_buckets     code -> Currencies ordered by (weight, id)
        numeric_buckets  numeric id -> Currencies ordered by (weight, id)
        id_countries     id -> frozenset of country ids
        locales          locale -> frozenset of ids with properties in it
    """
    currencies: Mapping[str, Currency] = field(default_factory=dict)
    countries: Mapping[str, str] = field(default_factory=dict)
    localized: Mapping[str, Mapping[str, Mapping[str, Any]]] = field(default_factory=dict)
    traits: Mapping[str, frozenset[str]] = field(default_factory=dict)
    weights: Mapping[str, int] = field(default_factory=dict)
    hierarchies: Hierarchies = field(default_factory=Hierarchies)
    version: str = ""
    ext: Mapping[str, Any] = field(default_factory=dict)

    numeric: Mapping[int, Currency] = field(default_factory=dict)
    codes: Mapping[str, Currency] = field(default_factory=dict)
    code_buckets: Mapping[str, tuple[Currency, ...]] = field(default_factory=dict)
    numeric_buckets: Mapping[int, tuple[Currency, ...]] = field(default_factory=dict)
    id_countries: Mapping[str, frozenset[str]] = field(default_factory=dict)
    locales: Mapping[str, frozenset[str]] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        currencies: Iterable[Currency] | Mapping[str, Currency] = (),
        countries: Optional[Mapping[str, str]] = None,
        localized: Optional[Mapping[str, Mapping[str, Mapping[str, Any]]]] = None,
        traits: Optional[Mapping[str, Iterable[str]]] = None,
        weights: Optional[Mapping[str, int]] = None,
        hierarchies: Hierarchies | Mapping[str, Any] | None = None,
        version: Optional[str] = None,
        ext: Optional[Mapping[str, Any]] = None,
    ) -> Registry:
        """
        Bulk constructor: takes base maps, computes every derived index once.

        Entries of countries/localized/traits/weights that point at unknown
        currency ids are dropped (with a warning), so the result never holds
        dangling references.
        """
        if isinstance(currencies, Mapping):
            currencies = currencies.values()

        base: dict[str, Currency] = {}
        explicit_weights: dict[str, int] = {}
        for currency in currencies:
            if not isinstance(currency, Currency):
                raise ConfigurationError(
                    f"Expected Currency, got {type(currency).__name__}",
                    op="build", value=currency,
                )
            if currency.id in base:
                raise ConfigurationError(f"Duplicate currency id: {currency.id}", op="build", id=currency.id)
            base[currency.id] = currency
            if currency.weight != 0:
                explicit_weights[currency.id] = currency.weight

        for cid, weight in (weights or {}).items():
            cid = canonical_id(cid)
            if cid not in base:
                logger.warning("Dropping weight for unknown currency %s", cid)
                continue
            explicit_weights[cid] = parse_weight(weight)

        base = {
            cid: currency.with_weight(explicit_weights.get(cid, 0))
            for cid, currency in base.items()
        }

        country_map: dict[str, str] = {}
        for country, cid in (countries or {}).items():
            country = str(country).strip().upper()
            cid = canonical_id(cid)
            if cid not in base:
                logger.warning("Dropping country %s: unknown currency %s", country, cid)
                continue
            country_map[country] = cid

        localized_map: dict[str, Mapping[str, Mapping[str, Any]]] = {}
        for cid, locales in (localized or {}).items():
            cid = canonical_id(cid)
            if cid not in base:
                logger.warning("Dropping localized properties of unknown currency %s", cid)
                continue
            if locales:
                localized_map[cid] = _frozen({
                    str(locale): _frozen(props) for locale, props in locales.items() if props
                })

        trait_map: dict[str, frozenset[str]] = {}
        for cid, tags in (traits or {}).items():
            cid = canonical_id(cid)
            if cid not in base:
                logger.warning("Dropping traits of unknown currency %s", cid)
                continue
            tags = frozenset(str(tag) for tag in ([tags] if isinstance(tags, str) else tags or ()))
            if tags:
                trait_map[cid] = tags

        if not isinstance(hierarchies, Hierarchies):
            hierarchies = Hierarchies.from_map(hierarchies)

        # Derived indices
        code_buckets: dict[str, list[Currency]] = {}
        numeric_buckets: dict[int, list[Currency]] = {}
        for currency in base.values():
            code_buckets.setdefault(currency.code, []).append(currency)
            if currency.has_numeric_id:
                numeric_buckets.setdefault(currency.numeric, []).append(currency)

        sorted_codes = {code: tuple(sorted(bucket, key=_bucket_key)) for code, bucket in code_buckets.items()}
        sorted_numeric = {nr: tuple(sorted(bucket, key=_bucket_key)) for nr, bucket in numeric_buckets.items()}

        id_countries: dict[str, set[str]] = {}
        for country, cid in country_map.items():
            id_countries.setdefault(cid, set()).add(country)

        locale_index: dict[str, set[str]] = {}
        for cid, locales in localized_map.items():
            for locale in locales:
                locale_index.setdefault(locale, set()).add(cid)

        registry = cls(
            currencies=_frozen(base),
            countries=_frozen(country_map),
            localized=_frozen(localized_map),
            traits=_frozen(trait_map),
            weights=_frozen(explicit_weights),
            hierarchies=hierarchies,
            version=version or new_version(),
            ext=_frozen(ext or {}),
            numeric=_frozen({nr: bucket[0] for nr, bucket in sorted_numeric.items()}),
            codes=_frozen({code: bucket[0] for code, bucket in sorted_codes.items()}),
            code_buckets=_frozen(sorted_codes),
            numeric_buckets=_frozen(sorted_numeric),
            id_countries=_frozen({cid: frozenset(cs) for cid, cs in id_countries.items()}),
            locales=_frozen({locale: frozenset(ids) for locale, ids in locale_index.items()}),
        )
        logger.debug(
            "Built registry %s: %d currencies, %d countries",
            registry.version, len(base), len(country_map),
        )
        return registry

    def _rebuild(self, **changes: Any) -> Registry:
        base = {
            "currencies": self.currencies,
            "countries": self.countries,
            "localized": self.localized,
            "traits": self.traits,
            "weights": self.weights,
            "hierarchies": self.hierarchies,
            "ext": self.ext,
        }
        base.update(changes)
        return Registry.build(**base)

    # -------------------------------------------------------------------------
    # Lookups (exact, no resolution)
    # -------------------------------------------------------------------------

    def get(self, currency_id: str) -> Currency | None:
        """Currency by exact id, or None."""
        return self.currencies.get(canonical_id(currency_id))

    def by_numeric(self, numeric: int) -> Currency | None:
        return self.numeric.get(numeric)

    def by_code(self, code: str) -> Currency | None:
        return self.codes.get(code_of(code))

    def code_bucket(self, code: str) -> tuple[Currency, ...]:
        return self.code_buckets.get(code_of(code), ())

    def numeric_bucket(self, numeric: int) -> tuple[Currency, ...]:
        return self.numeric_buckets.get(numeric, ())

    def countries_of(self, currency_id: str) -> frozenset[str]:
        return self.id_countries.get(canonical_id(currency_id), frozenset())

    def currency_of_country(self, country: str) -> Currency | None:
        cid = self.countries.get(str(country).strip().upper())
        return self.currencies.get(cid) if cid else None

    def localized_of(self, currency_id: str) -> Mapping[str, Mapping[str, Any]]:
        return self.localized.get(canonical_id(currency_id), _EMPTY)

    def traits_of(self, currency_id: str) -> frozenset[str]:
        return self.traits.get(canonical_id(currency_id), frozenset())

    def weight_of(self, currency_id: str) -> int:
        return self.weights.get(canonical_id(currency_id), 0)

    def locale_ids(self, locale: str) -> frozenset[str]:
        return self.locales.get(locale, frozenset())

    def hierarchy(self, axis: str) -> Hierarchy | None:
        return self.hierarchies.get(axis)

    def __contains__(self, currency_id: object) -> bool:
        return isinstance(currency_id, str) and canonical_id(currency_id) in self.currencies

    def __iter__(self) -> Iterator[Currency]:
        return iter(sorted(self.currencies.values(), key=lambda c: c.id))

    def __len__(self) -> int:
        return len(self.currencies)

    def __repr__(self) -> str:
        return (
            f"Registry(version={self.version!r}, currencies={len(self.currencies)}, "
            f"countries={len(self.countries)})"
        )

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Configuration-shaped description; Registry.build(**...) accepts it back."""
        currencies = []
        for currency in self:
            entry = {k: v for k, v in currency.to_dict().items() if v is not None and k != "weight"}
            currencies.append(entry)
        return {
            "version": self.version,
            "currencies": currencies,
            "countries": dict(sorted(self.countries.items())),
            "localized": {cid: {loc: dict(props) for loc, props in locs.items()} for cid, locs in sorted(self.localized.items())},
            "traits": {cid: sorted(tags) for cid, tags in sorted(self.traits.items())},
            "weights": dict(sorted(self.weights.items())),
            "hierarchies": self.hierarchies.to_dict(),
        }


# ==============================================================================
# PURE MUTATIONS
# ==============================================================================

def _currency_arg(currency: Currency | Mapping[str, Any], op: str) -> Currency:
    if isinstance(currency, Mapping):
        currency = Currency.from_map(currency)
    if not isinstance(currency, Currency):
        raise ConfigurationError(f"{op} needs a Currency, got {currency!r}", op=op, value=currency)
    return currency


def _id_arg(hint: Any) -> str:
    if isinstance(hint, Currency):
        return hint.id
    if isinstance(hint, Mapping):
        return _currency_arg(hint, "registry").id
    currency = getattr(hint, "currency", None)
    if isinstance(currency, Currency):
        return currency.id
    return canonical_id(hint)


def _existing_id(registry: Registry, hint: Any, op: str) -> str:
    cid = _id_arg(hint)
    if cid not in registry.currencies:
        raise CurrencyNotFoundError(hint, op=op, registry=registry)
    return cid


def _tags(traits: Iterable[str] | str | None) -> frozenset[str]:
    if isinstance(traits, str):
        return frozenset([traits])
    return frozenset(str(tag) for tag in traits or ())


def _normalize_localized(properties: Mapping[str, Mapping[str, Any]] | None) -> dict:
    return {str(locale): dict(props) for locale, props in (properties or {}).items()}


def register(
    registry: Registry,
    currency: Currency | Mapping[str, Any],
    countries: Iterable[str] | None = None,
    localized: Mapping[str, Mapping[str, Any]] | None = None,
    traits: Iterable[str] | None = None,
    *,
    update: bool = False,
) -> Registry:
    """
    Adds a currency.

    Raises ConfigurationError when the id already exists, unless `update` is
    set. When updating, countries/localized/traits that are not given are
    kept from the existing entry.
    """
    currency = _currency_arg(currency, "register")
    cid = currency.id
    exists = cid in registry.currencies
    if exists and not update:
        raise ConfigurationError(f"Currency {cid} already exists", op="register", id=cid)

    currencies = dict(registry.currencies)
    currencies[cid] = currency

    weights = dict(registry.weights)
    if currency.weight != 0:
        weights[cid] = currency.weight
    else:
        weights.pop(cid, None)

    country_map = dict(registry.countries)
    if countries is not None or not exists:
        country_map = {c: i for c, i in country_map.items() if i != cid}
        for country in countries or ():
            country_map[str(country).strip().upper()] = cid

    localized_map = dict(registry.localized)
    if localized is not None:
        localized_map[cid] = _normalize_localized(localized)
    elif not exists:
        localized_map.pop(cid, None)

    trait_map = dict(registry.traits)
    if traits is not None:
        trait_map[cid] = _tags(traits)
    elif not exists:
        trait_map.pop(cid, None)

    logger.debug("%s currency %s", "Updating" if exists else "Registering", cid)
    return registry._rebuild(
        currencies=currencies,
        weights=weights,
        countries=country_map,
        localized=localized_map,
        traits=trait_map,
    )


def update(
    registry: Registry,
    currency: Currency | Mapping[str, Any],
    countries: Iterable[str] | None = None,
    localized: Mapping[str, Mapping[str, Any]] | None = None,
    traits: Iterable[str] | None = None,
) -> Registry:
    """Registers or replaces a currency, keeping existing relations not given."""
    return register(registry, currency, countries, localized, traits, update=True)


def unregister(registry: Registry, currency: Any) -> Registry:
    """
    Removes a currency and every relation pointing at it. Unknown ids leave
    the registry unchanged.
    """
    cid = _id_arg(currency)
    if cid not in registry.currencies:
        logger.debug("Unregister of unknown currency %s ignored", cid)
        return registry

    def without(mapping: Mapping) -> dict:
        return {k: v for k, v in mapping.items() if k != cid}

    logger.debug("Unregistering currency %s", cid)
    return registry._rebuild(
        currencies=without(registry.currencies),
        countries={c: i for c, i in registry.countries.items() if i != cid},
        localized=without(registry.localized),
        traits=without(registry.traits),
        weights=without(registry.weights),
    )


def add_countries(registry: Registry, currency: Any, countries: Iterable[str]) -> Registry:
    """Associates countries with a registered currency (moving them if needed)."""
    cid = _existing_id(registry, currency, "add_countries")
    country_map = dict(registry.countries)
    for country in countries:
        country_map[str(country).strip().upper()] = cid
    return registry._rebuild(countries=country_map)


def remove_countries(registry: Registry, countries: Iterable[str]) -> Registry:
    drop = {str(country).strip().upper() for country in countries}
    return registry._rebuild(
        countries={c: i for c, i in registry.countries.items() if c not in drop},
    )


def set_localized(registry: Registry, currency: Any, properties: Mapping[str, Mapping[str, Any]] | None) -> Registry:
    """Replaces the localized properties of a currency (None removes them)."""
    cid = _existing_id(registry, currency, "set_localized")
    localized_map = dict(registry.localized)
    if properties:
        localized_map[cid] = _normalize_localized(properties)
    else:
        localized_map.pop(cid, None)
    return registry._rebuild(localized=localized_map)


def set_weight(registry: Registry, currency: Any, weight: int) -> Registry:
    """Stores an explicit weight, re-ordering every bucket the currency is in."""
    cid = _existing_id(registry, currency, "set_weight")
    weights = dict(registry.weights)
    weights[cid] = parse_weight(weight)
    return registry._rebuild(
        weights=weights,
        currencies=_with_weights(registry.currencies, weights),
    )


def clear_weight(registry: Registry, currency: Any) -> Registry:
    """Removes an explicit weight; the currency falls back to weight 0."""
    cid = _id_arg(currency)
    weights = {k: v for k, v in registry.weights.items() if k != cid}
    return registry._rebuild(
        weights=weights,
        currencies=_with_weights(registry.currencies, weights),
    )


def _with_weights(currencies: Mapping[str, Currency], weights: Mapping[str, int]) -> dict[str, Currency]:
    return {cid: c.with_weight(weights.get(cid, 0)) for cid, c in currencies.items()}


def set_traits(registry: Registry, currency: Any, traits: Iterable[str] | None) -> Registry:
    cid = _existing_id(registry, currency, "set_traits")
    trait_map = dict(registry.traits)
    trait_map[cid] = _tags(traits)
    return registry._rebuild(traits=trait_map)


def add_traits(registry: Registry, currency: Any, traits: Iterable[str]) -> Registry:
    cid = _existing_id(registry, currency, "add_traits")
    return set_traits(registry, cid, registry.traits_of(cid) | _tags(traits))


def remove_traits(registry: Registry, currency: Any, traits: Iterable[str]) -> Registry:
    cid = _existing_id(registry, currency, "remove_traits")
    return set_traits(registry, cid, registry.traits_of(cid) - _tags(traits))


def derive(registry: Registry, axis: str, child: str, parent: str) -> Registry:
    """Adds a hierarchy edge child -> parent on the given axis."""
    return registry._rebuild(hierarchies=registry.hierarchies.derive(axis, child, parent))


def set_hierarchy(registry: Registry, axis: str, edges: Hierarchy | Mapping[str, Any] | None) -> Registry:
    """Replaces a whole axis."""
    hierarchy = edges if isinstance(edges, Hierarchy) else Hierarchy.from_map(axis, edges)
    return registry._rebuild(hierarchies=registry.hierarchies.with_axis(hierarchy))


def with_version(registry: Registry, version: str | None = None) -> Registry:
    return replace(registry, version=version or new_version())


def with_ext(registry: Registry, key: str, value: Any) -> Registry:
    ext = dict(registry.ext)
    ext[key] = value
    return replace(registry, ext=_frozen(ext))


# ==============================================================================
# SHARED HOLDER
# ==============================================================================

class RegistryHolder:
    """
    Swappable reference to the current Registry.

    Reads are plain attribute reads of an immutable value. Writes go through
    compare_and_set, so concurrent swaps never lose updates and readers never
    see a half-built registry.
    """

    def __init__(
        self,
        registry: Registry | None = None,
        bootstrap: Callable[[], Registry] | None = None,
    ):
        self._lock = threading.Lock()
        self._registry = registry
        self._bootstrap = bootstrap

    def get(self) -> Registry:
        registry = self._registry
        if registry is None:
            with self._lock:
                if self._registry is None:
                    self._registry = self._bootstrap() if self._bootstrap else Registry.build()
                registry = self._registry
        return registry

    def set(self, registry: Registry) -> Registry:
        if not isinstance(registry, Registry):
            raise ConfigurationError(f"Expected Registry, got {type(registry).__name__}", op="set_state")
        with self._lock:
            self._registry = registry
        logger.info("Installed registry %s", registry.version)
        return registry

    def compare_and_set(self, expected: Registry | None, new: Registry) -> bool:
        """Installs `new` only when the current value is `expected` (identity)."""
        with self._lock:
            if self._registry is not expected:
                return False
            self._registry = new
            return True

    def swap(self, fn: Callable[..., Registry], *args: Any, **kwargs: Any) -> Registry:
        """
        Applies fn(current, *args, **kwargs) and installs the result,
        retrying when another writer got there first.
        """
        while True:
            current = self.get()
            new = fn(current, *args, **kwargs)
            if self.compare_and_set(current, new):
                logger.debug("Swapped registry %s -> %s", current.version, new.version)
                return new


def _bootstrap() -> Registry:
    from .config import load_registry
    return load_registry()


_holder = RegistryHolder(bootstrap=_bootstrap)
_override: ContextVar[Registry | None] = ContextVar("coinage_registry", default=None)


def holder() -> RegistryHolder:
    return _holder


def state() -> Registry:
    """Process-wide registry (bootstrapped from configuration on first use)."""
    return _holder.get()


def set_state(registry: Registry) -> Registry:
    return _holder.set(registry)


def swap(fn: Callable[..., Registry], *args: Any, **kwargs: Any) -> Registry:
    return _holder.swap(fn, *args, **kwargs)


def default() -> Registry:
    """Registry bound with `using()` in this call stack, else the global one."""
    registry = _override.get()
    return registry if registry is not None else _holder.get()


def or_default(registry: Registry | None) -> Registry:
    return registry if registry is not None else default()


@contextmanager
def using(registry: Registry) -> Iterator[Registry]:
    """Binds the default registry for the body of the block."""
    if not isinstance(registry, Registry):
        raise ConfigurationError(f"Expected Registry, got {type(registry).__name__}", op="using")
    token = _override.set(registry)
    try:
        yield registry
    finally:
        _override.reset(token)
