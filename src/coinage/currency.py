"""
currency.py — Currency value object

================================================================================
DESIGN PRINCIPLES
================================================================================

1. IDENTITY
   A Currency is identified by five fields: id, numeric, scale, kind, domain.
   Equality and hashing use exactly these fields.

2. WEIGHT IS NOT IDENTITY
   `weight` rides along for the registry (lower weight wins when codes or
   numeric ids collide) but never takes part in equality or hashing.

3. SENTINELS, NOT NONE
   An absent numeric id is NO_NUMERIC_ID (-1); an auto-scaled currency has
   scale AUTO_SCALED (-1), meaning every amount carries its own scale.

================================================================================
IDENTIFIERS
================================================================================

    "eur"          -> id "EUR",         domain None
    "EUR" + 978    -> id "EUR",         domain "ISO-4217"   (3 letters + numeric)
    "crypto/eth"   -> id "crypto/ETH",  domain "CRYPTO"
    "ISO-4217/usd" -> id "USD",         domain "ISO-4217"   (reserved namespace)

The code part is always upper-cased; the namespace is kept as written and,
upper-cased, becomes the domain unless a domain is given explicitly.

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from .exceptions import ConfigurationError
from . import scale as scale_mod


__all__ = [
    "Currency",
    "AUTO_SCALED",
    "NO_NUMERIC_ID",
    "ISO_4217",
    "canonical_id",
    "split_id",
    "code_of",
]


AUTO_SCALED = -1
NO_NUMERIC_ID = -1
ISO_4217 = "ISO-4217"

# Marks "domain not given" so that an explicit None can still win
_INFER: Any = object()

# Short field names accepted in field sets
_ALIASES = {
    "nr": "numeric",
    "numeric_id": "numeric",
    "sc": "scale",
    "ki": "kind",
    "do": "domain",
    "we": "weight",
}

_FIELDS = ("id", "numeric", "scale", "kind", "domain", "weight")


# ==============================================================================
# IDENTIFIERS
# ==============================================================================

def split_id(identifier: str) -> tuple[str | None, str]:
    """'crypto/eth' -> ('crypto', 'ETH'); 'eur' -> (None, 'EUR')."""
    text = str(identifier).strip()
    namespace, sep, code = text.partition("/")
    if not sep:
        return None, text.upper()
    if not namespace or not code:
        raise ConfigurationError(f"Malformed currency identifier: {identifier!r}", op="currency", id=identifier)
    return namespace, code.upper()


def canonical_id(identifier: str) -> str:
    """Canonical form of an identifier string, as stored in registries."""
    namespace, code = split_id(identifier)
    if namespace is None or namespace.upper() == ISO_4217:
        return code
    return f"{namespace}/{code}"


def code_of(identifier: str) -> str:
    """Bare code of a (possibly namespaced) identifier."""
    return split_id(identifier)[1]


def _is_iso_like(code: str, numeric: int) -> bool:
    return len(code) == 3 and code.isalpha() and numeric > 0


# ==============================================================================
# FIELD PARSING
# ==============================================================================

def _parse_int(value: Any, name: str, *, allow_none: bool = True) -> int | None:
    if value is None and allow_none:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", op="currency", **{name: value})
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    raise ConfigurationError(f"{name} must be an integer, got {value!r}", op="currency", **{name: value})


def parse_numeric(value: Any) -> int:
    number = _parse_int(value, "numeric")
    if number is None or number == NO_NUMERIC_ID:
        return NO_NUMERIC_ID
    if number < 0:
        raise ConfigurationError(f"Numeric id must be positive, got {value!r}", op="currency", numeric=value)
    return number


def parse_scale(value: Any) -> int:
    number = _parse_int(value, "scale")
    if number is None or number == AUTO_SCALED:
        return AUTO_SCALED
    if number < 0:
        raise ConfigurationError(f"Scale must be non-negative, got {value!r}", op="currency", scale=value)
    return number


def parse_weight(value: Any) -> int:
    number = _parse_int(value, "weight")
    return 0 if number is None else number


def _parse_tag(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ==============================================================================
# CURRENCY
# ==============================================================================

@dataclass(frozen=True, slots=True)
class Currency:
    """
    Unit of account.

    INVARIANTS:
    1. id is canonical (upper-cased code, optional namespace)
    2. numeric is a positive int or NO_NUMERIC_ID
    3. scale is a non-negative int or AUTO_SCALED
    4. equality/hash ignore weight

    USAGE:
        eur = Currency.new("EUR", 978, 2, "iso/fiat")
        eth = Currency.new("crypto/ETH", scale=18, kind="virtual/native")
    """
    id: str
    numeric: int = NO_NUMERIC_ID
    scale: int = AUTO_SCALED
    kind: str | None = None
    domain: str | None = None
    weight: int = field(default=0, compare=False)

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def new(
        cls,
        id: str | None,
        numeric: int | str | None = None,
        scale: int | str | None = None,
        kind: str | None = None,
        domain: Any = _INFER,
        weight: int | str | None = 0,
    ) -> Currency | None:
        """
        Canonicalizing constructor. Returns None for a None or empty id.

        The domain is inferred from the id namespace, or from the ISO shape
        (3-letter code with a numeric id), unless given explicitly.
        """
        if id is None:
            return None
        if isinstance(id, Currency):
            return id
        if not str(id).strip():
            return None

        namespace, code = split_id(id)
        nr = parse_numeric(numeric)

        if domain is _INFER:
            if namespace is not None:
                inferred = namespace.upper()
            elif _is_iso_like(code, nr):
                inferred = ISO_4217
            else:
                inferred = None
        else:
            inferred = _parse_tag(domain)
            inferred = inferred.upper() if inferred else None

        return cls(
            id=canonical_id(id),
            numeric=nr,
            scale=parse_scale(scale),
            kind=_parse_tag(kind),
            domain=inferred,
            weight=parse_weight(weight),
        )

    @classmethod
    def from_map(cls, data: Mapping[str, Any] | None) -> Currency | None:
        """
        Builds a Currency from a field set.

        Accepts the short aliases nr/sc/ki/do/we. None or an empty mapping
        gives None.
        """
        if not data:
            return None
        fields = {_ALIASES.get(key, key): value for key, value in data.items()}
        unknown = set(fields) - set(_FIELDS)
        if unknown:
            raise ConfigurationError(
                f"Unknown currency fields: {sorted(unknown)}",
                op="currency", fields=sorted(unknown),
            )
        kwargs = {key: value for key, value in fields.items() if key != "id"}
        return cls.new(fields.get("id"), **kwargs)

    def with_weight(self, weight: int) -> Currency:
        return replace(self, weight=parse_weight(weight))

    def with_scale(self, scale: int | None) -> Currency:
        return replace(self, scale=parse_scale(scale))

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def code(self) -> str:
        """Bare code: 'crypto/ETH' -> 'ETH'."""
        return code_of(self.id)

    @property
    def namespace(self) -> str | None:
        return split_id(self.id)[0]

    @property
    def numeric_id(self) -> int | None:
        return None if self.numeric == NO_NUMERIC_ID else self.numeric

    @property
    def nominal_scale(self) -> int | None:
        return None if self.scale == AUTO_SCALED else self.scale

    @property
    def is_auto_scaled(self) -> bool:
        return self.scale == AUTO_SCALED

    @property
    def has_numeric_id(self) -> bool:
        return self.numeric != NO_NUMERIC_ID

    @property
    def multiplier(self) -> int:
        """Major -> minor unit factor (1 for auto-scaled currencies)."""
        return 10 ** self.scale if self.scale > 0 else 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "numeric": self.numeric_id,
            "scale": self.nominal_scale,
            "kind": self.kind,
            "domain": self.domain,
            "weight": self.weight,
        }

    def __str__(self) -> str:
        return self.id


# ==============================================================================
# SCALABLE
# ==============================================================================

@scale_mod.scale_of.register
def _(value: Currency) -> int:
    return value.scale


@scale_mod.apply_scale.register
def _(value: Currency, scale: int, rounding=None) -> Currency:
    # Currencies carry no amount: rounding is irrelevant
    return value.with_scale(scale)
