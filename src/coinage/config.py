"""
config.py — Declarative registry description and default registry bootstrap

================================================================================
SHAPE
================================================================================

    {
      "version":     "2026101800",
      "currencies":  [{"id": "EUR", "numeric": 978, "scale": 2,
                       "kind": "iso/fiat", "domain": "ISO-4217"},
                      {"id": "crypto/ETH", "scale": 18, "kind": "virtual/native"}],
      "countries":   {"PL": "PLN", "DE": "EUR"},
      "localized":   {"PLN": {"*": {"symbol": "PLN"}, "pl": {"symbol": "zł"}}},
      "traits":      {"crypto/USDT": ["token/erc20", "peg/fiat"]},
      "weights":     {"crypto/AAA": 5},
      "hierarchies": {"domain": {"ISO-4217-LEGACY": "ISO-4217"},
                      "kind":   {"iso/fiat": ["iso", "fiat"]}}
    }

Only "currencies" is required. Loading is total: any well-formed description
gives exactly one Registry; relations pointing at unknown currencies are
dropped with a warning.

The bundled description lives in coinage/data/currencies.json. Set the
COINAGE_CONFIG environment variable to bootstrap the default registry from
another file.

================================================================================
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Mapping
import json
import logging
import os

from .currency import Currency
from .exceptions import ConfigurationError
from .registry import Registry


__all__ = [
    "DEFAULT_CONFIG",
    "CONFIG_ENV",
    "load_config",
    "registry_from_config",
    "load_registry",
]


logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).parent / "data" / "currencies.json"
CONFIG_ENV = "COINAGE_CONFIG"

_TOP_LEVEL = {"version", "currencies", "countries", "localized", "traits", "weights", "hierarchies", "ext"}


def load_config(path: str | Path | None = None) -> dict:
    """Reads a JSON description (the bundled one when `path` is None)."""
    path = Path(path) if path is not None else DEFAULT_CONFIG
    try:
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}", op="load_config", path=str(path)) from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}", op="load_config", path=str(path))
    return data


def _section(data: Mapping[str, Any], name: str, kind: type) -> Any:
    value = data.get(name)
    if value is None:
        return kind()
    if not isinstance(value, kind):
        raise ConfigurationError(
            f"Section {name!r} must be a {kind.__name__}, got {type(value).__name__}",
            op="registry_from_config", section=name,
        )
    return value


def registry_from_config(data: Mapping[str, Any]) -> Registry:
    """Builds a Registry from an already parsed description."""
    unknown = set(data) - _TOP_LEVEL
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration sections: {sorted(unknown)}",
            op="registry_from_config", sections=sorted(unknown),
        )

    currencies = []
    for entry in _section(data, "currencies", list):
        if not isinstance(entry, Mapping):
            raise ConfigurationError(
                f"Currency entry must be an object, got {entry!r}",
                op="registry_from_config", entry=entry,
            )
        currency = Currency.from_map(entry)
        if currency is None:
            raise ConfigurationError("Currency entry without id", op="registry_from_config", entry=entry)
        currencies.append(currency)

    version = data.get("version")
    return Registry.build(
        currencies,
        countries=_section(data, "countries", dict),
        localized=_section(data, "localized", dict),
        traits=_section(data, "traits", dict),
        weights=_section(data, "weights", dict),
        hierarchies=_section(data, "hierarchies", dict),
        version=str(version) if version is not None else None,
        ext=_section(data, "ext", dict),
    )


def load_registry(path: str | Path | None = None) -> Registry:
    """
    Loads a Registry from a description file.

    Without `path`, COINAGE_CONFIG is honoured, then the bundled file.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV) or DEFAULT_CONFIG
    registry = registry_from_config(load_config(path))
    logger.info("Loaded registry %s from %s (%d currencies)", registry.version, path, len(registry))
    return registry
