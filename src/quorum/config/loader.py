"""Configuration loading for quorum.

Layers are merged in order, each overriding the one before:

    1. Built-in defaults (the Pydantic model defaults)
    2. ``$XDG_CONFIG_HOME/quorum/config.toml`` (``~/.config`` fallback)
    3. ``./quorum.toml`` in the working directory
    4. The file named by ``$QUORUM_CONFIG``
    5. An explicit ``path`` (the ``--config`` flag)
    6. Programmatic overrides

Every key remembers the layer that set it last, so a bad swarm value is
reported against the file it came from rather than the merged result.
API keys are then filled in from each provider's ``api_key_env``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from quorum.core.errors import ConfigError

from .schema import QuorumConfig

DEFAULTS = "defaults"
OVERRIDES = "overrides"

Origins = dict[tuple[str, ...], str]


def _user_config_path() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    root = Path(xdg) if xdg else Path.home() / ".config"
    return root / "quorum" / "config.toml"


def _discover_config_files() -> list[Path]:
    """Config files that exist, lowest priority first."""
    found = [
        candidate
        for candidate in (_user_config_path(), Path.cwd() / "quorum.toml")
        if candidate.is_file()
    ]

    env_path = os.environ.get("QUORUM_CONFIG")
    if env_path:
        if not Path(env_path).is_file():
            msg = f"QUORUM_CONFIG points to non-existent file: {env_path}"
            raise ConfigError(msg)
        found.append(Path(env_path))
    return found


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge *override* into a copy of *base*; tables merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _record_origins(
    layer: dict[str, Any], origin: str, origins: Origins, prefix: tuple[str, ...] = ()
) -> None:
    """Mark every leaf key in *layer* as last set by *origin*."""
    for key, value in layer.items():
        loc = (*prefix, key)
        if isinstance(value, dict) and value:
            _record_origins(value, origin, origins, loc)
        else:
            # Re-insert so dict order tracks the most recent setter.
            origins.pop(loc, None)
            origins[loc] = origin


def _origin_of(loc: tuple[str, ...], origins: Origins) -> str:
    """Name the layer responsible for a validation error at *loc*.

    A field error maps to the layer that set that field.  A section
    error (for example a cross-field check on ``[swarm]``) maps to the
    last layer that touched any key in the section.
    """
    for depth in range(len(loc), 0, -1):
        origin = origins.get(loc[:depth])
        if origin is not None:
            return origin
    inside = [o for key, o in origins.items() if key[: len(loc)] == loc]
    return inside[-1] if inside else DEFAULTS


def _describe(error: ValidationError, origins: Origins) -> str:
    lines = ["Configuration validation failed:"]
    for detail in error.errors():
        loc = tuple(str(part) for part in detail["loc"])
        where = ".".join(loc) or "<root>"
        lines.append(f"  {where}: {detail['msg']} (from {_origin_of(loc, origins)})")
    return "\n".join(lines)


def _resolve_api_keys(config: QuorumConfig) -> None:
    for provider in config.providers.values():
        if provider.api_key is None and provider.api_key_env:
            provider.api_key = os.environ.get(provider.api_key_env)


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> QuorumConfig:
    """Load, merge, and validate configuration.

    Raises:
        ConfigError: On a missing explicit file, invalid TOML, or a value
            the schema rejects.  Validation messages name the file (or
            ``overrides``) that supplied each bad value.
    """
    files = _discover_config_files()
    if path is not None:
        explicit = Path(path)
        if not explicit.is_file():
            msg = f"Config file not found: {path}"
            raise ConfigError(msg)
        files.append(explicit)

    layers: list[tuple[str, dict[str, Any]]] = [
        (str(f), _read_toml(f)) for f in files
    ]
    if overrides:
        layers.append((OVERRIDES, overrides))

    merged: dict[str, Any] = {}
    origins: Origins = {}
    for origin, layer in layers:
        merged = _deep_merge(merged, layer)
        _record_origins(layer, origin, origins)

    try:
        config = QuorumConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(_describe(e, origins)) from e

    _resolve_api_keys(config)
    return config
