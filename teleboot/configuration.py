"""Layered host configuration: settings files, environment variables and overrides.

Resolution order, later layers win:

1. ``appsettings.yaml`` (``.yml`` / ``.json`` also accepted) in the base directory
2. ``appsettings.<Environment>.<ext>`` (optional)
3. the file named by the top-level ``GlobalConfigPath`` key, when set
4. environment variables whose name contains ``__`` (``Section__Key``)
5. explicit ``Section:Key=value`` overrides
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from teleboot.settings import lookup

ENVIRONMENT_VAR = "TELEBOOT_ENVIRONMENT"
DEFAULT_ENVIRONMENT = "Production"
GLOBAL_CONFIG_KEY = "GlobalConfigPath"
_EXTENSIONS = (".yaml", ".yml", ".json")


class ConfigurationFileError(Exception):
    """Raised when a configuration file cannot be read or parsed."""


def _read_tree(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text()
    except OSError as e:
        raise ConfigurationFileError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationFileError(f"Invalid configuration in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationFileError(
            f"Expected a mapping in {path}, got {type(data).__name__}"
        )
    return data


def _find(base_dir: Path, stem: str) -> Path | None:
    for ext in _EXTENSIONS:
        candidate = base_dir / f"{stem}{ext}"
        if candidate.is_file():
            return candidate
    return None


def _matching_key(tree: Mapping[str, Any], key: str) -> str:
    """Return the existing spelling of *key* in *tree*, or *key* itself."""
    folded = key.casefold()
    for existing in tree:
        if isinstance(existing, str) and existing.casefold() == folded:
            return existing
    return key


def merge_trees(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge *overlay* into *base* in place, matching keys case-insensitively."""
    for key, value in overlay.items():
        target = _matching_key(base, str(key))
        current = base.get(target)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merge_trees(current, value)
        elif isinstance(value, Mapping):
            base[target] = merge_trees({}, value)
        else:
            base[target] = value
    return base


def _nest(path: Iterable[str], value: Any) -> Any:
    parts = [p for p in path if p]
    tree: Any = value
    for part in reversed(parts):
        tree = {part: tree}
    return tree


def environment_tree(environ: Mapping[str, str]) -> dict[str, Any]:
    """Turn ``Section__Key=value`` variables into a nested tree."""
    tree: dict[str, Any] = {}
    for name, value in environ.items():
        if "__" not in name:
            continue
        nested = _nest(name.split("__"), value)
        if isinstance(nested, dict):
            merge_trees(tree, nested)
    return tree


def parse_override(raw: str) -> dict[str, Any]:
    """Parse ``Section:Key=value`` into a nested tree (``__`` works as separator too)."""
    key, sep, value = raw.partition("=")
    nested = _nest(key.strip().replace("__", ":").split(":"), value)
    if not sep or not isinstance(nested, dict):
        raise ValueError(f"Override must look like Section:Key=value, got {raw!r}")
    return nested


def load_configuration(
    base_dir: Path,
    *,
    environment: str | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Iterable[str] = (),
) -> dict[str, Any]:
    """Build the merged configuration tree rooted at *base_dir*."""
    environ = os.environ if environ is None else environ
    environment = environment or environ.get(ENVIRONMENT_VAR) or DEFAULT_ENVIRONMENT

    base_file = _find(base_dir, "appsettings")
    if base_file is None:
        raise ConfigurationFileError(f"No appsettings.yaml/.yml/.json found in {base_dir}")
    tree = _read_tree(base_file)

    env_file = _find(base_dir, f"appsettings.{environment}")
    if env_file is not None:
        merge_trees(tree, _read_tree(env_file))

    global_path = lookup(tree, GLOBAL_CONFIG_KEY)
    if isinstance(global_path, str) and global_path.strip():
        path = Path(global_path.strip()).expanduser()
        if not path.is_absolute():
            path = base_dir / path
        merge_trees(tree, _read_tree(path))

    merge_trees(tree, environment_tree(environ))
    for raw in overrides:
        merge_trees(tree, parse_override(raw))
    return tree
