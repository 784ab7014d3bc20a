"""Locate and merge the TOML files behind Settings.

`config/default.toml` is required; `config/{RETAINER_ENV}.toml` is merged
over it when present.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_VAR = "RETAINER_CONFIG_DIR"
ENV_VAR = "RETAINER_ENV"
DEFAULT_ENV = "development"

# Repository checkout: <root>/retainer/config/loader.py -> <root>/config
_PACKAGED_CONFIG = Path(__file__).resolve().parents[2] / "config"


def get_config_dir() -> Path:
    """Resolve the directory holding the TOML files.

    RETAINER_CONFIG_DIR wins and must exist. Otherwise the first `config/`
    found walking up from the working directory is used, then the one in
    the repository checkout.
    """
    explicit = os.environ.get(CONFIG_DIR_VAR)
    if explicit:
        path = Path(explicit)
        if not path.is_dir():
            raise FileNotFoundError(f"{CONFIG_DIR_VAR} points to a missing directory: {path}")
        return path

    cwd = Path.cwd()
    for candidate in (cwd, *cwd.parents[:4]):
        if (candidate / "config").is_dir():
            return candidate / "config"
    return _PACKAGED_CONFIG


def get_environment() -> str:
    """Name of the environment overlay (RETAINER_ENV, default development)."""
    return os.environ.get(ENV_VAR, DEFAULT_ENV)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: No such file
        tomllib.TOMLDecodeError: Invalid TOML
    """
    try:
        with file_path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {file_path}") from None


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return base updated with override; tables merge, other values replace."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config() -> dict[str, Any]:
    """Read default.toml and merge the environment overlay over it."""
    config_dir = get_config_dir()
    default_path = config_dir / "default.toml"
    if not default_path.is_file():
        raise FileNotFoundError(
            f"Missing {default_path}; add config/default.toml or set {CONFIG_DIR_VAR}"
        )

    config = load_toml(default_path)
    overlay = config_dir / f"{get_environment()}.toml"
    if overlay.is_file():
        config = deep_merge(config, load_toml(overlay))
    return config
