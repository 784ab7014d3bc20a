"""Process-wide Settings built from config/*.toml and RETAINER_* variables.

    from retainer.config import get_settings

    timeout = get_settings().providers.llm.timeout
"""

from functools import lru_cache

from retainer.config.loader import load_config
from retainer.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load configuration on first use and reuse it afterwards."""
    set_toml_config(load_config())
    return Settings()


def reload_settings() -> Settings:
    """Re-read the TOML files and environment."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings"]
