"""
harvester/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class BrowserSettings:
    """
    Browser launch settings for live page drivers.
    """

    headless: bool = True
    navigation_timeout_ms: int = 30000
    initial_wait_ms: int = 2000
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_5) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    viewport_width: int = 1440
    viewport_height: int = 900
    locale: str = "en-US"


@dataclass(frozen=True)
class HarvestOutputSettings:
    """
    Where finished harvest results are written.
    """

    output_dir: str | None = None
    persist_to_database: bool = False


@lru_cache(maxsize=1)
def get_browser_settings() -> BrowserSettings:
    """
    Return cached browser settings from environment variables.
    """

    defaults = BrowserSettings()
    return BrowserSettings(
        headless=_get_bool_env("HARVEST_BROWSER_HEADLESS", defaults.headless),
        navigation_timeout_ms=max(
            1000,
            _get_int_env("HARVEST_BROWSER_NAVIGATION_TIMEOUT_MS", defaults.navigation_timeout_ms),
        ),
        initial_wait_ms=max(0, _get_int_env("HARVEST_BROWSER_INITIAL_WAIT_MS", defaults.initial_wait_ms)),
        user_agent=_get_str_env("HARVEST_BROWSER_USER_AGENT", defaults.user_agent),
        viewport_width=max(320, _get_int_env("HARVEST_BROWSER_VIEWPORT_WIDTH", defaults.viewport_width)),
        viewport_height=max(320, _get_int_env("HARVEST_BROWSER_VIEWPORT_HEIGHT", defaults.viewport_height)),
        locale=_get_str_env("HARVEST_BROWSER_LOCALE", defaults.locale),
    )


@lru_cache(maxsize=1)
def get_output_settings() -> HarvestOutputSettings:
    """
    Return cached result output settings from environment variables.
    """

    return HarvestOutputSettings(
        output_dir=_get_optional_str_env("HARVEST_OUTPUT_DIR"),
        persist_to_database=_get_bool_env("HARVEST_PERSIST_RESULTS", False),
    )
