"""
Environment + JSON config loader for harvest sessions.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from harvester.config import _get_int_env, _get_optional_str_env, _get_str_env
from harvester.scraping.config.models import DEFAULT_SORT_ORDER, SORT_ORDERS, HarvestSettings

HARVEST_KINDS = ("listing", "detail")


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_listing_harvest_settings() -> HarvestSettings:
    """
    Return cached listing harvest settings from environment variables.
    """

    return HarvestSettings(
        kind="listing",
        cap=max(1, _get_int_env("LISTING_HARVEST_CAP", 2000)),
        scroll_delay_ms=max(0, _get_int_env("LISTING_HARVEST_SCROLL_DELAY_MS", 600)),
        stabilize_delay_ms=max(0, _get_int_env("LISTING_HARVEST_STABILIZE_DELAY_MS", 1000)),
        no_change_limit=max(1, _get_int_env("LISTING_HARVEST_NO_CHANGE_LIMIT", 3)),
        max_steps=max(1, _get_int_env("LISTING_HARVEST_MAX_STEPS", 50)),
    )


@lru_cache(maxsize=1)
def get_detail_harvest_settings() -> HarvestSettings:
    """
    Return cached review harvest settings from environment variables.
    """

    sort_order = _get_str_env("DETAIL_HARVEST_SORT_ORDER", DEFAULT_SORT_ORDER).lower()
    if sort_order not in SORT_ORDERS:
        sort_order = DEFAULT_SORT_ORDER

    return HarvestSettings(
        kind="detail",
        cap=max(1, _get_int_env("DETAIL_HARVEST_CAP", 2000)),
        scroll_delay_ms=max(0, _get_int_env("DETAIL_HARVEST_SCROLL_DELAY_MS", 800)),
        stabilize_delay_ms=max(0, _get_int_env("DETAIL_HARVEST_STABILIZE_DELAY_MS", 1000)),
        no_change_limit=max(1, _get_int_env("DETAIL_HARVEST_NO_CHANGE_LIMIT", 15)),
        max_steps=max(1, _get_int_env("DETAIL_HARVEST_MAX_STEPS", 500)),
        sort_order=sort_order,
    )


def get_harvest_settings(kind: str) -> HarvestSettings:
    normalized = kind.strip().lower()
    if normalized == "listing":
        return get_listing_harvest_settings()
    if normalized == "detail":
        return get_detail_harvest_settings()
    allowed = ", ".join(HARVEST_KINDS)
    raise ValueError(f"Unknown harvest kind '{kind}'. Allowed kinds: {allowed}.")


def get_locator_config_path() -> str | None:
    raw = _get_optional_str_env("HARVEST_LOCATOR_CONFIG_PATH")
    if raw is None:
        return None
    return str(_resolve_config_path(raw))


def load_locator_overrides(*, config_path: str | None) -> dict[str, dict[str, list[object]]]:
    """
    Load per-kind locator overrides from a JSON file.

    Expected shape: {"listing": {"rating": [...]}, "detail": {...}}. Entries
    are selector strings or {"selector", "attribute", "pattern"} objects;
    anything else is dropped here or when the schema builds its locators.
    """

    if config_path is None:
        return {}

    path = _resolve_config_path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Locator config file not found: {path}")

    raw_data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw_data, dict):
        raise ValueError("Invalid locator config: top level must be an object.")

    parsed: dict[str, dict[str, list[object]]] = {}
    for kind, fields in raw_data.items():
        if not isinstance(kind, str) or kind.strip().lower() not in HARVEST_KINDS:
            continue
        if not isinstance(fields, dict):
            continue
        parsed[kind.strip().lower()] = _normalize_fields(fields)
    return parsed


def _normalize_fields(fields: dict) -> dict[str, list[object]]:
    normalized: dict[str, list[object]] = {}
    for key, value in fields.items():
        if not isinstance(key, str) or not key.strip():
            continue
        if isinstance(value, (str, dict)):
            entries = [value]
        elif isinstance(value, list):
            entries = [item for item in value if isinstance(item, (str, dict))]
        else:
            entries = []
        normalized[key.strip().lower()] = entries
    return normalized
