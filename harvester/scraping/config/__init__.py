"""
Config helpers for harvest sessions.
"""

from harvester.scraping.config.loader import (
    HARVEST_KINDS,
    get_detail_harvest_settings,
    get_harvest_settings,
    get_listing_harvest_settings,
    get_locator_config_path,
    load_locator_overrides,
)
from harvester.scraping.config.models import (
    DEFAULT_SORT_ORDER,
    SCROLL_SPEED_PRESETS,
    SORT_ORDERS,
    HarvestSettings,
)

__all__ = [
    "DEFAULT_SORT_ORDER",
    "HARVEST_KINDS",
    "HarvestSettings",
    "SCROLL_SPEED_PRESETS",
    "SORT_ORDERS",
    "get_detail_harvest_settings",
    "get_harvest_settings",
    "get_listing_harvest_settings",
    "get_locator_config_path",
    "load_locator_overrides",
]
