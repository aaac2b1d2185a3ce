"""
Page driver interfaces.

The Playwright implementation lives in
harvester.scraping.drivers.playwright_driver and is imported explicitly so
the harvest engine does not pull in a browser runtime.
"""

from harvester.scraping.drivers.base import PageDriver, Region, contains_keyword

__all__ = ["PageDriver", "Region", "contains_keyword"]
