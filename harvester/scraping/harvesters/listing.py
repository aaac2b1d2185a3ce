"""
Listing harvester: venue cards from a search-results feed.
"""

from __future__ import annotations

from harvester.scraping.harvesters.base import HarvesterBase


class ListingHarvester(HarvesterBase):
    """
    Harvest venue listings; no pre-phase.
    """

    kind = "listing"
