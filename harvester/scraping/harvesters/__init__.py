"""
Harvester subclass exports.
"""

from harvester.scraping.harvesters.base import HarvesterBase
from harvester.scraping.harvesters.detail import DetailHarvester
from harvester.scraping.harvesters.listing import ListingHarvester

__all__ = ["DetailHarvester", "HarvesterBase", "ListingHarvester"]
