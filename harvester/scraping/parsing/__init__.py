"""
Extraction schemas and the locator interpreter they share.
"""

from harvester.scraping.parsing.base import ExtractionSchema
from harvester.scraping.parsing.listing import ListingSchema, normalize_place_url
from harvester.scraping.parsing.locators import FieldLocator, clean_text, locate_field
from harvester.scraping.parsing.reviews import ReviewSchema, clean_subject_name

__all__ = [
    "ExtractionSchema",
    "FieldLocator",
    "ListingSchema",
    "ReviewSchema",
    "clean_subject_name",
    "clean_text",
    "locate_field",
    "normalize_place_url",
]
