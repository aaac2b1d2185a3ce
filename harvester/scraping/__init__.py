"""
harvester/scraping package marker.
"""
