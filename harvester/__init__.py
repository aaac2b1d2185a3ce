"""
Incremental scroll-feed harvesting for venue listings and reviews.
"""
