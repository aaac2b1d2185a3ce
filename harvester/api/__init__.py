"""
harvester/api package marker.
"""
