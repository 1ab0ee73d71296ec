"""City Enrichment Module

Assigns Brazilian municipality, state, meso-region and micro-region
attributes to tracking records by locating each record's position inside
the city boundaries of a KML file.
"""

from .processor import CityEnrichmentProcessor

__all__ = ['CityEnrichmentProcessor']
