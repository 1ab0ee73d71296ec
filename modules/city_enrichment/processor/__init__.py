"""City enrichment processor."""

from .city_enrichment_processor import CONFIG_NAME, MODULE_NAME, CityEnrichmentProcessor

__all__ = ['CityEnrichmentProcessor', 'CONFIG_NAME', 'MODULE_NAME']
