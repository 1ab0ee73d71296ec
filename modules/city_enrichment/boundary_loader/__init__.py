"""KML boundary loading for city enrichment."""

from .kml_boundary_loader import (
    KMLBoundaryLoader,
    LoadStatistics,
    PlacemarkAttributes,
    parse_coordinates,
    polygon_from_element,
)

__all__ = [
    'KMLBoundaryLoader',
    'LoadStatistics',
    'PlacemarkAttributes',
    'parse_coordinates',
    'polygon_from_element',
]
