"""City Enrichment Data Models

Value types for points, boundaries and administrative keys, the Brazilian
state table, configuration models and enrichment result models.
"""

from .geographic import (
    COORDINATE_TOLERANCE,
    AdministrativeKey,
    BoundaryPolygon,
    GeographicPoint,
    build_polygon,
    make_point,
    point_in_polygon,
    points_equal,
)
from .brazil import BRAZILIAN_STATES, get_state
from .settings import BoundarySettings, EnrichmentConfig, ProcessingSettings, RecordSettings
from .enrichment_models import EnrichmentOutcome, EnrichmentSummary, RecordResult

__all__ = [
    'COORDINATE_TOLERANCE',
    'AdministrativeKey',
    'BoundaryPolygon',
    'GeographicPoint',
    'build_polygon',
    'make_point',
    'point_in_polygon',
    'points_equal',
    'BRAZILIAN_STATES',
    'get_state',
    'BoundarySettings',
    'EnrichmentConfig',
    'ProcessingSettings',
    'RecordSettings',
    'EnrichmentOutcome',
    'EnrichmentSummary',
    'RecordResult',
]
