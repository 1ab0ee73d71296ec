"""Tracking-record enrichment against the boundary index."""

from .record_enricher import (
    CITY_FIELD,
    RECORD_FIELDS,
    TRANSIENT_STORE_ERRORS,
    RecordEnricher,
    build_filter,
)

__all__ = [
    'CITY_FIELD',
    'RECORD_FIELDS',
    'TRANSIENT_STORE_ERRORS',
    'RecordEnricher',
    'build_filter',
]
