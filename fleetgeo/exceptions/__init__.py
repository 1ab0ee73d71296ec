"""
Custom exceptions for the FleetGeo enrichment framework.

This module provides domain-specific exception classes for error handling
and debugging throughout the system.
"""

from .custom_exceptions import (
    FleetGeoBaseException,
    FleetGeoConfigurationError,
    FleetGeoValidationError,
    FleetGeoConnectionError,
    FleetGeoProcessingError,
)

__all__ = [
    "FleetGeoBaseException",
    "FleetGeoConfigurationError",
    "FleetGeoValidationError",
    "FleetGeoConnectionError",
    "FleetGeoProcessingError",
]
