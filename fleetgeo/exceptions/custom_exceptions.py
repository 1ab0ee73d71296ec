"""
Custom exception classes for the FleetGeo enrichment framework.

This module defines domain-specific exceptions to provide clear error handling
and debugging information throughout the system.
"""

from typing import Optional, Dict, Any


class FleetGeoBaseException(Exception):
    """Base exception class for all FleetGeo exceptions."""
    
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
    
    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message


class FleetGeoConfigurationError(FleetGeoBaseException):
    """
    Exception raised when configuration loading or validation fails.
    
    This exception is raised when:
    - Configuration files are missing or invalid
    - Environment configuration is malformed
    - Required input files (boundary KML) cannot be found
    """
    pass


class FleetGeoValidationError(FleetGeoBaseException):
    """
    Exception raised when data validation fails.
    
    This exception is raised when:
    - Boundary geometry or attributes are malformed
    - Tracking records do not have the expected shape
    - Required environment variables are missing
    """
    pass


class FleetGeoConnectionError(FleetGeoBaseException):
    """
    Exception raised when the MongoDB connection fails.
    
    This exception is raised when:
    - Network connection issues
    - Server selection or ping timeouts
    - Authentication is rejected by the server
    """
    pass


class FleetGeoProcessingError(FleetGeoBaseException):
    """
    Exception raised when boundary loading or enrichment fails.
    
    This exception is raised when:
    - The boundary file cannot be parsed
    - Boundary import finishes with per-feature errors
    - Record updates fail after retries
    """
    pass
