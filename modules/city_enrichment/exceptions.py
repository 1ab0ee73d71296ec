"""City Enrichment Specific Exceptions

Extends the framework exception hierarchy with boundary-loading and
record-enrichment error types.
"""

from typing import List, Optional

from fleetgeo.exceptions import FleetGeoProcessingError, FleetGeoValidationError


class InvalidPolygonError(FleetGeoValidationError):
    """Raised when a ring is empty, too short or not closed."""
    pass


class UnknownStateCodeError(FleetGeoValidationError):
    """Raised for a state abbreviation outside the Brazilian state table."""

    def __init__(self, state_code: Optional[str]):
        super().__init__(f"Unknown state code: {state_code!r}")
        self.state_code = state_code


class InvalidAdministrativeKeyError(FleetGeoValidationError):
    """Raised when a composite key does not split into seven fields."""
    pass


class MalformedRecordError(FleetGeoValidationError):
    """Raised when a tracking record lacks a [longitude, latitude] point."""
    pass


class BoundaryFileError(FleetGeoProcessingError):
    """Raised when the boundary document cannot be read or parsed."""
    pass


class AggregatedImportError(FleetGeoProcessingError):
    """Raised once after a boundary load in which some placemarks failed.

    The successfully parsed entries are already committed; ``index`` holds
    the usable, partially populated BoundaryIndex.
    """

    def __init__(self, messages: List[str], index=None):
        super().__init__("\n".join(messages), {"failed_features": len(messages)})
        self.messages = list(messages)
        self.index = index


class RecordUpdateError(FleetGeoProcessingError):
    """Raised when a record update still fails after retries."""
    pass
