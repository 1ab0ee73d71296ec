"""City Enrichment Configuration Models

Pydantic validation models for ``enrichment_config.json``.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class BoundarySettings(BaseModel):
    """Where the city boundaries come from and how placemarks are keyed."""

    kml_path: Optional[str] = Field(None, description="Path to the KML boundary file")
    legacy_multigeometry_keys: bool = Field(
        False,
        description="Key MultiGeometry placemarks by bare city name without requiring attributes",
    )
    abort_on_import_errors: bool = Field(
        False, description="Stop before enrichment when some placemarks failed to load"
    )
    use_spatial_tree: bool = Field(True, description="Pre-filter candidates with an STRtree")


class RecordSettings(BaseModel):
    """Location of the point inside tracking documents."""

    point_path: str = Field("Data.Position.Point", description="Dotted path to [longitude, latitude]")
    extra_filter: Dict[str, Any] = Field(
        default_factory=dict, description="Additional MongoDB filter criteria"
    )

    @field_validator('point_path')
    @classmethod
    def validate_point_path(cls, v: str) -> str:
        """The point must sit inside a sub-document that receives the city fields."""
        parts = v.split(".")
        if len(parts) < 2 or not all(parts):
            raise ValueError('point_path must name a field inside a sub-document, e.g. "Data.Position.Point"')
        return v

    @property
    def position_path(self) -> str:
        return self.point_path.rsplit(".", 1)[0]

    @property
    def root_field(self) -> str:
        return self.point_path.split(".", 1)[0]


class ProcessingSettings(BaseModel):
    """Enrichment throughput, timeout and retry settings."""

    max_workers: int = Field(1, ge=1, le=64, description="Concurrent enrichment workers")
    record_timeout_seconds: float = Field(30.0, gt=0, description="Upper bound on one polygon lookup")
    max_retries: int = Field(3, ge=1, le=10, description="Attempts for each store update")
    retry_wait_seconds: float = Field(1.0, ge=0, description="Initial backoff between update attempts")
    progress_interval: int = Field(1000, ge=1, description="Log progress every N records")


class EnrichmentConfig(BaseModel):
    """Complete module configuration."""

    boundaries: BoundarySettings = Field(default_factory=BoundarySettings)
    records: RecordSettings = Field(default_factory=RecordSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
