"""Enrichment Result Models

Per-record outcomes and the batch summary reported by the enrichment pipeline.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

MAX_STORED_ERRORS = 1000


class EnrichmentOutcome(str, Enum):
    """Terminal state of one tracking record."""
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"
    FAILED = "failed"


class RecordResult(BaseModel):
    """Outcome of enriching a single tracking record."""

    record_id: str = Field(..., description="String form of the document _id")
    outcome: EnrichmentOutcome
    city_key: Optional[str] = Field(None, description="Matched composite key")
    updated: bool = Field(False, description="Whether an update was issued to the store")
    error: Optional[str] = None


class EnrichmentSummary(BaseModel):
    """Counters for one enrichment batch.

    ``unresolved`` counts points that matched no boundary. A steadily high
    value usually means coordinates in the wrong order or reference system.
    Only the first ``MAX_STORED_ERRORS`` failure messages are kept; ``failed``
    counts all of them.
    """

    processed: int = Field(0, ge=0)
    resolved: int = Field(0, ge=0)
    unresolved: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    updated: int = Field(0, ge=0)
    cancelled: bool = False
    duration_seconds: float = Field(0.0, ge=0)
    errors: List[str] = Field(default_factory=list)
    completed_at: datetime = Field(default_factory=datetime.now)

    def record(self, result: RecordResult) -> None:
        self.processed += 1
        if result.outcome == EnrichmentOutcome.RESOLVED:
            self.resolved += 1
        elif result.outcome == EnrichmentOutcome.UNRESOLVED:
            self.unresolved += 1
        else:
            self.failed += 1
            if result.error and len(self.errors) < MAX_STORED_ERRORS:
                self.errors.append(f"{result.record_id}: {result.error}")
        if result.updated:
            self.updated += 1

    def get_match_rate(self) -> float:
        """Share of processed records that resolved to a city."""
        if self.processed == 0:
            return 0.0
        return self.resolved / self.processed

    def get_processing_summary(self) -> str:
        rate = self.processed / self.duration_seconds if self.duration_seconds > 0 else 0
        return (f"Processed {self.processed} records in {self.duration_seconds:.1f}s "
                f"({self.resolved} resolved, {self.unresolved} unmatched, {self.failed} failed, "
                f"{self.updated} updated, {rate:.1f} records/sec)")
