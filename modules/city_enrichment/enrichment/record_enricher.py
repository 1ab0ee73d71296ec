"""Record Enricher

Resolves the point of each tracking record against the boundary index and
writes the matching city attributes back into the record's position
sub-document.

Records are consumed lazily from a MongoDB cursor. With one worker they are
processed in order on the calling thread; with more, a thread pool works on
at most ``2 * max_workers`` records at a time. The boundary index is
read-only and shared by all workers.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from datetime import datetime
from numbers import Real
from typing import Any, Dict, Iterable, Mapping, Optional

from func_timeout import FunctionTimedOut, func_timeout
from pymongo.errors import AutoReconnect, ConnectionFailure, NetworkTimeout, PyMongoError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from fleetgeo.exceptions import FleetGeoProcessingError

from ..exceptions import MalformedRecordError, RecordUpdateError
from ..models.enrichment_models import EnrichmentOutcome, EnrichmentSummary, RecordResult
from ..models.geographic import AdministrativeKey, GeographicPoint, make_point
from ..models.settings import EnrichmentConfig, RecordSettings
from ..spatial_index import BoundaryIndex

logger = logging.getLogger(__name__)

CITY_FIELD = "Cidade"

# Administrative key field -> field written into the position sub-document
RECORD_FIELDS = {
    "city_name": CITY_FIELD,
    "state_code": "Sigla",
    "state_name": "Estado",
    "meso_region_code": "MesoRegiao",
    "meso_region_name": "NomeMeso",
    "micro_region_code": "MicroRegiao",
    "micro_region_name": "NomeMicro",
}

TRANSIENT_STORE_ERRORS = (AutoReconnect, NetworkTimeout, ConnectionFailure)


def build_filter(settings: RecordSettings) -> Dict[str, Any]:
    """Query selecting records whose position has not been enriched yet."""
    query = dict(settings.extra_filter)
    query[f"{settings.position_path}.{CITY_FIELD}"] = {"$exists": False}
    return query


def _walk(record: Mapping[str, Any], path: str) -> Any:
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            raise KeyError(part)
        value = value[part]
    return value


class RecordEnricher:
    """Enriches tracking records with the city containing their position.

    Args:
        index: Boundary index used for lookups
        collection: pymongo collection (or any object with ``update_one``)
        settings: Module configuration
        dry_run: Resolve and count without writing to the store
    """

    def __init__(self, index: BoundaryIndex, collection, settings: Optional[EnrichmentConfig] = None,
                 dry_run: bool = False):
        self.index = index
        self.collection = collection
        self.settings = settings or EnrichmentConfig()
        self.dry_run = dry_run
        self._stop_event = threading.Event()

        processing = self.settings.processing
        self._retrying = Retrying(
            stop=stop_after_attempt(processing.max_retries),
            wait=wait_exponential(multiplier=processing.retry_wait_seconds, max=30),
            retry=retry_if_exception_type(TRANSIENT_STORE_ERRORS),
            reraise=True,
        )

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Stop handing out new records; in-flight records still finish."""
        if not self._stop_event.is_set():
            logger.info("Enrichment stop requested")
        self._stop_event.set()

    def extract_point(self, record: Mapping[str, Any]) -> GeographicPoint:
        """Read the ``[longitude, latitude]`` pair from a record.

        Raises:
            MalformedRecordError: If the path is missing or the value is not
                a pair of numbers
        """
        point_path = self.settings.records.point_path
        try:
            value = _walk(record, point_path)
        except KeyError:
            raise MalformedRecordError(f"Record has no point at '{point_path}'") from None

        if (not isinstance(value, (list, tuple)) or len(value) != 2
                or not all(isinstance(v, Real) and not isinstance(v, bool) for v in value)):
            raise MalformedRecordError(
                f"Point at '{point_path}' must be [longitude, latitude]",
                {"value": repr(value)},
            )
        return make_point(float(value[0]), float(value[1]))

    def resolve(self, point: GeographicPoint) -> Optional[AdministrativeKey]:
        """Look up the city containing ``point`` within the record timeout.

        Raises:
            FleetGeoProcessingError: If the lookup exceeds the timeout
            InvalidAdministrativeKeyError: If the match is not a full key
        """
        timeout = self.settings.processing.record_timeout_seconds
        try:
            return func_timeout(timeout, self.index.resolve, args=(point,))
        except FunctionTimedOut:
            raise FleetGeoProcessingError(
                f"Boundary lookup timed out after {timeout}s", {"point": point.to_wkt()}
            ) from None

    def apply_key(self, record: Dict[str, Any], key: AdministrativeKey) -> Dict[str, Any]:
        """Write the administrative fields into the record's position sub-document."""
        position = _walk(record, self.settings.records.position_path)
        for key_field, record_field in RECORD_FIELDS.items():
            position[record_field] = getattr(key, key_field)
        return position

    def write_record(self, record: Mapping[str, Any]) -> None:
        """Replace the record's top-level sub-document holding the position.

        Raises:
            RecordUpdateError: If the update still fails after retries
        """
        root_field = self.settings.records.root_field
        try:
            self._retrying.copy()(
                self.collection.update_one,
                {"_id": record["_id"]},
                {"$set": {root_field: record[root_field]}},
            )
        except PyMongoError as e:
            raise RecordUpdateError(
                f"Failed to update record: {e}", {"record_id": str(record.get("_id"))}
            ) from e

    def enrich_record(self, record: Dict[str, Any]) -> RecordResult:
        """Resolve and update a single record; failures are contained."""
        record_id = str(record.get("_id"))
        try:
            point = self.extract_point(record)
            key = self.resolve(point)
            if key is None:
                logger.debug(f"Record {record_id} at {point.to_wkt()} matched no city boundary")
                return RecordResult(record_id=record_id, outcome=EnrichmentOutcome.UNRESOLVED)

            self.apply_key(record, key)
            if not self.dry_run:
                self.write_record(record)
            return RecordResult(
                record_id=record_id,
                outcome=EnrichmentOutcome.RESOLVED,
                city_key=key.to_key_string(),
                updated=not self.dry_run,
            )
        except Exception as e:
            logger.error(f"Failed to enrich record {record_id} (point: {self._raw_point(record)}): {e}")
            return RecordResult(record_id=record_id, outcome=EnrichmentOutcome.FAILED, error=str(e))

    def enrich_cursor(self, cursor: Iterable[Dict[str, Any]]) -> EnrichmentSummary:
        """Enrich every record yielded by ``cursor`` and summarize the batch."""
        start = time.perf_counter()
        summary = EnrichmentSummary()
        workers = self.settings.processing.max_workers
        mode = "sequentially" if workers == 1 else f"with {workers} workers"
        logger.info(f"Starting record enrichment {mode}{' (dry run)' if self.dry_run else ''}")

        if workers == 1:
            self._enrich_sequential(cursor, summary)
        else:
            self._enrich_parallel(cursor, summary, workers)

        summary.duration_seconds = time.perf_counter() - start
        summary.completed_at = datetime.now()
        if summary.cancelled:
            logger.warning(f"Enrichment cancelled: {summary.get_processing_summary()}")
        else:
            logger.info(summary.get_processing_summary())
        return summary

    def _enrich_sequential(self, cursor, summary: EnrichmentSummary) -> None:
        for record in cursor:
            if self.stopped:
                summary.cancelled = True
                break
            self._record(summary, self.enrich_record(record))

    def _enrich_parallel(self, cursor, summary: EnrichmentSummary, workers: int) -> None:
        max_pending = 2 * workers
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="enricher") as executor:
            pending = set()
            for record in cursor:
                if self.stopped:
                    summary.cancelled = True
                    break
                pending.add(executor.submit(self.enrich_record, record))
                if len(pending) >= max_pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        self._record(summary, future.result())

            for future in pending:
                self._record(summary, future.result())

    def _record(self, summary: EnrichmentSummary, result: RecordResult) -> None:
        summary.record(result)
        if summary.processed % self.settings.processing.progress_interval == 0:
            logger.info(f"Progress: {summary.processed} records processed, "
                        f"{summary.resolved} resolved, {summary.unresolved} unmatched")

    def _raw_point(self, record: Mapping[str, Any]) -> str:
        try:
            return repr(_walk(record, self.settings.records.point_path))
        except KeyError:
            return "missing"
