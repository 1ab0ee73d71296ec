"""CityEnrichmentProcessor Implementation

Implements the ModuleProcessor interface for the city enrichment module:
load the KML city boundaries, select the tracking records that have no city
yet, and write the resolved administrative fields back to MongoDB.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from fleetgeo.config.config_loader import ConfigLoader
from fleetgeo.connection import MongoConnector
from fleetgeo.exceptions import FleetGeoBaseException, FleetGeoConfigurationError
from fleetgeo.interfaces.module_processor import ModuleProcessor, ModuleStatus, ProcessingResult

from ..boundary_loader import KMLBoundaryLoader
from ..enrichment import RecordEnricher, build_filter
from ..exceptions import AggregatedImportError
from ..models.settings import EnrichmentConfig
from ..spatial_index import BoundaryIndex

logger = logging.getLogger(__name__)

MODULE_NAME = "city_enrichment"
CONFIG_NAME = "modules.city_enrichment.enrichment_config"


def _merge_sections(base: Dict[str, Any], overrides: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in base.items()}
    for section, values in overrides.items():
        target = merged.setdefault(section, {})
        target.update({k: v for k, v in values.items() if v is not None})
    return merged


class CityEnrichmentProcessor(ModuleProcessor):
    """City enrichment implementing the ModuleProcessor interface.

    Boundary placemarks that fail to load are reported in the result errors.
    Unless ``boundaries.abort_on_import_errors`` is set, enrichment still runs
    against the boundaries that did load.
    """

    def __init__(self, config_loader: ConfigLoader, environment: str = "development",
                 config_overrides: Optional[Dict[str, Dict[str, Any]]] = None,
                 mongo_overrides: Optional[Dict[str, Any]] = None,
                 connector: Optional[MongoConnector] = None):
        """Initialize the processor.

        Args:
            config_loader: ConfigLoader instance providing access to framework configuration
            environment: Environment whose MongoDB settings are used
            config_overrides: Per-section values replacing ``enrichment_config.json`` entries
            mongo_overrides: uri/database/collection values replacing the environment's
            connector: Pre-built connector, mainly for tests
        """
        self.config_loader = config_loader
        self.environment = environment
        self.config_overrides = config_overrides or {}
        self.connector = connector or MongoConnector(config_loader, environment, mongo_overrides)
        self.enricher: Optional[RecordEnricher] = None
        self.import_errors: List[str] = []
        self._module_config: Optional[EnrichmentConfig] = None
        self._last_run: Optional[datetime] = None
        self._running = False
        self._stop_requested = threading.Event()

        logger.info("CityEnrichmentProcessor initialized")

    def get_module_config(self) -> EnrichmentConfig:
        """Validated module configuration with overrides applied.

        The environment's ``processing`` block overrides the module file's
        ``processing`` section, and ``config_overrides`` override both.

        Raises:
            FleetGeoConfigurationError: If the file is missing or fails validation
        """
        if self._module_config is None:
            raw_config = self.config_loader.get_config(CONFIG_NAME)
            env_config = self.config_loader.load_environment_config(self.environment)
            merged = _merge_sections(raw_config, {"processing": env_config.get("processing", {})})
            try:
                self._module_config = EnrichmentConfig.model_validate(
                    _merge_sections(merged, self.config_overrides)
                )
            except ValidationError as e:
                raise FleetGeoConfigurationError(
                    f"Invalid city enrichment configuration: {e}"
                ) from e
        return self._module_config

    def validate_configuration(self) -> bool:
        """Validate module configuration, boundary file and MongoDB settings."""
        try:
            self.config_loader.validate_environment_variables(self.environment)
            config = self.get_module_config()

            kml_path = config.boundaries.kml_path
            if not kml_path:
                logger.error("No KML boundary file configured (boundaries.kml_path)")
                return False
            if not Path(kml_path).exists():
                logger.error(f"KML boundary file not found: {kml_path}")
                return False

            settings = self.connector.settings
            logger.debug(f"Target collection: {settings['database']}.{settings['collection']}")

            logger.info("Module configuration validation successful")
            return True

        except FleetGeoBaseException as e:
            logger.error(f"Configuration validation failed: {e}")
            return False

    def load_boundaries(self) -> BoundaryIndex:
        """Load the configured KML file into a boundary index.

        Raises:
            AggregatedImportError: If placemarks failed and abort_on_import_errors is set
        """
        config = self.get_module_config()
        loader = KMLBoundaryLoader(config.boundaries)
        self.import_errors = []
        try:
            return loader.load()
        except AggregatedImportError as e:
            if config.boundaries.abort_on_import_errors:
                raise
            self.import_errors = list(e.messages)
            logger.warning(f"{len(e.messages)} placemarks failed to load; "
                           f"continuing with {len(e.index)} boundaries")
            return e.index

    def process(self, dry_run: bool = False) -> ProcessingResult:
        """Enrich all tracking records that have no city yet.

        Args:
            dry_run: Resolve cities without writing to MongoDB

        Returns:
            ProcessingResult: Standardized result object with success status, metrics, and errors
        """
        start_time = datetime.now()
        logger.info(f"Starting city enrichment process (dry_run={dry_run})")

        if not self.validate_configuration():
            return ProcessingResult(
                success=False,
                records_processed=0,
                errors=["Configuration validation failed"],
                metadata={"dry_run": dry_run},
                execution_time=0.0
            )

        self._running = True
        try:
            config = self.get_module_config()
            index = self.load_boundaries()
            if self._stop_requested.is_set():
                return self._cancelled_result(start_time, dry_run)
            if len(index) == 0:
                return ProcessingResult(
                    success=False,
                    records_processed=0,
                    errors=self.import_errors + ["No city boundaries were loaded"],
                    metadata={"dry_run": dry_run, "environment": self.environment},
                    execution_time=(datetime.now() - start_time).total_seconds()
                )

            self.connector.connect()
            if self._stop_requested.is_set():
                return self._cancelled_result(start_time, dry_run)

            collection = self.connector.get_collection()
            self.enricher = RecordEnricher(index, collection, config, dry_run=dry_run)
            if self._stop_requested.is_set():
                self.enricher.stop()

            query = build_filter(config.records)
            logger.debug(f"Record filter: {query}")
            cursor = collection.find(query)
            try:
                summary = self.enricher.enrich_cursor(cursor)
            finally:
                cursor.close()

            execution_time = (datetime.now() - start_time).total_seconds()
            if not summary.cancelled:
                self._last_run = datetime.now()

            metadata = summary.model_dump(mode="json", exclude={"errors"})
            metadata.update({
                "dry_run": dry_run,
                "environment": self.environment,
                "boundaries_loaded": len(index),
                "boundary_import_errors": len(self.import_errors),
                "match_rate": round(summary.get_match_rate(), 4),
            })

            logger.info(f"Processing completed: {summary.processed} records processed "
                        f"in {execution_time:.2f}s")

            return ProcessingResult(
                success=not summary.cancelled,
                records_processed=summary.processed,
                errors=self.import_errors + summary.errors,
                metadata=metadata,
                execution_time=execution_time
            )

        except Exception as e:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(f"Processing failed: {e}")

            return ProcessingResult(
                success=False,
                records_processed=0,
                errors=[str(e)],
                metadata={"dry_run": dry_run, "error_occurred_at": datetime.now().isoformat()},
                execution_time=execution_time
            )
        finally:
            self._running = False
            self._stop_requested.clear()
            self.connector.disconnect()

    def _cancelled_result(self, start_time: datetime, dry_run: bool) -> ProcessingResult:
        logger.warning("Processing cancelled before enrichment started")
        return ProcessingResult(
            success=False,
            records_processed=0,
            errors=self.import_errors + ["Processing cancelled before enrichment started"],
            metadata={"dry_run": dry_run, "environment": self.environment, "cancelled": True},
            execution_time=(datetime.now() - start_time).total_seconds()
        )

    def stop(self) -> None:
        """Cancel the current or next run after the records already in flight.

        A request made while boundaries load or MongoDB connects takes effect
        before any record is read.
        """
        self._stop_requested.set()
        if self.enricher is not None:
            self.enricher.stop()

    def get_status(self) -> ModuleStatus:
        """Get current module processing status.

        Returns:
            ModuleStatus: Current module status and health information
        """
        is_configured = self.validate_configuration()
        health_check_result = is_configured and self._health_check()

        if self._running:
            status = "running"
        elif is_configured and health_check_result:
            status = "ready"
        else:
            status = "error"

        return ModuleStatus(
            module_name=MODULE_NAME,
            is_configured=is_configured,
            last_run=self._last_run,
            status=status,
            health_check=health_check_result
        )

    def _health_check(self) -> bool:
        """Check that MongoDB is reachable."""
        if self.connector.is_connected():
            return True
        try:
            self.connector.connect()
            return True
        except FleetGeoBaseException as e:
            logger.warning(f"Health check failed: {e}")
            return False
        finally:
            self.connector.disconnect()
