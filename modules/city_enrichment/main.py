"""City Enrichment Module Entry Point

This module serves as the command-line interface and main entry point for the
city enrichment module.

Usage:
    python -m modules.city_enrichment.main --environment production --kml-path br_cities.kml
"""

import argparse
import json
import logging
import signal
import sys
from typing import Any, Dict, Optional

from fleetgeo.config.config_loader import ConfigLoader
from fleetgeo.exceptions import FleetGeoBaseException
from fleetgeo.utils import setup_logging_from_config

from .processor import CityEnrichmentProcessor

logger = logging.getLogger(__name__)


def _json_object(value: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}")
    if not isinstance(parsed, dict):
        raise argparse.ArgumentTypeError("filter must be a JSON object")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="FleetGeo City Enrichment - Assign Brazilian city attributes to tracking records"
    )
    parser.add_argument(
        "--environment",
        choices=["development", "production"],
        default="development",
        help="Environment to run against (default: development)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve cities without writing to MongoDB"
    )
    parser.add_argument("--kml-path", help="KML boundary file (overrides boundaries.kml_path)")
    parser.add_argument("--mongo-uri", help="MongoDB connection string (overrides MONGODB_URI)")
    parser.add_argument("--database", help="MongoDB database name")
    parser.add_argument("--collection", help="Collection holding the tracking records")
    parser.add_argument(
        "--filter",
        type=_json_object,
        help='Extra record filter as a JSON object, e.g. \'{"DeviceId": 42}\''
    )
    parser.add_argument("--workers", type=int, help="Concurrent enrichment workers")
    parser.add_argument("--config-dir", help="Directory containing environment_config.json")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level"
    )
    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the city enrichment module.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parsed_args = build_parser().parse_args(args)

    config_loader = ConfigLoader(config_dir=parsed_args.config_dir)
    try:
        env_config = config_loader.load_environment_config(parsed_args.environment)
    except FleetGeoBaseException as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging_from_config(env_config, parsed_args.environment, parsed_args.log_level)

    config_overrides = {
        "boundaries": {"kml_path": parsed_args.kml_path},
        "records": {"extra_filter": parsed_args.filter},
        "processing": {"max_workers": parsed_args.workers},
    }
    mongo_overrides = {
        "uri": parsed_args.mongo_uri,
        "database": parsed_args.database,
        "collection": parsed_args.collection,
    }

    processor = CityEnrichmentProcessor(
        config_loader,
        environment=parsed_args.environment,
        config_overrides=config_overrides,
        mongo_overrides=mongo_overrides,
    )

    def _request_stop(signum, frame):
        logger.warning(f"Received signal {signum}, finishing records in flight")
        processor.stop()

    previous_handlers = {
        sig: signal.signal(sig, _request_stop) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        result = processor.process(dry_run=parsed_args.dry_run)
    finally:
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)

    for error in result.errors[:20]:
        logger.error(error)
    if len(result.errors) > 20:
        logger.error(f"... and {len(result.errors) - 20} more errors")

    logger.info(f"City enrichment {'succeeded' if result.success else 'failed'}: "
                f"{result.records_processed} records in {result.execution_time:.2f}s")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
