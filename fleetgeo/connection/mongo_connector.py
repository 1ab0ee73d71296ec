"""
MongoDB connector for the FleetGeo enrichment framework.

This module provides MongoDB connection functionality with retry logic
and timeout handling for the tracking-record store.
"""

import re
from typing import Optional, Dict, Any
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from func_timeout import func_timeout, FunctionTimedOut
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config import ConfigLoader
from ..exceptions import FleetGeoConnectionError, FleetGeoConfigurationError
from ..utils import get_logger

logger = get_logger(__name__)

_CREDENTIALS_PATTERN = re.compile(r"//[^@/]+@")


def redact_uri(uri: str) -> str:
    """Hide credentials embedded in a MongoDB connection string."""
    return _CREDENTIALS_PATTERN.sub("//***@", uri)


class MongoConnector:
    """
    MongoDB connection manager with retry logic and timeout handling.

    Settings come from the environment configuration and may be overridden
    per argument (CLI flags).
    """

    def __init__(self, config_loader: ConfigLoader, environment: str = "development",
                 overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize the MongoDB connector.

        Args:
            config_loader: ConfigLoader instance for accessing configuration
            environment: Environment whose ``mongodb`` block is used
            overrides: Optional uri/database/collection values taking precedence
        """
        self.config_loader = config_loader
        self.environment = environment
        self.overrides = {k: v for k, v in (overrides or {}).items() if v}
        self._client: Optional[MongoClient] = None
        self._settings: Optional[Dict[str, Any]] = None
        logger.debug("MongoConnector initialized")

    @property
    def settings(self) -> Dict[str, Any]:
        """Effective connection settings."""
        if self._settings is None:
            settings = self.config_loader.get_mongodb_settings(self.environment)
            settings.update(self.overrides)
            for key in ("uri", "database", "collection"):
                if not settings.get(key):
                    raise FleetGeoConfigurationError(
                        f"MongoDB setting '{key}' is not configured",
                        {"environment": self.environment},
                    )
            self._settings = settings
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(ConnectionFailure),
        reraise=True,
    )
    def _open_client(self, uri: str, server_selection_timeout_ms: int) -> MongoClient:
        client = MongoClient(uri, serverSelectionTimeoutMS=server_selection_timeout_ms)
        try:
            client.admin.command("ping")
        except ConnectionFailure:
            client.close()
            raise
        return client

    def connect(self) -> MongoClient:
        """
        Establish connection to MongoDB with retry logic.

        Returns:
            MongoClient: Connected client

        Raises:
            FleetGeoConnectionError: If connection fails after retries
        """
        settings = self.settings
        uri = settings["uri"]
        connect_timeout = settings.get("connect_timeout_seconds", 30)
        selection_timeout_ms = settings.get("server_selection_timeout_ms", 5000)

        logger.info(f"Attempting connection to MongoDB at {redact_uri(uri)}")

        try:
            client = func_timeout(
                connect_timeout, self._open_client, args=(uri, selection_timeout_ms)
            )
        except FunctionTimedOut:
            raise FleetGeoConnectionError("Connection timeout - MongoDB server may be unavailable")
        except PyMongoError as e:
            error_msg = f"Failed to connect to MongoDB: {str(e)}"
            logger.error(error_msg)
            raise FleetGeoConnectionError(error_msg, {"uri": redact_uri(uri)})

        self._client = client
        logger.info(f"Connected to MongoDB database '{settings['database']}'")
        return client

    def get_collection(self, name: Optional[str] = None) -> Collection:
        """
        Get the tracking-record collection.

        Args:
            name: Collection name; defaults to the configured collection

        Raises:
            FleetGeoConnectionError: If not connected
        """
        if self._client is None:
            raise FleetGeoConnectionError("Not connected to MongoDB - call connect() first")

        settings = self.settings
        return self._client[settings["database"]][name or settings["collection"]]

    def get_connection(self) -> Optional[MongoClient]:
        """Get the current client, or None when not connected."""
        return self._client

    def is_connected(self) -> bool:
        """Check if currently connected to MongoDB."""
        return self._client is not None

    def disconnect(self) -> None:
        """Close the client and release pooled connections."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Disconnected from MongoDB")
