"""
Connection module for the FleetGeo enrichment framework.

This module provides MongoDB connectivity with retry and timeout handling.
"""

from .mongo_connector import MongoConnector, redact_uri

__all__ = [
    'MongoConnector',
    'redact_uri',
]
