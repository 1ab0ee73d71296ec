"""
Utility modules for the FleetGeo enrichment framework.

This module provides logging setup and helpers shared by the framework
and its processing modules.
"""

from .logging_setup import setup_logging, setup_logging_from_config, get_logger, log_performance

__all__ = ["setup_logging", "setup_logging_from_config", "get_logger", "log_performance"]
