"""
FleetGeo Framework Core Package

This package contains the core infrastructure for the FleetGeo tracking-data
utilities, providing shared configuration, logging, connection and interface
components for processing modules.
"""

from .interfaces import ModuleProcessor, ProcessingResult, ModuleStatus

__version__ = "1.0.0"
__all__ = ['ModuleProcessor', 'ProcessingResult', 'ModuleStatus']
