"""FleetGeo Framework Interfaces

Abstract interfaces and result models shared by all FleetGeo processing modules.
"""

from .module_processor import ModuleProcessor, ProcessingResult, ModuleStatus

__all__ = ['ModuleProcessor', 'ProcessingResult', 'ModuleStatus']
