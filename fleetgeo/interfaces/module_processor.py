"""FleetGeo Module Processor Interface

This module defines the abstract base class and data models that every FleetGeo
processing module implements, so the CLI can configure, run and report on
modules in a uniform way.
"""

from abc import ABC, abstractmethod
from pydantic import BaseModel, Field
from typing import Optional, Dict, List, Any
from datetime import datetime


class ProcessingResult(BaseModel):
    """Result data model for module processing operations.

    Standardizes the return value of a processing run: success flag, record
    counts, collected error messages and free-form run metadata.
    """

    success: bool = Field(..., description="Whether the processing completed successfully")
    records_processed: int = Field(ge=0, description="Number of records processed")
    errors: List[str] = Field(default_factory=list, description="List of error messages if any")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional processing metadata")
    execution_time: float = Field(ge=0.0, description="Processing execution time in seconds")


class ModuleStatus(BaseModel):
    """Status data model for module health and configuration reporting."""

    module_name: str = Field(..., description="Name of the processing module")
    is_configured: bool = Field(..., description="Whether the module is properly configured")
    last_run: Optional[datetime] = Field(None, description="Timestamp of the last successful processing run")
    status: str = Field(..., description="Current module status: 'ready', 'running', 'error', 'disabled'")
    health_check: bool = Field(..., description="Result of the most recent health check")


class ModuleProcessor(ABC):
    """Abstract base class for all FleetGeo processing modules.

    Concrete modules receive the shared ConfigLoader, validate their own
    configuration, and run with an optional dry-run flag that suppresses
    writes to the document store.
    """

    @abstractmethod
    def __init__(self, config_loader):
        """Initialize module with shared configuration.

        Args:
            config_loader: ConfigLoader instance providing access to framework configuration
        """
        pass

    @abstractmethod
    def validate_configuration(self) -> bool:
        """Validate module-specific configuration.

        Returns:
            bool: True if configuration is valid and complete, False otherwise
        """
        pass

    @abstractmethod
    def process(self, dry_run: bool = False) -> ProcessingResult:
        """Execute module processing logic.

        Args:
            dry_run: If True, perform all processing logic without writing to the store

        Returns:
            ProcessingResult: Standardized result object with success status, metrics, and errors
        """
        pass

    @abstractmethod
    def get_status(self) -> ModuleStatus:
        """Get current module processing status.

        Returns:
            ModuleStatus: Current module status and health information
        """
        pass
