"""
Unit tests for custom exceptions module.

This module contains tests for the framework exception classes
and their context handling.
"""

import pytest
from fleetgeo.exceptions import (
    FleetGeoBaseException,
    FleetGeoConfigurationError,
    FleetGeoValidationError,
    FleetGeoConnectionError,
    FleetGeoProcessingError,
)


class TestFleetGeoBaseException:
    """Test suite for FleetGeoBaseException class."""

    def test_base_exception_without_context(self):
        """Test FleetGeoBaseException without context."""
        exception = FleetGeoBaseException("Test error message")

        assert str(exception) == "Test error message"
        assert exception.message == "Test error message"
        assert exception.context == {}

    def test_base_exception_with_context(self):
        """Test FleetGeoBaseException with context."""
        context = {"collection": "tracking_records", "record_id": "abc123"}
        exception = FleetGeoBaseException("Test error message", context)

        assert exception.message == "Test error message"
        assert exception.context == context
        assert "collection=tracking_records" in str(exception)
        assert "record_id=abc123" in str(exception)
        assert str(exception).startswith("Test error message (Context: ")

    def test_base_exception_with_none_context(self):
        """Test FleetGeoBaseException with None context."""
        exception = FleetGeoBaseException("Test error message", None)

        assert str(exception) == "Test error message"
        assert exception.context == {}

    def test_base_exception_context_string_representation(self):
        """Test string representation with various context types."""
        context = {
            "string_value": "test",
            "int_value": 42,
            "bool_value": True,
            "none_value": None
        }
        error_str = str(FleetGeoBaseException("Test error", context))

        assert "string_value=test" in error_str
        assert "int_value=42" in error_str
        assert "bool_value=True" in error_str
        assert "none_value=None" in error_str


class TestFleetGeoSubclasses:
    """Test suite for the framework exception subclasses."""

    @pytest.mark.parametrize("exception_class", [
        FleetGeoConfigurationError,
        FleetGeoValidationError,
        FleetGeoConnectionError,
        FleetGeoProcessingError,
    ])
    def test_inherits_from_base(self, exception_class):
        """Test that every subclass is a FleetGeoBaseException."""
        exception = exception_class("Failure")

        assert isinstance(exception, FleetGeoBaseException)
        assert isinstance(exception, Exception)

    @pytest.mark.parametrize("exception_class", [
        FleetGeoConfigurationError,
        FleetGeoValidationError,
        FleetGeoConnectionError,
        FleetGeoProcessingError,
    ])
    def test_can_be_caught_as_base_exception(self, exception_class):
        """Test that subclasses can be caught through the base class."""
        with pytest.raises(FleetGeoBaseException) as exc_info:
            raise exception_class("Test error", {"environment": "development"})

        assert isinstance(exc_info.value, exception_class)
        assert exc_info.value.context == {"environment": "development"}

    def test_connection_error_message(self):
        """Test FleetGeoConnectionError keeps its message and context."""
        exception = FleetGeoConnectionError("Failed to connect", {"uri": "mongodb://***@host"})

        assert exception.message == "Failed to connect"
        assert "uri=mongodb://***@host" in str(exception)

    def test_exception_chaining(self):
        """Test exceptions preserve the original cause when chained."""
        try:
            try:
                raise ValueError("Original error")
            except ValueError as e:
                raise FleetGeoProcessingError("Processing failed") from e
        except FleetGeoProcessingError as exc:
            assert isinstance(exc.__cause__, ValueError)
            assert str(exc.__cause__) == "Original error"

    def test_exception_hierarchy_is_distinct(self):
        """Test sibling exception types do not catch each other."""
        with pytest.raises(FleetGeoValidationError):
            try:
                raise FleetGeoValidationError("bad record")
            except FleetGeoProcessingError:
                pytest.fail("Validation error caught as processing error")
