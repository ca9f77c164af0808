"""
Custom exceptions for the inventory sheet sync.

This module defines all custom exceptions raised while extracting records
from inventory reports and reconciling them into the inventory worksheet.
"""

from typing import Any, Optional


class InventorySyncError(Exception):
    """Base exception for all inventory-sync errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Extraction Exceptions
# =============================================================================


class ExtractionError(InventorySyncError):
    """Base exception for record extraction errors."""

    pass


class MissingFieldError(ExtractionError):
    """A required extraction rule resolved to the sentinel value."""

    def __init__(self, field_name: str) -> None:
        """Initialize with the field name."""
        super().__init__(f"Missing required field: {field_name}")
        self.field_name = field_name


class RuleSetError(ExtractionError):
    """Invalid extraction rule or rule set definition."""

    pass


class UnknownFieldError(ExtractionError, KeyError):
    """Field is not declared by the record's rule set."""

    def __init__(self, field_name: str, rule_set: str) -> None:
        """Initialize with field and rule set names."""
        message = f"Field '{field_name}' is not declared by rule set '{rule_set}'"
        super().__init__(message, {"field": field_name, "rule_set": rule_set})
        self.field_name = field_name


class ReportSourceError(InventorySyncError):
    """Report file could not be read."""

    pass


# =============================================================================
# Table Gateway Exceptions
# =============================================================================


class GatewayError(InventorySyncError):
    """Base exception for table gateway operations."""

    pass


class GatewayAuthenticationError(GatewayError):
    """Authentication with the spreadsheet API failed."""

    pass


class GatewayQuotaExceededError(GatewayError):
    """Spreadsheet API quota exceeded."""

    def __init__(self, retry_after: Optional[int] = None) -> None:
        """Initialize with retry information."""
        message = "Google Sheets API quota exceeded"
        details = {}
        if retry_after:
            message += f". Retry after {retry_after} seconds"
            details["retry_after"] = retry_after
        super().__init__(message, details)


class WorksheetNotFoundError(GatewayError):
    """Worksheet title not present in the spreadsheet."""

    def __init__(self, title: str) -> None:
        """Initialize with worksheet title."""
        message = f"Worksheet '{title}' not found in spreadsheet"
        super().__init__(message, {"worksheet": title})


class RangeSpecError(GatewayError):
    """Malformed A1 range specification."""

    def __init__(self, spec: str) -> None:
        """Initialize with the offending range."""
        message = f"Invalid range specification '{spec}'"
        super().__init__(message, {"range": spec})


# =============================================================================
# Reconciliation Exceptions
# =============================================================================


class PlacementError(InventorySyncError):
    """Insertion point could not be re-validated before the insert."""

    pass


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(InventorySyncError):
    """Configuration error."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Required configuration missing."""

    def __init__(self, config_name: str) -> None:
        """Initialize with config name."""
        message = f"Required configuration '{config_name}' is missing"
        super().__init__(message, {"config_name": config_name})
