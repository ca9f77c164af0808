"""
Tests for the exception hierarchy.
"""

import pytest

from inventory_sync.utils.errors import (
    ExtractionError,
    GatewayError,
    GatewayQuotaExceededError,
    InventorySyncError,
    MissingFieldError,
    RangeSpecError,
    UnknownFieldError,
    WorksheetNotFoundError,
)


class TestInventorySyncError:
    """Test the base error."""

    def test_message_only(self):
        error = InventorySyncError("boom")
        assert str(error) == "boom"
        assert error.details == {}

    def test_details_in_string(self):
        error = InventorySyncError("boom", {"row": 4})
        assert str(error) == "boom | Details: {'row': 4}"


class TestSpecificErrors:
    """Test the specialised errors."""

    def test_missing_field(self):
        error = MissingFieldError("Serial Number")
        assert isinstance(error, ExtractionError)
        assert error.field_name == "Serial Number"
        assert "Serial Number" in str(error)

    def test_unknown_field_is_key_error(self):
        with pytest.raises(KeyError):
            raise UnknownFieldError("Colour", "linux")

    def test_quota_retry_after(self):
        error = GatewayQuotaExceededError(retry_after=30)
        assert isinstance(error, GatewayError)
        assert error.details == {"retry_after": 30}
        assert "Retry after 30 seconds" in error.message

    def test_gateway_errors_carry_details(self):
        assert WorksheetNotFoundError("Servers").details == {"worksheet": "Servers"}
        assert RangeSpecError("A0:B").details == {"range": "A0:B"}
