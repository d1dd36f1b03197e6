"""
Tests for Configuration Validation

Tests cover validate_settings() error collection and the non-secret
configuration summary.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.validators import get_config_summary, validate_settings
from utils.exceptions import ConfigurationError


class TestValidateSettings:
    """Tests for validate_settings()."""

    def test_valid_settings(self, mock_settings):
        """Test defaults pass validation."""
        assert validate_settings() is True

    def test_credentials_are_optional(self, mock_settings):
        """Missing credentials do not fail validation; search checks them itself."""
        mock_settings.AT_PROTOCOL_USERNAME = None
        mock_settings.AT_PROTOCOL_PASSWORD = None
        assert validate_settings() is True

    def test_bad_endpoint(self, mock_settings):
        mock_settings.BSKY_PUBLIC_API = "not-a-url"
        with pytest.raises(ConfigurationError, match="BSKY_PUBLIC_API"):
            validate_settings()

    def test_all_errors_reported_together(self, mock_settings):
        """Every problem is listed in one error."""
        mock_settings.MAX_PAGE_SIZE = 500
        mock_settings.REQUEST_TIMEOUT = 0
        mock_settings.FILTER_MAX_REQUESTS = 0

        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings()

        message = str(exc_info.value)
        assert "MAX_PAGE_SIZE" in message
        assert "REQUEST_TIMEOUT" in message
        assert "FILTER_MAX_REQUESTS" in message

    def test_floor_above_page_size(self, mock_settings):
        mock_settings.MAX_PAGE_SIZE = 20
        mock_settings.FILTER_REQUEST_FLOOR = 25
        with pytest.raises(ConfigurationError, match="FILTER_REQUEST_FLOOR"):
            validate_settings()


class TestConfigSummary:
    """Tests for get_config_summary()."""

    def test_no_secrets(self, mock_settings):
        """The summary never contains the password."""
        summary = get_config_summary()

        assert summary["credentials_configured"] is True
        assert summary["endpoints"]["public"] == "https://public.bsky.test/xrpc"
        assert "test-bsky-password" not in repr(summary)
