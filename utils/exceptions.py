"""
Custom Exception Classes for the Bluesky Export Toolkit

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""

from typing import Optional


class BskyToolkitError(Exception):
    """Base exception for all toolkit errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(BskyToolkitError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Input Validation Errors
# =============================================================================

class InputValidationError(BskyToolkitError):
    """Raised when user input is rejected before any network activity."""
    pass


class InvalidUrlError(InputValidationError):
    """Raised when a bsky.app URL does not have the expected shape."""
    pass


# =============================================================================
# Social Media Errors
# =============================================================================

class SocialMediaError(BskyToolkitError):
    """Base exception for upstream Bluesky API errors."""
    pass


class AuthenticationError(SocialMediaError):
    """Raised when session creation fails or an endpoint needs a session we don't have."""
    pass


class ApiRequestError(SocialMediaError):
    """
    Raised when an XRPC request fails.

    Covers both non-2xx responses (status_code is set) and transport
    failures such as timeouts or undecodable bodies (status_code is None).
    """

    def __init__(self, endpoint: str, status_code: Optional[int] = None, detail: str = ""):
        self.endpoint = endpoint
        self.status_code = status_code
        self.detail = detail

        if status_code is not None:
            message = f"{endpoint} failed with status {status_code}"
        else:
            message = f"{endpoint} request failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
