"""
Configuration Validation for the Bluesky Export Toolkit

This module contains configuration validation logic.
Kept apart from settings.py so that importing settings never raises.
"""

from utils.exceptions import ConfigurationError
from utils.helpers import is_valid_url


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    # Endpoint URLs
    for name, value in [("BSKY_API_BASE", settings.BSKY_API_BASE),
                        ("BSKY_PUBLIC_API", settings.BSKY_PUBLIC_API)]:
        if not value or not is_valid_url(value):
            errors.append(f"{name} must be an absolute URL, got {value!r}")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("MAX_PAGE_SIZE", settings.MAX_PAGE_SIZE, 1, 100),
        ("FILTER_REQUEST_FLOOR", settings.FILTER_REQUEST_FLOOR, 1, 100),
        ("FILTER_REQUEST_MULTIPLIER", settings.FILTER_REQUEST_MULTIPLIER, 1, 10),
        ("FILTER_MAX_REQUESTS", settings.FILTER_MAX_REQUESTS, 1, 100),
        ("SEARCH_TOP_BATCH_SIZE", settings.SEARCH_TOP_BATCH_SIZE, 1, 100),
        ("DEFAULT_RESULT_LIMIT", settings.DEFAULT_RESULT_LIMIT, 1, 10000),
        ("THREAD_DEPTH", settings.THREAD_DEPTH, 0, 1000),
        ("QUOTES_FETCH_LIMIT", settings.QUOTES_FETCH_LIMIT, 1, 100),
        ("QUOTE_SEARCH_QUERY_LENGTH", settings.QUOTE_SEARCH_QUERY_LENGTH, 1, 64),
        ("SNIPPET_LENGTH", settings.SNIPPET_LENGTH, 1, 3000),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    if settings.FILTER_REQUEST_FLOOR > settings.MAX_PAGE_SIZE:
        errors.append(f"FILTER_REQUEST_FLOOR ({settings.FILTER_REQUEST_FLOOR}) must not exceed "
                      f"MAX_PAGE_SIZE ({settings.MAX_PAGE_SIZE})")

    if settings.REQUEST_TIMEOUT <= 0:
        errors.append(f"REQUEST_TIMEOUT must be positive, got {settings.REQUEST_TIMEOUT}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "endpoints": {
            "authenticated": settings.BSKY_API_BASE,
            "public": settings.BSKY_PUBLIC_API,
        },
        "credentials_configured": bool(settings.AT_PROTOCOL_USERNAME and settings.AT_PROTOCOL_PASSWORD),
        "pagination": {
            "max_page_size": settings.MAX_PAGE_SIZE,
            "filter_floor": settings.FILTER_REQUEST_FLOOR,
            "filter_multiplier": settings.FILTER_REQUEST_MULTIPLIER,
            "filter_max_requests": settings.FILTER_MAX_REQUESTS,
        },
        "request_timeout": settings.REQUEST_TIMEOUT,
    }
