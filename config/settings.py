"""
Configuration Settings for the Bluesky Export Toolkit

This module centralizes all configuration settings for the toolkit,
including environment variables, API endpoints, and pagination constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

# AT Protocol (BlueSky) Authentication (only needed for search)
AT_PROTOCOL_USERNAME = os.getenv("AT_PROTOCOL_USERNAME")
AT_PROTOCOL_PASSWORD = os.getenv("AT_PROTOCOL_PASSWORD")

# =============================================================================
# API Endpoints
# =============================================================================

BSKY_API_BASE = os.getenv("BSKY_API_BASE", "https://bsky.social/xrpc")          # Authenticated calls
BSKY_PUBLIC_API = os.getenv("BSKY_PUBLIC_API", "https://public.api.bsky.app/xrpc")  # Unauthenticated calls

# Web hosts whose post/profile URLs we accept
BSKY_WEB_HOSTS = [
    "bsky.app",
    "staging.bsky.app",
]

REQUEST_TIMEOUT = int(os.getenv("BSKY_REQUEST_TIMEOUT", "30"))  # Seconds per HTTP request

# =============================================================================
# Pagination Settings
# =============================================================================

MAX_PAGE_SIZE = 100                  # Largest page the listing endpoints accept
FILTER_REQUEST_FLOOR = 25            # Smallest batch requested while filtering
FILTER_REQUEST_MULTIPLIER = 2        # Over-fetch factor when a predicate discards items
FILTER_MAX_REQUESTS = 10             # Hard ceiling on requests for one filtered collection
SEARCH_TOP_BATCH_SIZE = 25           # Smaller pages give better sampling for large "top" searches
DEFAULT_RESULT_LIMIT = int(os.getenv("BSKY_DEFAULT_LIMIT", "100"))

# =============================================================================
# Content Processing Settings
# =============================================================================

THREAD_DEPTH = 10                    # Reply depth requested from getPostThread
QUOTES_FETCH_LIMIT = 100             # Page size for getQuotes and the search fallback
QUOTE_SEARCH_QUERY_LENGTH = 12       # Record key prefix used as the fallback search query
SNIPPET_LENGTH = 100                 # Max length of a quoted post snippet (before "...")

SEARCH_SORT_OPTIONS = ["top", "latest"]
CONTENT_TYPES = ["profile", "feed", "list", "starterpack"]

# Logging
DEFAULT_LOG_FILE = os.getenv("BSKY_LOG_FILE", "")

