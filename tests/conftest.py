"""
Shared Test Fixtures for the Bluesky Export Toolkit

This module provides common fixtures used across all test modules.
Fixtures include mocks for settings, logging capture, HTTP responses,
a scripted XRPC client, and factories for raw Bluesky API objects.
"""

import pytest
from unittest.mock import MagicMock, patch
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.exceptions import ApiRequestError


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """
    Mock the settings module with test configuration values.

    This fixture patches the config.settings module with safe test values,
    preventing tests from picking up real credentials from a .env file.

    Usage:
        def test_something(mock_settings):
            mock_settings.MAX_PAGE_SIZE = 50
            # ... test code

    Returns:
        MagicMock: A mock settings object with default test values.
    """
    # The module must be loaded before it can be patched on the package
    import config.settings  # noqa: F401

    with patch('config.settings') as mock_settings_module:
        # Credentials (use obvious test values)
        mock_settings_module.AT_PROTOCOL_USERNAME = "test-bsky-user"
        mock_settings_module.AT_PROTOCOL_PASSWORD = "test-bsky-password"

        # Endpoints
        mock_settings_module.BSKY_API_BASE = "https://bsky.test/xrpc"
        mock_settings_module.BSKY_PUBLIC_API = "https://public.bsky.test/xrpc"
        mock_settings_module.BSKY_WEB_HOSTS = ["bsky.app", "staging.bsky.app"]
        mock_settings_module.REQUEST_TIMEOUT = 5

        # Pagination Settings
        mock_settings_module.MAX_PAGE_SIZE = 100
        mock_settings_module.FILTER_REQUEST_FLOOR = 25
        mock_settings_module.FILTER_REQUEST_MULTIPLIER = 2
        mock_settings_module.FILTER_MAX_REQUESTS = 10
        mock_settings_module.SEARCH_TOP_BATCH_SIZE = 25
        mock_settings_module.DEFAULT_RESULT_LIMIT = 100

        # Content Processing Settings
        mock_settings_module.THREAD_DEPTH = 10
        mock_settings_module.QUOTES_FETCH_LIMIT = 100
        mock_settings_module.QUOTE_SEARCH_QUERY_LENGTH = 12
        mock_settings_module.SNIPPET_LENGTH = 100
        mock_settings_module.SEARCH_SORT_OPTIONS = ["top", "latest"]
        mock_settings_module.CONTENT_TYPES = ["profile", "feed", "list", "starterpack"]
        mock_settings_module.DEFAULT_LOG_FILE = ""

        yield mock_settings_module


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Records are collected from the application logger, so every
    module-level logger created with utils.logger.get_logger is covered.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging
    from utils.logger import get_logger

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    app_logger = get_logger()
    original_level = app_logger.level
    app_logger.setLevel(logging.DEBUG)
    app_logger.addHandler(handler)

    yield handler.records

    app_logger.removeHandler(handler)
    app_logger.setLevel(original_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(status_code=200, json_data={'feed': []})
            # ... test code

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        json_data: Optional[Any] = None,
        text: str = '',
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            json_data: Value to return from response.json(); json() raises if None.
            text: Text content (auto-generated from json_data if not provided).

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        import json

        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.ok = 200 <= status_code < 300

        if text:
            mock_response.text = text
        elif json_data is not None:
            mock_response.text = json.dumps(json_data)
        else:
            mock_response.text = ''

        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        return mock_response

    return _create_response


@pytest.fixture
def mock_http_session(mock_http_response):
    """
    A MagicMock standing in for requests.Session.

    Usage:
        def test_client(mock_http_session):
            mock_http_session.get.return_value = mock_http_session.response(json_data={})
            client = BskyClient(http_session=mock_http_session)

    Returns:
        MagicMock: A mock session with the response factory attached.
    """
    session = MagicMock()
    session.response = mock_http_response
    return session


# =============================================================================
# Scripted XRPC Client
# =============================================================================

class FakeXrpcClient:
    """
    In-memory stand-in for BskyClient.

    Responses are scripted per endpoint as a list consumed in order; an
    exception instance in the list is raised instead of returned. Every
    call is recorded as (endpoint, params copy, auth_required).
    """

    def __init__(self, responses: Optional[Dict[str, List[Any]]] = None, authenticated: bool = False):
        self.responses = {endpoint: list(items) for endpoint, items in (responses or {}).items()}
        self.calls: List[tuple] = []
        self.is_authenticated = authenticated
        self.original_post: Optional[Dict[str, Any]] = None

    def add(self, endpoint: str, *responses: Any) -> "FakeXrpcClient":
        self.responses.setdefault(endpoint, []).extend(responses)
        return self

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None,
            auth_required: bool = False) -> Dict[str, Any]:
        self.calls.append((endpoint, dict(params or {}), auth_required))
        queue = self.responses.get(endpoint)
        if not queue:
            raise ApiRequestError(endpoint, 404, "no scripted response")
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def calls_to(self, endpoint: str) -> List[Dict[str, Any]]:
        return [params for called, params, _ in self.calls if called == endpoint]

    def build_record_uri(self, identifier: str, collection: str, rkey: str,
                         resolve_did: bool = True) -> str:
        return f"at://{identifier}/{collection}/{rkey}"

    def build_post_uri(self, handle: str, post_id: str, resolve_did: bool = True) -> str:
        return self.build_record_uri(handle, "app.bsky.feed.post", post_id, resolve_did)

    def fetch_original_post(self, post_uri: str) -> Optional[Dict[str, Any]]:
        return self.original_post


@pytest.fixture
def fake_client():
    """
    Factory fixture for scripted XRPC clients.

    Usage:
        def test_listing(fake_client):
            client = fake_client({"app.bsky.feed.getFeed": [{"feed": [...]}]})
    """
    def _create(responses: Optional[Dict[str, List[Any]]] = None, authenticated: bool = False) -> FakeXrpcClient:
        return FakeXrpcClient(responses, authenticated)

    return _create


# =============================================================================
# Raw API Object Factories
# =============================================================================

@pytest.fixture
def raw_post():
    """
    Factory fixture for raw post views as the XRPC API returns them.

    Usage:
        def test_post(raw_post):
            post = raw_post(text="hello", reply_parent="at://did:plc:bob/app.bsky.feed.post/1")

    Returns:
        callable: A factory function for creating post dictionaries.
    """
    def _create_post(
        rkey: str = "3kpost",
        author_did: str = "did:plc:alice",
        author_handle: str = "alice.bsky.social",
        text: str = "Test post content",
        created_at: Optional[str] = "2024-01-15T10:00:00.000Z",
        indexed_at: str = "2024-01-15T10:00:01.000Z",
        reply_parent: Optional[str] = None,
        reply_root: Optional[str] = None,
        embed: Optional[Dict[str, Any]] = None,
        view_embed: Optional[Dict[str, Any]] = None,
        facets: Optional[List[Dict[str, Any]]] = None,
        langs: Optional[List[str]] = None,
        like_count: int = 0,
        reply_count: int = 0,
        repost_count: int = 0,
        quote_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Create a raw post view.

        Args:
            rkey: Record key, used to build the post's URI.
            author_did: DID of the author (also the URI authority).
            reply_parent: Parent URI; makes the post a reply.
            reply_root: Root URI, defaults to reply_parent.
            embed: Record-level embed.
            view_embed: View-level (hydrated) embed.

        Returns:
            dict: A post view.
        """
        record: Dict[str, Any] = {"$type": "app.bsky.feed.post", "text": text}
        if created_at is not None:
            record["createdAt"] = created_at
        if reply_parent:
            record["reply"] = {
                "parent": {"uri": reply_parent, "cid": "bafyparent"},
                "root": {"uri": reply_root or reply_parent, "cid": "bafyroot"},
            }
        if embed is not None:
            record["embed"] = embed
        if facets is not None:
            record["facets"] = facets
        if langs is not None:
            record["langs"] = langs

        post: Dict[str, Any] = {
            "uri": f"at://{author_did}/app.bsky.feed.post/{rkey}",
            "cid": f"bafy{rkey}",
            "author": {"did": author_did, "handle": author_handle, "displayName": "Alice"},
            "record": record,
            "indexedAt": indexed_at,
            "likeCount": like_count,
            "replyCount": reply_count,
            "repostCount": repost_count,
        }
        if quote_count is not None:
            post["quoteCount"] = quote_count
        if view_embed is not None:
            post["embed"] = view_embed
        return post

    return _create_post


@pytest.fixture
def feed_item():
    """
    Factory fixture for feed items ({"post": ..., "reason"?: ...}).

    Usage:
        item = feed_item(raw_post(), repost=True)
    """
    def _create_item(post: Dict[str, Any], repost: bool = False) -> Dict[str, Any]:
        item: Dict[str, Any] = {"post": post}
        if repost:
            item["reason"] = {
                "$type": "app.bsky.feed.defs#reasonRepost",
                "by": {"did": "did:plc:reposter", "handle": "reposter.bsky.social"},
                "indexedAt": "2024-01-16T00:00:00.000Z",
            }
        return item

    return _create_item


@pytest.fixture
def quote_embed():
    """Factory fixture for app.bsky.embed.record embeds quoting a given URI."""
    def _create_embed(uri: str, text: Optional[str] = None, with_media: bool = False) -> Dict[str, Any]:
        record: Dict[str, Any] = {"uri": uri, "cid": "bafyquoted"}
        if text is not None:
            record["value"] = {"$type": "app.bsky.feed.post", "text": text}
        if with_media:
            return {
                "$type": "app.bsky.embed.recordWithMedia",
                "record": {"$type": "app.bsky.embed.record", "record": record},
                "media": {
                    "$type": "app.bsky.embed.images",
                    "images": [{"alt": "a photo", "image": {"$type": "blob"}}],
                },
            }
        return {"$type": "app.bsky.embed.record", "record": record}

    return _create_embed
